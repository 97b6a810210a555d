"""Q&A schemas"""

from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime

from safecircle.schemas.user import AuthorSummary


class QuestionCreate(BaseModel):
    """Question creation schema"""
    title: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=50)


class AnswerCreate(BaseModel):
    """Answer creation schema"""
    content: str = Field(..., min_length=1)


class AnswerResponse(BaseModel):
    """Answer response schema"""
    id: int
    author: AuthorSummary
    content: str
    upvotes: int
    upvoted_by: List[int]
    downvotes: int
    downvoted_by: List[int]
    is_accepted: bool
    created_at: datetime

    class Config:
        from_attributes = True

    @field_validator('upvoted_by', 'downvoted_by', mode='before')
    @classmethod
    def sorted_ids(cls, v):
        return sorted(v)


class QuestionResponse(BaseModel):
    """Question response schema, answers in display order"""
    id: int
    author: AuthorSummary
    title: str
    description: Optional[str]
    category: str
    answers: List[AnswerResponse]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class QuestionListResponse(BaseModel):
    questions: List[QuestionResponse]


class QuestionEnvelope(BaseModel):
    question: QuestionResponse
