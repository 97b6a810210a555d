"""Community forum schemas"""

from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime

from safecircle.models.community import DISCUSSION_CATEGORIES
from safecircle.schemas.response import Pagination
from safecircle.schemas.user import AuthorSummary


def _normalize_tags(tags: List[str]) -> List[str]:
    return [tag.strip().lower() for tag in tags if tag and tag.strip()]


class DiscussionCreate(BaseModel):
    """Discussion creation schema"""
    title: str = Field(..., min_length=10, max_length=200)
    content: str = Field(..., min_length=20, max_length=5000)
    category: str = "general"
    tags: List[str] = Field(default_factory=list)

    @field_validator('title', 'content', mode='before')
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator('category')
    @classmethod
    def known_category(cls, v):
        if v not in DISCUSSION_CATEGORIES:
            raise ValueError(f'Category must be one of: {", ".join(DISCUSSION_CATEGORIES)}')
        return v

    @field_validator('tags')
    @classmethod
    def lowercase_tags(cls, v):
        return _normalize_tags(v)


class DiscussionUpdate(BaseModel):
    """Partial discussion update; omitted fields are left unchanged"""
    title: Optional[str] = Field(None, min_length=10, max_length=200)
    content: Optional[str] = Field(None, min_length=20, max_length=5000)
    tags: Optional[List[str]] = None

    @field_validator('tags')
    @classmethod
    def lowercase_tags(cls, v):
        return _normalize_tags(v) if v is not None else v


class DiscussionResponse(BaseModel):
    """Discussion response schema"""
    id: int
    title: str
    content: str
    author: AuthorSummary
    category: str
    tags: List[str]
    upvotes: int
    downvotes: int
    views: int
    reply_count: int
    is_pinned: bool
    is_closed: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DiscussionListResponse(BaseModel):
    success: bool = True
    data: List[DiscussionResponse]
    pagination: Pagination


class ReplyCreate(BaseModel):
    """Reply creation schema"""
    content: str = Field(..., min_length=1, max_length=2000)

    @field_validator('content', mode='before')
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class ReplyResponse(BaseModel):
    """Reply response schema"""
    id: int
    discussion_id: int
    author: AuthorSummary
    content: str
    upvotes: int
    downvotes: int
    is_accepted: bool
    created_at: datetime

    class Config:
        from_attributes = True


class ReplyListResponse(BaseModel):
    success: bool = True
    data: List[ReplyResponse]
    pagination: Pagination


class VoteRequest(BaseModel):
    """Toggle-vote request. Kinds are checked by the vote service."""
    target_id: int
    target_type: str
    vote_type: str


class VoteResultResponse(BaseModel):
    """Outcome of a toggle vote with the target's tally afterwards"""
    action: str
    upvotes: int
    downvotes: int


class UserVotesRequest(BaseModel):
    """Targets to look up the caller's own votes for"""
    target_ids: List[int] = Field(..., max_length=500)
    target_type: str


class Category(BaseModel):
    id: str
    name: str
    color: str
