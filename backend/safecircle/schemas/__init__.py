"""Pydantic schemas for API validation"""

from safecircle.schemas.user import (
    UserCreate,
    UserResponse,
    UserLogin,
    TokenResponse,
    RefreshTokenRequest,
    LogoutRequest,
)
from safecircle.schemas.community import (
    DiscussionCreate,
    DiscussionUpdate,
    DiscussionResponse,
    ReplyCreate,
    ReplyResponse,
    VoteRequest,
    VoteResultResponse,
    UserVotesRequest,
)
from safecircle.schemas.qna import QuestionCreate, AnswerCreate, AnswerResponse, QuestionResponse
from safecircle.schemas.response import ErrorResponse, Pagination

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "TokenResponse", "RefreshTokenRequest", "LogoutRequest",
    "DiscussionCreate", "DiscussionUpdate", "DiscussionResponse", "ReplyCreate", "ReplyResponse",
    "VoteRequest", "VoteResultResponse", "UserVotesRequest",
    "QuestionCreate", "AnswerCreate", "AnswerResponse", "QuestionResponse",
    "ErrorResponse", "Pagination",
]
