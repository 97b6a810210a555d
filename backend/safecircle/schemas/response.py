"""Shared response envelopes"""

from pydantic import BaseModel, Field
from typing import Optional, Any
from datetime import datetime, timezone


class ErrorResponse(BaseModel):
    """Body of every error response"""
    success: bool = False
    error: str
    details: Optional[Any] = None
    path: Optional[str] = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class Pagination(BaseModel):
    """Page metadata for list endpoints"""
    total: int
    page: int
    pages: int
