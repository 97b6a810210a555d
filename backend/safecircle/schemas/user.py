"""User and auth schemas"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

EMAIL_PATTERN = r'^[^\s@]+@[^\s@]+\.[^\s@]+$'


class UserLogin(BaseModel):
    """User login schema"""
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)


class UserCreate(BaseModel):
    """Signup schema"""
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    """User response schema"""
    id: int
    name: str
    email: str
    role: str
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class AuthorSummary(BaseModel):
    """Author embedded in community payloads"""
    id: int
    name: str
    email: str

    class Config:
        from_attributes = True


class RefreshTokenRequest(BaseModel):
    """Refresh token request; the ``jid`` cookie is used when omitted"""
    refresh_token: Optional[str] = None


class LogoutRequest(BaseModel):
    """Logout request; the ``jid`` cookie is used when omitted"""
    refresh_token: Optional[str] = None


class TokenResponse(BaseModel):
    """Token pair response"""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse
