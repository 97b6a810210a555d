"""Authentication routes"""

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session
from typing import Optional

from safecircle.core.database import get_db
from safecircle.config import settings
from safecircle.schemas.user import (
    UserCreate,
    UserLogin,
    TokenResponse,
    UserResponse,
    RefreshTokenRequest,
    LogoutRequest,
)
from safecircle.services.user_service import user_service
from safecircle.services.token_service import IssuedPair, token_service
from safecircle.services.rate_limiter import rate_limiter
from safecircle.api.deps import get_current_user
from safecircle.models.user import User
from safecircle.core.exceptions import AuthenticationError

router = APIRouter()


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _set_refresh_cookie(response: Response, refresh_token: str) -> None:
    response.set_cookie(
        settings.REFRESH_COOKIE_NAME,
        refresh_token,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path=settings.REFRESH_COOKIE_PATH,
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
    )


def _clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(settings.REFRESH_COOKIE_NAME, path=settings.REFRESH_COOKIE_PATH)


def _token_response(response: Response, user: User, pair: IssuedPair) -> TokenResponse:
    _set_refresh_cookie(response, pair.refresh_token)
    return TokenResponse(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        token_type="bearer",
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=UserResponse.model_validate(user)
    )


def _presented_refresh_token(request: Request, body_token: Optional[str]) -> Optional[str]:
    return body_token or request.cookies.get(settings.REFRESH_COOKIE_NAME)


@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def signup(
    user_data: UserCreate,
    request: Request,
    response: Response,
    db: Session = Depends(get_db)
):
    """
    Register an account and start its first session

    Returns:
        Token pair and user info
    """
    rate_limiter.enforce(
        "signup",
        _client_ip(request),
        [(settings.LOGIN_RATE_LIMIT_PER_MINUTE, 60, "Too many signup attempts. Please wait a minute.")],
    )
    user = user_service.create_user(db, user_data)
    pair = token_service.start_session(db, user)
    return _token_response(response, user, pair)


@router.post("/login", response_model=TokenResponse, status_code=status.HTTP_200_OK)
def login(
    credentials: UserLogin,
    request: Request,
    response: Response,
    db: Session = Depends(get_db)
):
    """
    Login endpoint - authenticate user and return a token pair

    Args:
        credentials: Email and password
        db: Database session

    Returns:
        Token pair and user info
    """
    rate_limiter.enforce(
        "login",
        f"{_client_ip(request)}:{credentials.email}",
        [
            (settings.LOGIN_RATE_LIMIT_PER_MINUTE, 60, "Too many login attempts. Please wait a minute."),
            (settings.LOGIN_RATE_LIMIT_PER_HOUR, 3600, "Too many login attempts. Please try again later."),
        ],
    )

    user = user_service.authenticate_user(db, credentials.email, credentials.password)
    pair = token_service.start_session(db, user)
    return _token_response(response, user, pair)


@router.post("/refresh", response_model=TokenResponse)
def refresh_token(
    request: Request,
    response: Response,
    req: Optional[RefreshTokenRequest] = None,
    db: Session = Depends(get_db),
):
    """
    Exchange a refresh token (body or ``jid`` cookie) for a new pair.
    The presented token is consumed; replaying it fails.
    """
    rate_limiter.enforce(
        "refresh",
        _client_ip(request),
        [
            (settings.RATE_LIMIT_PER_MINUTE, 60, "Too many refresh attempts. Slow down."),
            (settings.RATE_LIMIT_PER_HOUR, 3600, "Too many refresh attempts. Try later."),
        ],
    )

    presented = _presented_refresh_token(request, req.refresh_token if req else None)
    if not presented:
        raise AuthenticationError("No refresh token")

    user, pair = token_service.rotate(db, presented)
    return _token_response(response, user, pair)


@router.post("/logout", status_code=status.HTTP_200_OK)
def logout(
    request: Request,
    response: Response,
    body: Optional[LogoutRequest] = None,
    db: Session = Depends(get_db)
):
    """
    Logout endpoint - revoke the presented refresh token.
    Always succeeds; an invalid or missing token means already logged out.
    """
    presented = _presented_refresh_token(request, body.refresh_token if body else None)
    revoked = token_service.revoke(db, presented) if presented else False
    _clear_refresh_cookie(response)

    return {
        "success": True,
        "message": "Logged out successfully" if revoked else "Already logged out",
        "refresh_token_revoked": revoked
    }


@router.get("/me", response_model=UserResponse)
def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """Get current user information"""
    return UserResponse.model_validate(current_user)
