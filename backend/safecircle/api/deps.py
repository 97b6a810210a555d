"""API dependencies - authentication context and current user"""

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional

from safecircle.core.database import get_db
from safecircle.core.exceptions import AuthenticationError, UnknownAccountError
from safecircle.models.user import User
from safecircle.services.token_service import AuthContext, token_service
from safecircle.services.user_service import user_service

# HTTP Bearer token scheme; missing headers are reported as 401 below
security = HTTPBearer(auto_error=False)


def get_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthContext:
    """
    Verify the bearer access token

    Args:
        credentials: HTTP Bearer credentials

    Returns:
        Authenticated context carrying the account id

    Raises:
        AuthenticationError: If no token was sent
        InvalidTokenError: If the token is expired, malformed or forged
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("No token provided")
    return token_service.authenticate(credentials.credentials)


def get_current_user(
    context: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db)
) -> User:
    """
    Load the account behind the authenticated context

    Raises:
        UnknownAccountError: If the account no longer exists or is disabled
    """
    user = user_service.get_user_by_id(db, context.account_id)
    if not user or not user.is_active:
        raise UnknownAccountError()
    return user
