"""Security utilities - JWT signing, password hashing"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
import bcrypt
from safecircle.config import settings
import secrets

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash

    Args:
        plain_password: Plain text password
        hashed_password: Hashed password

    Returns:
        bool: True if password matches
    """
    return bcrypt.checkpw(
        plain_password.encode('utf-8'),
        hashed_password.encode('utf-8')
    )


def get_password_hash(password: str) -> str:
    """
    Hash a password using bcrypt

    Args:
        password: Plain text password

    Returns:
        str: Hashed password
    """
    return bcrypt.hashpw(
        password.encode('utf-8'),
        bcrypt.gensalt()
    ).decode('utf-8')


def generate_refresh_id() -> str:
    """128-bit random refresh identifier, hex encoded."""
    return secrets.token_hex(16)


def _encode(claims: Dict[str, Any], secret: str, expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    to_encode = claims.copy()
    to_encode.update({"iat": now, "exp": now + expires_delta})
    return jwt.encode(to_encode, secret, algorithm=settings.ALGORITHM)


def _decode(token: str, secret: str, expected_type: str) -> Optional[Dict[str, Any]]:
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if payload.get("typ") != expected_type:
        return None
    return payload


def create_access_token(account_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed access token for an account

    Args:
        account_id: Account identity embedded as ``sub``
        expires_delta: Token lifetime, defaults to ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        str: Encoded JWT token
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _encode(
        {"sub": str(account_id), "typ": ACCESS_TOKEN_TYPE},
        settings.JWT_ACCESS_SECRET,
        expires_delta,
    )


def create_refresh_token(
    account_id: int,
    refresh_id: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed refresh token carrying the refresh identifier

    Args:
        account_id: Account identity embedded as ``sub``
        refresh_id: Identifier tracked in the account's refresh set (``tid``)
        expires_delta: Token lifetime, defaults to REFRESH_TOKEN_EXPIRE_DAYS

    Returns:
        str: Encoded JWT token
    """
    if expires_delta is None:
        expires_delta = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    return _encode(
        {"sub": str(account_id), "tid": refresh_id, "typ": REFRESH_TOKEN_TYPE},
        settings.JWT_REFRESH_SECRET,
        expires_delta,
    )


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and verify an access token

    Returns:
        Optional[Dict]: Decoded token data or None if invalid
    """
    return _decode(token, settings.JWT_ACCESS_SECRET, ACCESS_TOKEN_TYPE)


def decode_refresh_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and verify a refresh token

    Returns:
        Optional[Dict]: Decoded token data or None if invalid
    """
    return _decode(token, settings.JWT_REFRESH_SECRET, REFRESH_TOKEN_TYPE)
