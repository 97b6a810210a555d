"""Access/refresh token issuance, rotation and revocation service."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple
import logging

from sqlalchemy.orm import Session

from safecircle.config import settings
from safecircle.core.exceptions import InvalidTokenError, RevokedTokenError, UnknownAccountError
from safecircle.core.security import (
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    generate_refresh_id,
)
from safecircle.models.security import RefreshToken
from safecircle.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedPair:
    access_token: str
    refresh_token: str
    refresh_id: str


@dataclass(frozen=True)
class AuthContext:
    """Identity established from a verified access token."""

    account_id: int


def _parse_subject(payload: dict) -> Optional[int]:
    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        return None


class TokenService:
    """Manage the per-account refresh set and the tokens derived from it."""

    @staticmethod
    def issue_pair(account_id: int) -> IssuedPair:
        """Sign a fresh access/refresh pair. Persisting ``refresh_id`` is the caller's job."""
        refresh_id = generate_refresh_id()
        return IssuedPair(
            access_token=create_access_token(account_id),
            refresh_token=create_refresh_token(account_id, refresh_id),
            refresh_id=refresh_id,
        )

    @staticmethod
    def _prune_sessions(db: Session, user_id: int) -> int:
        limit = settings.MAX_REFRESH_SESSIONS_PER_ACCOUNT
        if limit <= 0:
            return 0
        stale_ids = [
            token_pk
            for (token_pk,) in db.query(RefreshToken.id)
            .filter(RefreshToken.user_id == user_id)
            .order_by(RefreshToken.created_at.desc(), RefreshToken.id.desc())
            .offset(limit)
        ]
        if not stale_ids:
            return 0
        db.query(RefreshToken).filter(RefreshToken.id.in_(stale_ids)).delete(synchronize_session=False)
        return len(stale_ids)

    @staticmethod
    def start_session(db: Session, user: User) -> IssuedPair:
        """Issue a pair for a freshly authenticated account and record its refresh id."""
        pair = TokenService.issue_pair(user.id)
        try:
            db.add(RefreshToken(user_id=user.id, token_id=pair.refresh_id))
            db.flush()
            pruned = TokenService._prune_sessions(db, user.id)
            db.commit()
        except Exception:
            db.rollback()
            raise
        if pruned:
            logger.info(f"Pruned {pruned} stale refresh sessions for user {user.id}")
        return pair

    @staticmethod
    def _read_refresh_token(refresh_token: str) -> Tuple[int, str]:
        payload = decode_refresh_token(refresh_token)
        if not payload:
            raise InvalidTokenError("Invalid or expired refresh token")
        account_id = _parse_subject(payload)
        refresh_id = payload.get("tid")
        if account_id is None or not isinstance(refresh_id, str) or not refresh_id:
            raise InvalidTokenError("Malformed refresh token")
        return account_id, refresh_id

    @staticmethod
    def rotate(db: Session, refresh_token: str) -> Tuple[User, IssuedPair]:
        """
        Exchange a refresh token for a new pair, consuming the old identifier.

        The old identifier is removed with a conditional delete; only the
        request whose delete actually removes the row may insert the new one,
        so two concurrent rotations of the same token cannot both succeed.

        Raises:
            InvalidTokenError: signature, expiry or claims check failed
            UnknownAccountError: the embedded account does not exist
            RevokedTokenError: the identifier is not in the account's set
        """
        account_id, refresh_id = TokenService._read_refresh_token(refresh_token)

        user = db.query(User).filter(User.id == account_id).first()
        if user is None or not user.is_active:
            raise UnknownAccountError()

        try:
            removed = (
                db.query(RefreshToken)
                .filter(RefreshToken.user_id == user.id, RefreshToken.token_id == refresh_id)
                .delete(synchronize_session=False)
            )
            if removed != 1:
                db.rollback()
                logger.warning(f"Rejected replayed or revoked refresh token for user {user.id}")
                raise RevokedTokenError()

            pair = TokenService.issue_pair(user.id)
            db.add(RefreshToken(user_id=user.id, token_id=pair.refresh_id))
            db.commit()
        except RevokedTokenError:
            raise
        except Exception:
            db.rollback()
            raise

        db.refresh(user)
        logger.info(f"Rotated refresh token for user {user.id}")
        return user, pair

    @staticmethod
    def revoke(db: Session, refresh_token: str) -> bool:
        """
        Remove the refresh identifier carried by ``refresh_token``.

        Invalid tokens and unknown accounts count as already logged out.

        Returns:
            True if an identifier was removed
        """
        payload = decode_refresh_token(refresh_token)
        if not payload:
            return False
        account_id = _parse_subject(payload)
        refresh_id = payload.get("tid")
        if account_id is None or not refresh_id:
            return False

        deleted = (
            db.query(RefreshToken)
            .filter(RefreshToken.user_id == account_id, RefreshToken.token_id == refresh_id)
            .delete(synchronize_session=False)
        )
        db.commit()
        removed = deleted == 1
        if removed:
            logger.info(f"Revoked refresh token for user {account_id}")
        return removed

    @staticmethod
    def authenticate(access_token: str) -> AuthContext:
        """Verify an access token without touching the database."""
        payload = decode_access_token(access_token)
        if not payload:
            raise InvalidTokenError()
        account_id = _parse_subject(payload)
        if account_id is None:
            raise InvalidTokenError("Invalid token payload")
        return AuthContext(account_id=account_id)


token_service = TokenService()
