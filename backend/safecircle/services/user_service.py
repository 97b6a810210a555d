"""User service - handles signup, login and account lookup"""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime, timezone
from safecircle.models.user import User
from safecircle.schemas.user import UserCreate
from safecircle.core.security import get_password_hash, verify_password
from safecircle.core.exceptions import InvalidCredentialsError, ResourceAlreadyExistsError
import logging

logger = logging.getLogger(__name__)


class UserService:
    """Service for account management"""

    @staticmethod
    def create_user(db: Session, user_data: UserCreate) -> User:
        """
        Create new account

        Args:
            db: Database session
            user_data: Signup data

        Returns:
            Created user

        Raises:
            ResourceAlreadyExistsError: If the email is already registered
        """
        if UserService.get_user_by_email(db, user_data.email):
            raise ResourceAlreadyExistsError("User")

        user = User(
            name=user_data.name.strip(),
            email=user_data.email,
            password_hash=get_password_hash(user_data.password),
        )

        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            # Lost a race with a concurrent signup for the same email.
            db.rollback()
            raise ResourceAlreadyExistsError("User")
        db.refresh(user)

        logger.info(f"Created user: {user.email} (id: {user.id})")
        return user

    @staticmethod
    def authenticate_user(db: Session, email: str, password: str) -> User:
        """
        Authenticate user by email and password

        Args:
            db: Database session
            email: Email, matched case-sensitively
            password: Password

        Returns:
            Authenticated user
        """
        user = UserService.get_user_by_email(db, email)
        if not user or not user.is_active:
            raise InvalidCredentialsError()

        if not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()

        user.last_login = datetime.now(timezone.utc)
        db.commit()

        logger.info(f"User authenticated: {email}")
        return user

    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        """Get user by ID"""
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        """Get user by email"""
        return db.query(User).filter(User.email == email).first()


# Singleton instance
user_service = UserService()
