"""Community forum models: discussions, replies and their votes"""

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    JSON,
    UniqueConstraint,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from safecircle.core.database import Base

DISCUSSION_CATEGORIES = ("frontend", "backend", "ai", "safety", "general", "bugs")
VOTE_TYPES = ("upvote", "downvote")
VOTE_TARGET_TYPES = ("discussion", "reply", "answer")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Discussion(Base):
    """Forum thread with denormalized vote tallies"""

    __tablename__ = "discussions"

    id = Column(Integer, primary_key=True, index=True)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    category = Column(String(20), nullable=False, default="general")
    tags = Column(JSON, nullable=False, default=list)
    upvotes = Column(Integer, nullable=False, default=0)
    downvotes = Column(Integer, nullable=False, default=0)
    views = Column(Integer, nullable=False, default=0)
    reply_count = Column(Integer, nullable=False, default=0)
    is_pinned = Column(Boolean, nullable=False, default=False)
    is_closed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    author = relationship("User")
    replies = relationship("Reply", back_populates="discussion", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("upvotes >= 0", name="ck_discussions_upvotes"),
        CheckConstraint("downvotes >= 0", name="ck_discussions_downvotes"),
        Index("idx_discussions_category", "category"),
        Index("idx_discussions_created_at", "created_at"),
    )


class Reply(Base):
    """Reply posted under a discussion"""

    __tablename__ = "replies"

    id = Column(Integer, primary_key=True, index=True)
    discussion_id = Column(Integer, ForeignKey("discussions.id", ondelete="CASCADE"), nullable=False)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    upvotes = Column(Integer, nullable=False, default=0)
    downvotes = Column(Integer, nullable=False, default=0)
    is_accepted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    author = relationship("User")
    discussion = relationship("Discussion", back_populates="replies")

    __table_args__ = (
        CheckConstraint("upvotes >= 0", name="ck_replies_upvotes"),
        CheckConstraint("downvotes >= 0", name="ck_replies_downvotes"),
        Index("idx_replies_discussion_created", "discussion_id", "created_at"),
    )


class Vote(Base):
    """One account's vote on one target.

    The unique constraint over (user_id, target_id, target_type) is what makes
    concurrent first votes from the same account race-safe.
    """

    __tablename__ = "votes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    target_id = Column(Integer, nullable=False)
    target_type = Column(String(20), nullable=False)
    vote_type = Column(String(10), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "target_id", "target_type", name="uq_votes_user_target"),
        CheckConstraint("vote_type IN ('upvote', 'downvote')", name="ck_votes_vote_type"),
        CheckConstraint(
            "target_type IN ('discussion', 'reply', 'answer')", name="ck_votes_target_type"
        ),
        Index("idx_votes_target", "target_type", "target_id"),
    )

    def __repr__(self):
        return (
            f"<Vote(user_id={self.user_id}, {self.target_type}={self.target_id}, "
            f"vote_type='{self.vote_type}')>"
        )
