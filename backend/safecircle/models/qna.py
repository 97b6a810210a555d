"""Q&A models: questions and their answers"""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship

from safecircle.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Question(Base):
    """Question owned by the account that asked it"""

    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(300), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=False, default="General")
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    author = relationship("User")
    answers = relationship(
        "Answer",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="Answer.id",
    )

    __table_args__ = (
        Index("idx_questions_created_at", "created_at"),
    )


class Answer(Base):
    """Answer to a question.

    Votes live in the shared ``votes`` table under target_type ``answer``;
    one row per account makes up- and downvotes mutually exclusive.
    """

    __tablename__ = "answers"

    id = Column(Integer, primary_key=True, index=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    upvotes = Column(Integer, nullable=False, default=0)
    downvotes = Column(Integer, nullable=False, default=0)
    is_accepted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    author = relationship("User")
    question = relationship("Question", back_populates="answers")
    votes = relationship(
        "Vote",
        primaryjoin="and_(foreign(Vote.target_id) == Answer.id, Vote.target_type == 'answer')",
        viewonly=True,
    )

    __table_args__ = (
        CheckConstraint("upvotes >= 0", name="ck_answers_upvotes"),
        CheckConstraint("downvotes >= 0", name="ck_answers_downvotes"),
        Index("idx_answers_question", "question_id"),
    )

    @property
    def upvoted_by(self) -> set:
        return {vote.user_id for vote in self.votes if vote.vote_type == "upvote"}

    @property
    def downvoted_by(self) -> set:
        return {vote.user_id for vote in self.votes if vote.vote_type == "downvote"}
