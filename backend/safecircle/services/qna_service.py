"""Q&A service - questions, answers, answer voting and acceptance"""

from datetime import datetime, timezone
from typing import Iterable, List
import logging

from sqlalchemy import case, func
from sqlalchemy.orm import Session, selectinload

from safecircle.core.exceptions import AuthorizationError, InvalidArgumentError, ResourceNotFoundError
from safecircle.models.qna import Answer, Question
from safecircle.schemas.qna import QuestionCreate
from safecircle.services.vote_service import vote_service

logger = logging.getLogger(__name__)

QUESTION_LIST_LIMIT = 50

_DIRECTIONS = {
    "up": "upvote",
    "down": "downvote",
}


def rank_answers(answers: Iterable[Answer]) -> List[Answer]:
    """Accepted answer first, then by upvotes descending; ties keep their order."""
    return sorted(answers, key=lambda a: (not a.is_accepted, -(a.upvotes or 0)))


class QnAService:
    """Service for the community Q&A board"""

    @staticmethod
    def _load_options():
        return (
            selectinload(Question.author),
            selectinload(Question.answers).selectinload(Answer.author),
            selectinload(Question.answers).selectinload(Answer.votes),
        )

    @staticmethod
    def get_question(db: Session, question_id: int) -> Question:
        """Get a question with its answers, or raise ResourceNotFoundError"""
        question = (
            db.query(Question)
            .options(*QnAService._load_options())
            .populate_existing()
            .filter(Question.id == question_id)
            .first()
        )
        if question is None:
            raise ResourceNotFoundError("Question")
        return question

    @staticmethod
    def list_questions(db: Session, sort: str = "recent", limit: int = QUESTION_LIST_LIMIT) -> List[Question]:
        """
        List questions newest first, or by the ``upvoted`` ordering.

        ``upvoted`` orders by the nested answer tally field: a question sorts
        by its highest answer upvote count (questions without answers last),
        then by last update. It is not a ranking by total question score.
        """
        query = db.query(Question).options(*QnAService._load_options())
        if sort == "upvoted":
            top_answer_upvotes = (
                db.query(func.max(Answer.upvotes))
                .filter(Answer.question_id == Question.id)
                .correlate(Question)
                .scalar_subquery()
            )
            query = query.order_by(
                func.coalesce(top_answer_upvotes, -1).desc(),
                Question.updated_at.desc(),
                Question.id.desc(),
            )
        else:
            query = query.order_by(Question.created_at.desc(), Question.id.desc())
        return query.limit(limit).all()

    @staticmethod
    def create_question(db: Session, author_id: int, data: QuestionCreate) -> Question:
        question = Question(
            author_id=author_id,
            title=data.title,
            description=data.description,
            category=data.category or "General",
        )
        db.add(question)
        db.commit()
        logger.info(f"Question {question.id} created by user {author_id}")
        return QnAService.get_question(db, question.id)

    @staticmethod
    def add_answer(db: Session, author_id: int, question_id: int, content: str) -> Question:
        question = QnAService.get_question(db, question_id)
        db.add(Answer(question_id=question.id, author_id=author_id, content=content))
        question.updated_at = datetime.now(timezone.utc)
        db.commit()
        return QnAService.get_question(db, question_id)

    @staticmethod
    def _get_answer(db: Session, question_id: int, answer_id: int) -> Answer:
        answer = (
            db.query(Answer)
            .filter(Answer.id == answer_id, Answer.question_id == question_id)
            .first()
        )
        if answer is None:
            raise ResourceNotFoundError("Answer")
        return answer

    @staticmethod
    def apply_answer_vote(
        db: Session,
        account_id: int,
        question_id: int,
        answer_id: int,
        direction: str,
    ) -> Question:
        """
        Up- or downvote an answer.

        Repeating a vote withdraws it; voting the other way moves the vote,
        so an account is never in both ``upvoted_by`` and ``downvoted_by``.
        """
        vote_kind = _DIRECTIONS.get(direction)
        if vote_kind is None:
            raise InvalidArgumentError(
                "Invalid vote direction", details={"direction": direction, "allowed": list(_DIRECTIONS)}
            )
        QnAService.get_question(db, question_id)
        QnAService._get_answer(db, question_id, answer_id)

        # Commits together with the vote.
        db.query(Question).filter(Question.id == question_id).update(
            {Question.updated_at: datetime.now(timezone.utc)}, synchronize_session=False
        )
        vote_service.apply_vote(db, account_id, answer_id, "answer", vote_kind)
        return QnAService.get_question(db, question_id)

    @staticmethod
    def accept_answer(db: Session, requester_id: int, question_id: int, answer_id: int) -> Question:
        """Mark one answer accepted and every sibling not accepted, in one statement."""
        question = QnAService.get_question(db, question_id)
        if question.author_id != requester_id:
            raise AuthorizationError("Only the question author can accept answers")
        QnAService._get_answer(db, question_id, answer_id)

        try:
            db.query(Answer).filter(Answer.question_id == question_id).update(
                {Answer.is_accepted: case((Answer.id == answer_id, True), else_=False)},
                synchronize_session=False,
            )
            db.query(Question).filter(Question.id == question_id).update(
                {Question.updated_at: datetime.now(timezone.utc)}, synchronize_session=False
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Answer {answer_id} accepted on question {question_id}")
        return QnAService.get_question(db, question_id)


qna_service = QnAService()
