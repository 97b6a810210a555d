"""Q&A routes"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from safecircle.core.database import get_db
from safecircle.models.qna import Question
from safecircle.models.user import User
from safecircle.schemas.qna import (
    AnswerCreate,
    AnswerResponse,
    QuestionCreate,
    QuestionEnvelope,
    QuestionListResponse,
    QuestionResponse,
)
from safecircle.services.qna_service import qna_service, rank_answers
from safecircle.services.token_service import AuthContext
from safecircle.api.deps import get_auth_context, get_current_user

router = APIRouter()


def _shape(question: Question) -> QuestionResponse:
    shaped = QuestionResponse.model_validate(question)
    shaped.answers = [AnswerResponse.model_validate(a) for a in rank_answers(question.answers)]
    return shaped


@router.get("/", response_model=QuestionListResponse)
def list_questions(
    sort: str = "recent",
    context: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """List up to 50 questions, ``recent`` (default) or ``upvoted``"""
    questions = qna_service.list_questions(db, sort)
    return QuestionListResponse(questions=[_shape(q) for q in questions])


@router.post("/", response_model=QuestionEnvelope, status_code=status.HTTP_201_CREATED)
def create_question(
    data: QuestionCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    question = qna_service.create_question(db, current_user.id, data)
    return QuestionEnvelope(question=_shape(question))


@router.post("/{question_id}/answers", response_model=QuestionEnvelope)
def add_answer(
    question_id: int,
    data: AnswerCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    question = qna_service.add_answer(db, current_user.id, question_id, data.content)
    return QuestionEnvelope(question=_shape(question))


@router.post("/{question_id}/answers/{answer_id}/upvote", response_model=QuestionEnvelope)
def upvote_answer(
    question_id: int,
    answer_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Upvote an answer; upvoting again withdraws the vote"""
    question = qna_service.apply_answer_vote(db, current_user.id, question_id, answer_id, "up")
    return QuestionEnvelope(question=_shape(question))


@router.post("/{question_id}/answers/{answer_id}/downvote", response_model=QuestionEnvelope)
def downvote_answer(
    question_id: int,
    answer_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Downvote an answer; downvoting again withdraws the vote"""
    question = qna_service.apply_answer_vote(db, current_user.id, question_id, answer_id, "down")
    return QuestionEnvelope(question=_shape(question))


@router.post("/{question_id}/answers/{answer_id}/accept", response_model=QuestionEnvelope)
def accept_answer(
    question_id: int,
    answer_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Accept an answer (question author only); replaces any earlier choice"""
    question = qna_service.accept_answer(db, current_user.id, question_id, answer_id)
    return QuestionEnvelope(question=_shape(question))
