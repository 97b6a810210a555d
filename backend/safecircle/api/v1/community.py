"""Community forum routes: discussions, replies and votes"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Dict, List, Optional

from safecircle.core.database import get_db
from safecircle.schemas.community import (
    Category,
    DiscussionCreate,
    DiscussionListResponse,
    DiscussionResponse,
    DiscussionUpdate,
    ReplyCreate,
    ReplyListResponse,
    ReplyResponse,
    UserVotesRequest,
    VoteRequest,
    VoteResultResponse,
)
from safecircle.schemas.response import Pagination
from safecircle.services.community_service import CATEGORIES, community_service, page_count
from safecircle.services.token_service import AuthContext
from safecircle.services.vote_service import vote_service
from safecircle.api.deps import get_auth_context, get_current_user
from safecircle.models.user import User

router = APIRouter()


@router.get("/categories")
def get_categories(context: AuthContext = Depends(get_auth_context)):
    """List the discussion categories"""
    return {"success": True, "data": [Category(**c) for c in CATEGORIES]}


@router.post("/discussions", status_code=status.HTTP_201_CREATED)
def create_discussion(
    data: DiscussionCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Start a discussion"""
    discussion = community_service.create_discussion(db, current_user.id, data)
    return {"success": True, "data": DiscussionResponse.model_validate(discussion)}


@router.get("/discussions", response_model=DiscussionListResponse)
def list_discussions(
    category: Optional[str] = None,
    sort: str = "recent",
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    context: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """
    List discussions

    Args:
        category: Category id, or ``all``
        sort: ``recent`` (default), ``popular`` or ``trending``
        search: Substring matched against title and content
        page: 1-based page number
        limit: Page size
    """
    discussions, total = community_service.list_discussions(
        db, category=category, sort=sort, search=search, page=page, limit=limit
    )
    return DiscussionListResponse(
        data=[DiscussionResponse.model_validate(d) for d in discussions],
        pagination=Pagination(total=total, page=page, pages=page_count(total, limit)),
    )


@router.get("/discussions/{discussion_id}")
def get_discussion(
    discussion_id: int,
    context: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Get one discussion; each fetch counts as a view"""
    discussion = community_service.view_discussion(db, discussion_id)
    return {"success": True, "data": DiscussionResponse.model_validate(discussion)}


@router.put("/discussions/{discussion_id}")
def update_discussion(
    discussion_id: int,
    data: DiscussionUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Edit a discussion (author only)"""
    discussion = community_service.update_discussion(db, discussion_id, current_user.id, data)
    return {"success": True, "data": DiscussionResponse.model_validate(discussion)}


@router.delete("/discussions/{discussion_id}")
def delete_discussion(
    discussion_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete a discussion with its replies and votes (author only)"""
    community_service.delete_discussion(db, discussion_id, current_user.id)
    return {"success": True, "message": "Discussion deleted successfully"}


@router.post("/discussions/{discussion_id}/replies", status_code=status.HTTP_201_CREATED)
def create_reply(
    discussion_id: int,
    data: ReplyCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Reply to a discussion"""
    reply = community_service.create_reply(db, discussion_id, current_user.id, data.content)
    return {"success": True, "data": ReplyResponse.model_validate(reply)}


@router.get("/discussions/{discussion_id}/replies", response_model=ReplyListResponse)
def list_replies(
    discussion_id: int,
    sort: str = "recent",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    context: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """List replies, newest first or by upvotes with ``sort=popular``"""
    replies, total = community_service.list_replies(
        db, discussion_id, sort=sort, page=page, limit=limit
    )
    return ReplyListResponse(
        data=[ReplyResponse.model_validate(r) for r in replies],
        pagination=Pagination(total=total, page=page, pages=page_count(total, limit)),
    )


@router.post("/vote")
def toggle_vote(
    vote: VoteRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Toggle a vote on a discussion or reply

    Returns:
        ``added``, ``removed`` or ``changed`` with the target's tally
    """
    result = vote_service.toggle_vote(
        db, current_user.id, vote.target_id, vote.target_type, vote.vote_type
    )
    return {
        "success": True,
        "data": VoteResultResponse(
            action=result.action, upvotes=result.upvotes, downvotes=result.downvotes
        ),
    }


@router.post("/votes")
def get_user_votes(
    query: UserVotesRequest,
    context: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """The caller's own votes on the given targets, keyed by target id"""
    votes: Dict[int, str] = vote_service.get_votes_for_targets(
        db, context.account_id, query.target_ids, query.target_type
    )
    return {"success": True, "data": {str(k): v for k, v in votes.items()}}
