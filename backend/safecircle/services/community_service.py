"""Community service - discussions and replies"""

from math import ceil
from typing import List, Optional, Tuple
import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from safecircle.core.exceptions import AuthorizationError, ResourceNotFoundError
from safecircle.models.community import Discussion, Reply
from safecircle.schemas.community import DiscussionCreate, DiscussionUpdate
from safecircle.services.vote_service import vote_service

logger = logging.getLogger(__name__)

CATEGORIES = [
    {"id": "frontend", "name": "Frontend", "color": "#32CD32"},
    {"id": "backend", "name": "Backend", "color": "#1E90FF"},
    {"id": "ai", "name": "AI & ML", "color": "#9333EA"},
    {"id": "safety", "name": "Safety", "color": "#DC2626"},
    {"id": "general", "name": "General", "color": "#6B7280"},
    {"id": "bugs", "name": "Bug Reports", "color": "#F59E0B"},
]

_DISCUSSION_SORTS = {
    "popular": (Discussion.upvotes.desc(), Discussion.views.desc()),
    "trending": (Discussion.reply_count.desc(), Discussion.upvotes.desc()),
}


def page_count(total: int, limit: int) -> int:
    return ceil(total / limit) if limit else 0


class CommunityService:
    """Service for forum discussions and replies"""

    @staticmethod
    def _get_discussion(db: Session, discussion_id: int) -> Discussion:
        discussion = (
            db.query(Discussion)
            .options(selectinload(Discussion.author))
            .filter(Discussion.id == discussion_id)
            .first()
        )
        if discussion is None:
            raise ResourceNotFoundError("Discussion")
        return discussion

    @staticmethod
    def _get_owned_discussion(db: Session, discussion_id: int, user_id: int, verb: str) -> Discussion:
        discussion = CommunityService._get_discussion(db, discussion_id)
        if discussion.author_id != user_id:
            raise AuthorizationError(f"Not authorized to {verb} this discussion")
        return discussion

    @staticmethod
    def create_discussion(db: Session, author_id: int, data: DiscussionCreate) -> Discussion:
        discussion = Discussion(
            author_id=author_id,
            title=data.title,
            content=data.content,
            category=data.category,
            tags=data.tags,
        )
        db.add(discussion)
        db.commit()
        logger.info(f"Discussion {discussion.id} created by user {author_id}")
        return CommunityService._get_discussion(db, discussion.id)

    @staticmethod
    def list_discussions(
        db: Session,
        *,
        category: Optional[str] = None,
        sort: str = "recent",
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Discussion], int]:
        """
        Filter, sort and page discussions

        Returns:
            Tuple of (page of discussions, total matching)
        """
        filters = []
        if category and category != "all":
            filters.append(Discussion.category == category)
        if search:
            pattern = f"%{search.strip()}%"
            filters.append(or_(Discussion.title.ilike(pattern), Discussion.content.ilike(pattern)))

        order_by = _DISCUSSION_SORTS.get(sort, (Discussion.created_at.desc(),))
        query = db.query(Discussion).filter(*filters)
        total = query.count()
        discussions = (
            query.options(selectinload(Discussion.author))
            .order_by(*order_by, Discussion.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return discussions, total

    @staticmethod
    def view_discussion(db: Session, discussion_id: int) -> Discussion:
        """Fetch a discussion, counting the view atomically"""
        updated = (
            db.query(Discussion)
            .filter(Discussion.id == discussion_id)
            .update({Discussion.views: Discussion.views + 1}, synchronize_session=False)
        )
        if updated != 1:
            db.rollback()
            raise ResourceNotFoundError("Discussion")
        db.commit()
        return CommunityService._get_discussion(db, discussion_id)

    @staticmethod
    def update_discussion(db: Session, discussion_id: int, user_id: int, data: DiscussionUpdate) -> Discussion:
        discussion = CommunityService._get_owned_discussion(db, discussion_id, user_id, "update")
        if data.title:
            discussion.title = data.title
        if data.content:
            discussion.content = data.content
        if data.tags is not None:
            discussion.tags = data.tags
        db.commit()
        return CommunityService._get_discussion(db, discussion_id)

    @staticmethod
    def delete_discussion(db: Session, discussion_id: int, user_id: int) -> None:
        """Delete a discussion with its replies and every vote cast on either"""
        discussion = CommunityService._get_owned_discussion(db, discussion_id, user_id, "delete")
        reply_ids = [
            reply_id for (reply_id,) in db.query(Reply.id).filter(Reply.discussion_id == discussion_id)
        ]
        try:
            vote_service.delete_votes_for_targets(db, "reply", reply_ids)
            vote_service.delete_votes_for_targets(db, "discussion", [discussion_id])
            db.delete(discussion)
            db.commit()
        except Exception:
            db.rollback()
            raise
        logger.info(f"Discussion {discussion_id} deleted with {len(reply_ids)} replies")

    @staticmethod
    def create_reply(db: Session, discussion_id: int, author_id: int, content: str) -> Reply:
        CommunityService._get_discussion(db, discussion_id)
        reply = Reply(discussion_id=discussion_id, author_id=author_id, content=content)
        try:
            db.add(reply)
            db.query(Discussion).filter(Discussion.id == discussion_id).update(
                {Discussion.reply_count: Discussion.reply_count + 1}, synchronize_session=False
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        return db.query(Reply).options(selectinload(Reply.author)).filter(Reply.id == reply.id).one()

    @staticmethod
    def list_replies(
        db: Session,
        discussion_id: int,
        *,
        sort: str = "recent",
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Reply], int]:
        order_by = (Reply.upvotes.desc(),) if sort == "popular" else (Reply.created_at.desc(),)
        query = db.query(Reply).filter(Reply.discussion_id == discussion_id)
        total = query.count()
        replies = (
            query.options(selectinload(Reply.author))
            .order_by(*order_by, Reply.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return replies, total


community_service = CommunityService()
