"""Toggle-vote engine shared by discussions, replies and answers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable
import logging

from sqlalchemy import case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from safecircle.core.exceptions import (
    ConcurrentModificationError,
    InvalidArgumentError,
    TargetNotFoundError,
)
from safecircle.models.community import Discussion, Reply, Vote, VOTE_TYPES
from safecircle.models.qna import Answer

logger = logging.getLogger(__name__)

# Kinds callers may vote on directly; answers go through the Q&A service.
FORUM_TARGET_TYPES = ("discussion", "reply")

_TARGET_MODELS = {
    "discussion": Discussion,
    "reply": Reply,
    "answer": Answer,
}

_COUNTERS = {
    "upvote": "upvotes",
    "downvote": "downvotes",
}


@dataclass(frozen=True)
class VoteResult:
    action: str  # added | removed | changed
    upvotes: int
    downvotes: int


def _counter_change(column, delta: int):
    """SQL expression moving a tally by one; decrements never go below zero."""
    if delta > 0:
        return column + 1
    return case((column > 0, column - 1), else_=0)


class VoteService:
    """One vote per (account, target), with tallies kept in the same transaction."""

    @staticmethod
    def _validate(target_kind: str, vote_kind: str, allowed_targets: Iterable[str]) -> None:
        if target_kind not in allowed_targets:
            raise InvalidArgumentError(
                "Invalid vote parameters",
                details={"target_type": target_kind, "allowed": list(allowed_targets)},
            )
        if vote_kind not in VOTE_TYPES:
            raise InvalidArgumentError(
                "Invalid vote parameters",
                details={"vote_type": vote_kind, "allowed": list(VOTE_TYPES)},
            )

    @staticmethod
    def _mutate_vote_row(
        db: Session,
        account_id: int,
        target_id: int,
        target_kind: str,
        vote_kind: str,
    ) -> tuple:
        """Apply the vote-row half of a toggle; returns (action, counter deltas)."""
        existing = (
            db.query(Vote)
            .filter(
                Vote.user_id == account_id,
                Vote.target_id == target_id,
                Vote.target_type == target_kind,
            )
            .first()
        )

        if existing is None:
            db.add(
                Vote(
                    user_id=account_id,
                    target_id=target_id,
                    target_type=target_kind,
                    vote_type=vote_kind,
                )
            )
            db.flush()
            return "added", {vote_kind: 1}

        previous = existing.vote_type
        # Compare-and-swap on the vote kind we read
        row = db.query(Vote).filter(Vote.id == existing.id, Vote.vote_type == previous)
        if previous == vote_kind:
            changed = row.delete(synchronize_session=False)
            action, deltas = "removed", {vote_kind: -1}
        else:
            changed = row.update({Vote.vote_type: vote_kind}, synchronize_session=False)
            action, deltas = "changed", {previous: -1, vote_kind: 1}

        # Another request changed this row between our read and write.
        if changed != 1:
            raise ConcurrentModificationError("Vote changed concurrently; retry the request")
        return action, deltas

    @staticmethod
    def apply_vote(
        db: Session,
        account_id: int,
        target_id: int,
        target_kind: str,
        vote_kind: str,
    ) -> VoteResult:
        """
        Toggle ``vote_kind`` by ``account_id`` on any votable target.

        The vote row change and the tally update commit together or not at
        all. Any pending changes already in ``db`` are committed with them.

        Raises:
            InvalidArgumentError: unknown target or vote kind
            TargetNotFoundError: target does not exist
            ConcurrentModificationError: lost a race against the same account
        """
        VoteService._validate(target_kind, vote_kind, tuple(_TARGET_MODELS))
        model = _TARGET_MODELS[target_kind]

        if db.query(model.id).filter(model.id == target_id).first() is None:
            raise TargetNotFoundError(target_kind)

        try:
            action, deltas = VoteService._mutate_vote_row(
                db, account_id, target_id, target_kind, vote_kind
            )
            values = {}
            for kind, delta in deltas.items():
                column = getattr(model, _COUNTERS[kind])
                values[column] = _counter_change(column, delta)
            db.query(model).filter(model.id == target_id).update(values, synchronize_session=False)
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConcurrentModificationError("Vote was cast concurrently; retry the request")
        except Exception:
            db.rollback()
            raise

        tally = db.query(model.upvotes, model.downvotes).filter(model.id == target_id).one()
        logger.info(
            f"Vote {action}: user={account_id} {target_kind}={target_id} "
            f"vote={vote_kind} tally=+{tally.upvotes}/-{tally.downvotes}"
        )
        return VoteResult(action=action, upvotes=tally.upvotes, downvotes=tally.downvotes)

    @staticmethod
    def toggle_vote(
        db: Session,
        account_id: int,
        target_id: int,
        target_kind: str,
        vote_kind: str,
    ) -> VoteResult:
        """Toggle a vote on a discussion or reply."""
        VoteService._validate(target_kind, vote_kind, FORUM_TARGET_TYPES)
        return VoteService.apply_vote(db, account_id, target_id, target_kind, vote_kind)

    @staticmethod
    def get_votes_for_targets(
        db: Session,
        account_id: int,
        target_ids: Iterable[int],
        target_kind: str,
    ) -> Dict[int, str]:
        """Map each target the account has voted on to its vote kind."""
        if target_kind not in FORUM_TARGET_TYPES:
            raise InvalidArgumentError(
                "Invalid target type",
                details={"target_type": target_kind, "allowed": list(FORUM_TARGET_TYPES)},
            )
        ids = list(target_ids)
        if not ids:
            return {}
        rows = db.query(Vote.target_id, Vote.vote_type).filter(
            Vote.user_id == account_id,
            Vote.target_type == target_kind,
            Vote.target_id.in_(ids),
        )
        return {row.target_id: row.vote_type for row in rows}

    @staticmethod
    def delete_votes_for_targets(db: Session, target_kind: str, target_ids: Iterable[int]) -> int:
        """Drop vote rows for removed targets. Does not commit."""
        ids = list(target_ids)
        if not ids:
            return 0
        return (
            db.query(Vote)
            .filter(Vote.target_type == target_kind, Vote.target_id.in_(ids))
            .delete(synchronize_session=False)
        )


vote_service = VoteService()
