"""
Vote aggregation.

Votes are rows, never counters: score is always count(up) - count(down)
computed at read time.
"""

import logging
from typing import Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from .database import has_table
from .db_models import DBVote
from .exceptions import VoteStoreUnavailableError
from .models import VoteCounts
from .qa_service import AnswerService, QuestionService

logger = logging.getLogger(__name__)

VOTE_TYPES = ("upvote", "downvote")


def _target(question_id: Optional[str], answer_id: Optional[str]) -> Tuple[str, str]:
    """Return (column name, id) for exactly one vote target."""
    if bool(question_id) == bool(answer_id):
        raise ValueError("Exactly one of questionId or answerId is required")
    return ("question_id", question_id) if question_id else ("answer_id", answer_id)


class VoteService:
    """Create, toggle and count votes."""

    def __init__(self, db: Session):
        self.db = db

    def _require_store(self):
        if not has_table(self.db, DBVote.__tablename__):
            logger.error("Votes table is missing")
            raise VoteStoreUnavailableError()

    def _target_filter(self, question_id: Optional[str], answer_id: Optional[str]):
        column, target_id = _target(question_id, answer_id)
        return getattr(DBVote, column) == target_id

    def get_user_vote(
        self,
        user_id: str,
        question_id: Optional[str] = None,
        answer_id: Optional[str] = None
    ) -> Optional[DBVote]:
        self._require_store()
        if not user_id:
            return None
        return (
            self.db.query(DBVote)
            .filter(DBVote.user_id == user_id, self._target_filter(question_id, answer_id))
            .first()
        )

    def create_or_toggle_vote(
        self,
        user_id: str,
        vote_type: str,
        question_id: Optional[str] = None,
        answer_id: Optional[str] = None
    ) -> Optional[DBVote]:
        """
        Apply a vote.

        No prior vote inserts one, the same type again removes it, and the
        other type flips the existing row in place.

        Returns:
            The vote now on record, or None after a toggle-off

        Raises:
            ValueError: Bad vote type, or not exactly one target
            NotFoundError: The question or answer does not exist
            VoteStoreUnavailableError: The votes table does not exist
        """
        if vote_type not in VOTE_TYPES:
            raise ValueError(f"Invalid vote type: {vote_type}")
        column, target_id = _target(question_id, answer_id)
        self._require_store()

        if question_id:
            QuestionService(self.db).get_question(question_id)
        else:
            AnswerService(self.db).get_answer(answer_id)

        existing = self.get_user_vote(user_id, question_id, answer_id)

        if existing is None:
            vote = DBVote(user_id=user_id, vote_type=vote_type, **{column: target_id})
            self.db.add(vote)
            self.db.commit()
            self.db.refresh(vote)
            return vote

        if existing.vote_type == vote_type:
            self.db.delete(existing)
            self.db.commit()
            logger.debug(f"Removed {vote_type} by {user_id} on {column}={target_id}")
            return None

        existing.vote_type = vote_type
        self.db.commit()
        self.db.refresh(existing)
        return existing

    def get_vote_counts(
        self,
        question_id: Optional[str] = None,
        answer_id: Optional[str] = None
    ) -> VoteCounts:
        self._require_store()
        rows = (
            self.db.query(DBVote.vote_type, func.count(DBVote.id))
            .filter(self._target_filter(question_id, answer_id))
            .group_by(DBVote.vote_type)
            .all()
        )
        counts = dict(rows)
        upvotes = counts.get("upvote", 0)
        downvotes = counts.get("downvote", 0)
        return VoteCounts(upvotes=upvotes, downvotes=downvotes, score=upvotes - downvotes)
