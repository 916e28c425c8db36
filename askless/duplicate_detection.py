"""
Duplicate question detection.

Uses tag overlap to find earlier questions that a new question most likely
repeats, so their existing answers can be reused instead of asking the bots
again.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from .config import settings
from .db_models import DBQuestion, DBQuestionTag, DBTag
from .tag_service import normalize_tag_names

logger = logging.getLogger(__name__)


@dataclass
class SimilarQuestion:
    question: DBQuestion
    overlap_count: int
    matching_tags: List[str] = field(default_factory=list)


class DuplicateDetector:
    """Detect earlier questions sharing enough tags with a new one."""

    def __init__(self, db: Session, min_overlap: Optional[int] = None):
        """
        Initialize duplicate detector.

        Args:
            db: Database session
            min_overlap: Shared tags required (defaults to settings.duplicate_min_overlap)
        """
        self.db = db
        self.min_overlap = settings.duplicate_min_overlap if min_overlap is None else min_overlap

    def threshold_for(self, tag_count: int, min_overlap: Optional[int] = None) -> int:
        """Overlap needed for a question with tag_count tags: min(configured, tag_count)."""
        configured = self.min_overlap if min_overlap is None else min_overlap
        return min(configured, tag_count)

    def find_similar_questions(
        self,
        tag_names: List[str],
        min_overlap: Optional[int] = None,
        limit: int = 5
    ) -> List[SimilarQuestion]:
        """
        Find prior questions sharing at least threshold_for(len(tags)) tags.

        Args:
            tag_names: Tags of the new question
            min_overlap: Per-call override of the configured threshold
            limit: Maximum number of matches to return

        Returns:
            Matches ranked by overlap (most first), then most recent first.
            An empty tag list never matches anything.
        """
        names = normalize_tag_names(tag_names)
        if not names:
            return []

        threshold = self.threshold_for(len(names), min_overlap)
        overlap = func.count(DBQuestionTag.tag_id).label("overlap_count")

        rows = (
            self.db.query(DBQuestion, overlap)
            .join(DBQuestionTag, DBQuestionTag.question_id == DBQuestion.id)
            .join(DBTag, DBTag.id == DBQuestionTag.tag_id)
            .filter(DBTag.name.in_(names))
            .group_by(DBQuestion.id)
            .having(overlap >= threshold)
            .order_by(overlap.desc(), DBQuestion.created_at.desc())
            .limit(limit)
            .all()
        )

        matches = []
        for question, count in rows:
            matching = [
                name for (name,) in self.db.query(DBTag.name)
                .join(DBQuestionTag, DBQuestionTag.tag_id == DBTag.id)
                .filter(DBQuestionTag.question_id == question.id, DBTag.name.in_(names))
                .order_by(DBTag.name.asc())
                .all()
            ]
            matches.append(SimilarQuestion(question=question, overlap_count=count, matching_tags=matching))

        if matches:
            logger.info(
                f"Found {len(matches)} similar questions for tags {names} "
                f"(threshold={threshold}, top={matches[0].question.id})"
            )
        return matches

    def record_hit(self, question: DBQuestion) -> DBQuestion:
        """Increment the reuse counter of a question that absorbed a duplicate."""
        self.db.query(DBQuestion).filter(DBQuestion.id == question.id).update(
            {DBQuestion.search_count: DBQuestion.search_count + 1},
            synchronize_session=False,
        )
        self.db.commit()
        self.db.refresh(question)
        return question
