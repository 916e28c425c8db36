"""
Tag resolution.

Maps free-text or user-selected tags onto canonical tag records and links
them to questions. Tags are global and unique by lower-cased name.
"""

import logging
from typing import Iterable, List

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .db_models import DBQuestionTag, DBTag

logger = logging.getLogger(__name__)

MAX_TAGS_PER_QUESTION = 5


def normalize_tag_names(names: Iterable[str], limit: int = MAX_TAGS_PER_QUESTION) -> List[str]:
    """Strip, lower-case and de-duplicate tag names, keeping input order."""
    seen = []
    for name in names or []:
        if not isinstance(name, str):
            continue
        cleaned = name.strip().lower()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return seen[:limit]


class TagsService:
    """Manage global tags and question-tag links."""

    def __init__(self, db: Session):
        self.db = db

    def list_tags(self) -> List[DBTag]:
        return self.db.query(DBTag).order_by(DBTag.name.asc()).all()

    def get_tags_by_ids(self, tag_ids: Iterable[int]) -> List[DBTag]:
        ids = list(dict.fromkeys(tag_ids or []))
        if not ids:
            return []
        found = {t.id: t for t in self.db.query(DBTag).filter(DBTag.id.in_(ids)).all()}
        return [found[i] for i in ids if i in found]

    def create_tag(self, name: str) -> DBTag:
        """Create a tag, or return the existing one with the same name."""
        tags = self.get_or_create_tags([name])
        if not tags:
            raise ValueError("Tag name is required")
        return tags[0]

    def get_or_create_tags(self, names: Iterable[str]) -> List[DBTag]:
        """
        Resolve tag names to records, creating missing ones.

        Existing tags come first, newly created ones are appended. A tag that
        fails to insert is logged and left out instead of failing the call.
        """
        tag_names = normalize_tag_names(names)
        if not tag_names:
            return []

        existing = self.db.query(DBTag).filter(DBTag.name.in_(tag_names)).all()
        existing_names = {t.name for t in existing}
        existing.sort(key=lambda t: tag_names.index(t.name))

        created = []
        for name in tag_names:
            if name in existing_names:
                continue
            tag = DBTag(name=name)
            self.db.add(tag)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                # Created concurrently; reuse it
                raced = self.db.query(DBTag).filter(DBTag.name == name).first()
                if raced:
                    created.append(raced)
                continue
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Error creating tag '{name}': {e}")
                continue
            created.append(tag)
            logger.info(f"Created tag '{name}'")

        return existing + created

    def get_question_tags(self, question_id: str) -> List[DBTag]:
        return (
            self.db.query(DBTag)
            .join(DBQuestionTag, DBQuestionTag.tag_id == DBTag.id)
            .filter(DBQuestionTag.question_id == question_id)
            .order_by(DBTag.name.asc())
            .all()
        )

    def link_question_to_tags(self, question_id: str, tag_ids: Iterable[int]) -> int:
        """
        Attach tags to a question.

        Returns:
            Number of links written; failures are logged, never raised
        """
        ids = list(dict.fromkeys(tag_ids or []))
        if not ids:
            return 0

        for tag_id in ids:
            self.db.add(DBQuestionTag(question_id=question_id, tag_id=tag_id))
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error linking tags {ids} to question {question_id}: {e}")
            return 0
        return len(ids)
