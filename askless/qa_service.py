"""
Question / answer / comment persistence.

Thin CRUD layered on the profile and tag resolvers. Ownership checks live
here so every router gets the same rules.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from .db_models import DBAnswer, DBComment, DBQuestion
from .exceptions import NotFoundError, PermissionDeniedError
from .tag_service import TagsService

logger = logging.getLogger(__name__)


class QuestionService:
    """Create, read and delete questions."""

    def __init__(self, db: Session):
        self.db = db

    def create_question(
        self,
        user_id: str,
        title: str,
        content: str,
        tag_ids: Optional[List[int]] = None
    ) -> DBQuestion:
        """Persist a question and link its tags (linking failures are tolerated)."""
        question = DBQuestion(
            user_id=user_id,
            title=title.strip()[:300],
            content=content.strip(),
            status="open",
        )
        self.db.add(question)
        self.db.commit()
        self.db.refresh(question)
        logger.info(f"Created question {question.id} by {user_id}")

        if tag_ids:
            TagsService(self.db).link_question_to_tags(question.id, tag_ids)
            self.db.refresh(question)

        return question

    def get_question(self, question_id: str) -> DBQuestion:
        question = self.db.get(DBQuestion, question_id)
        if not question:
            raise NotFoundError("Question", question_id)
        return question

    def list_questions(self, limit: int = 50) -> List[DBQuestion]:
        return (
            self.db.query(DBQuestion)
            .order_by(DBQuestion.created_at.desc())
            .limit(limit)
            .all()
        )

    def top_searched(self, limit: int = 10) -> List[DBQuestion]:
        """Questions most often reused as duplicate targets."""
        return (
            self.db.query(DBQuestion)
            .filter(DBQuestion.search_count > 0)
            .order_by(DBQuestion.search_count.desc(), DBQuestion.created_at.desc())
            .limit(limit)
            .all()
        )

    def questions_by_user(self, user_id: str) -> List[DBQuestion]:
        return (
            self.db.query(DBQuestion)
            .filter(DBQuestion.user_id == user_id)
            .order_by(DBQuestion.created_at.desc())
            .all()
        )

    def delete_question(self, question_id: str, user_id: Optional[str]) -> Dict[str, str]:
        """Delete a question with its answers, comments, votes and tag links."""
        question = self.get_question(question_id)
        if not user_id or question.user_id != user_id:
            raise PermissionDeniedError("Only the author can delete this question")

        self.db.delete(question)
        self.db.commit()
        logger.info(f"Deleted question {question_id}")
        return {"status": "deleted", "id": question_id}


class AnswerService:
    """Create, list and accept answers."""

    def __init__(self, db: Session):
        self.db = db

    def create_answer(self, question_id: str, user_id: str, content: str) -> DBAnswer:
        QuestionService(self.db).get_question(question_id)

        answer = DBAnswer(
            question_id=question_id,
            user_id=user_id,
            content=content,
            is_accepted=False,
        )
        self.db.add(answer)
        self.db.commit()
        self.db.refresh(answer)
        return answer

    def get_answer(self, answer_id: str) -> DBAnswer:
        answer = self.db.get(DBAnswer, answer_id)
        if not answer:
            raise NotFoundError("Answer", answer_id)
        return answer

    def get_answers_for_question(self, question_id: str) -> List[DBAnswer]:
        return (
            self.db.query(DBAnswer)
            .filter(DBAnswer.question_id == question_id)
            .order_by(DBAnswer.created_at.asc())
            .all()
        )

    def answers_by_user(self, user_id: str) -> List[DBAnswer]:
        return (
            self.db.query(DBAnswer)
            .filter(DBAnswer.user_id == user_id)
            .order_by(DBAnswer.created_at.desc())
            .all()
        )

    def accept_answer(self, answer_id: str, user_id: Optional[str]) -> DBAnswer:
        """Mark an answer accepted; only the question's author may do this."""
        answer = self.get_answer(answer_id)
        question = answer.question
        if not user_id or question.user_id != user_id:
            raise PermissionDeniedError("Only the question author can accept an answer")

        for other in question.answers:
            other.is_accepted = other.id == answer.id
        question.status = "answered"
        self.db.commit()
        self.db.refresh(answer)
        return answer


class CommentService:
    """Threaded comments on answers or questions."""

    def __init__(self, db: Session):
        self.db = db

    def create_comment(
        self,
        user_id: str,
        content: str,
        answer_id: Optional[str] = None,
        question_id: Optional[str] = None,
        parent_id: Optional[str] = None
    ) -> DBComment:
        """
        Attach a comment to exactly one of an answer or a question.

        Raises:
            ValueError: If both or neither target is given, or the parent
                belongs to a different target
            NotFoundError: If the target or parent does not exist
        """
        if bool(answer_id) == bool(question_id):
            raise ValueError("A comment must target exactly one of an answer or a question")

        if answer_id:
            AnswerService(self.db).get_answer(answer_id)
        else:
            QuestionService(self.db).get_question(question_id)

        if parent_id:
            parent = self.db.get(DBComment, parent_id)
            if not parent:
                raise NotFoundError("Parent comment", parent_id)
            if parent.answer_id != answer_id or parent.question_id != question_id:
                raise ValueError("Parent comment belongs to a different thread")

        comment = DBComment(
            answer_id=answer_id,
            question_id=question_id,
            user_id=user_id,
            content=content,
            parent_id=parent_id,
        )
        self.db.add(comment)
        self.db.commit()
        self.db.refresh(comment)
        return comment

    def get_comments_for_answer(self, answer_id: str) -> List[DBComment]:
        return (
            self.db.query(DBComment)
            .filter(DBComment.answer_id == answer_id)
            .order_by(DBComment.created_at.asc())
            .all()
        )

    def get_comments_for_question(self, question_id: str) -> List[DBComment]:
        return (
            self.db.query(DBComment)
            .filter(DBComment.question_id == question_id)
            .order_by(DBComment.created_at.asc())
            .all()
        )

    def comments_by_user(self, user_id: str) -> List[DBComment]:
        return (
            self.db.query(DBComment)
            .filter(DBComment.user_id == user_id)
            .order_by(DBComment.created_at.desc())
            .all()
        )

    def delete_comment(self, comment_id: str, user_id: Optional[str]) -> Dict[str, str]:
        """Delete a comment and its replies."""
        comment = self.db.get(DBComment, comment_id)
        if not comment:
            raise NotFoundError("Comment", comment_id)
        if not user_id or comment.user_id != user_id:
            raise PermissionDeniedError("Only the author can delete this comment")

        self.db.delete(comment)
        self.db.commit()
        return {"status": "deleted", "id": comment_id}
