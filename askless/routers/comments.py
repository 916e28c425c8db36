"""
Comments API Router

Threaded comments on answers and on questions. After a comment is
posted, the critic bot may reply to it if it is low quality.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..comment_critique import critique_comment
from ..database import get_db
from ..db_models import DBComment
from ..dependencies import get_optional_llm_provider
from ..exceptions import AuthenticationRequiredError
from ..llm_providers import LLMProvider
from ..models import Comment, CommentCreate
from ..profile_service import ProfileService
from ..qa_service import CommentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["comments"])


async def _post_comment(
    req: CommentCreate,
    db: Session,
    provider: Optional[LLMProvider],
    answer_id: Optional[str] = None,
    question_id: Optional[str] = None
) -> DBComment:
    user_id = ProfileService(db).ensure_profile(req.user_id, req.username, req.avatar_url)
    if not user_id:
        raise AuthenticationRequiredError("comment")

    comment = CommentService(db).create_comment(
        user_id=user_id,
        content=req.content,
        answer_id=answer_id,
        question_id=question_id,
        parent_id=req.parent_id,
    )
    await critique_comment(db, provider, comment)
    return comment


@router.get("/answers/{answer_id}/comments", response_model=List[Comment])
async def list_answer_comments(
    answer_id: str,
    db: Session = Depends(get_db)
):
    comments = CommentService(db).get_comments_for_answer(answer_id)
    return [Comment.model_validate(c) for c in comments]


@router.post(
    "/answers/{answer_id}/comments",
    response_model=Comment,
    status_code=status.HTTP_201_CREATED
)
async def create_answer_comment(
    answer_id: str,
    req: CommentCreate,
    db: Session = Depends(get_db),
    provider: Optional[LLMProvider] = Depends(get_optional_llm_provider)
):
    comment = await _post_comment(req, db, provider, answer_id=answer_id)
    return Comment.model_validate(comment)


@router.get("/questions/{question_id}/comments", response_model=List[Comment])
async def list_question_comments(
    question_id: str,
    db: Session = Depends(get_db)
):
    comments = CommentService(db).get_comments_for_question(question_id)
    return [Comment.model_validate(c) for c in comments]


@router.post(
    "/questions/{question_id}/comments",
    response_model=Comment,
    status_code=status.HTTP_201_CREATED
)
async def create_question_comment(
    question_id: str,
    req: CommentCreate,
    db: Session = Depends(get_db),
    provider: Optional[LLMProvider] = Depends(get_optional_llm_provider)
):
    comment = await _post_comment(req, db, provider, question_id=question_id)
    return Comment.model_validate(comment)


@router.delete("/comments/{comment_id}")
async def delete_comment(
    comment_id: str,
    user_id: Optional[str] = Query(None, alias="userId"),
    db: Session = Depends(get_db)
):
    """Delete own comment; replies go with it."""
    return CommentService(db).delete_comment(comment_id, user_id)
