"""
Questions API Router

Endpoints:
- GET /api/questions - Newest questions
- POST /api/questions - Create a question directly (no bots)
- GET /api/questions/{question_id} - One question with tags and author
- DELETE /api/questions/{question_id} - Delete own question
- GET /api/top-searched - Questions most reused as duplicate targets
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..exceptions import AuthenticationRequiredError
from ..models import QuestionCreate, QuestionDetail
from ..profile_service import ProfileService
from ..qa_service import QuestionService
from ..tag_service import TagsService

router = APIRouter(prefix="/api", tags=["questions"])


@router.get("/questions", response_model=List[QuestionDetail])
async def list_questions(
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db)
):
    """List questions, newest first."""
    questions = QuestionService(db).list_questions(limit=limit)
    return [QuestionDetail.model_validate(q) for q in questions]


@router.post("/questions", response_model=QuestionDetail, status_code=status.HTTP_201_CREATED)
async def create_question(
    req: QuestionCreate,
    db: Session = Depends(get_db)
):
    """Create a question without asking the bots."""
    user_id = ProfileService(db).ensure_profile(req.user_id, req.username, req.avatar_url)
    if not user_id:
        raise AuthenticationRequiredError("create a question")

    tags = TagsService(db)
    if req.tag_ids:
        tag_ids = [t.id for t in tags.get_tags_by_ids(req.tag_ids)]
    else:
        tag_ids = [t.id for t in tags.get_or_create_tags(req.tags or [])]

    question = QuestionService(db).create_question(user_id, req.title, req.content, tag_ids)
    return QuestionDetail.model_validate(question)


@router.get("/questions/{question_id}", response_model=QuestionDetail)
async def get_question(
    question_id: str,
    db: Session = Depends(get_db)
):
    """Get a question with its tags and author."""
    question = QuestionService(db).get_question(question_id)
    return QuestionDetail.model_validate(question)


@router.delete("/questions/{question_id}")
async def delete_question(
    question_id: str,
    user_id: Optional[str] = Query(None, alias="userId"),
    db: Session = Depends(get_db)
):
    """Delete a question and everything attached to it (author only)."""
    return QuestionService(db).delete_question(question_id, user_id)


@router.get("/top-searched", response_model=List[QuestionDetail])
async def top_searched(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """Questions ranked by how often they absorbed a duplicate."""
    questions = QuestionService(db).top_searched(limit=limit)
    return [QuestionDetail.model_validate(q) for q in questions]
