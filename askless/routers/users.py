"""
Users API Router

Profile lookup and a user's activity feed.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..exceptions import NotFoundError
from ..models import Answer, Comment, Profile, Question, UserActivity
from ..profile_service import ProfileService
from ..qa_service import AnswerService, CommentService, QuestionService

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/{user_id}/profile", response_model=Profile)
async def get_profile(
    user_id: str,
    db: Session = Depends(get_db)
):
    profile = ProfileService(db).get_profile(user_id)
    if not profile:
        raise NotFoundError("Profile", user_id)
    return Profile.model_validate(profile)


@router.get("/{user_id}/activity", response_model=UserActivity)
async def get_activity(
    user_id: str,
    db: Session = Depends(get_db)
):
    """Everything a user has posted, newest first."""
    return UserActivity(
        questions=[Question.model_validate(q) for q in QuestionService(db).questions_by_user(user_id)],
        answers=[Answer.model_validate(a) for a in AnswerService(db).answers_by_user(user_id)],
        comments=[Comment.model_validate(c) for c in CommentService(db).comments_by_user(user_id)],
    )
