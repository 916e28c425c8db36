"""
Answers API Router

Endpoints:
- GET /api/questions/{question_id}/answers - Answers, oldest first
- POST /api/questions/{question_id}/answers - Post a human answer
- POST /api/answers/{answer_id}/accept - Accept an answer (question author)
"""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..exceptions import AuthenticationRequiredError
from ..models import Answer, AnswerCreate, OwnerAction
from ..profile_service import ProfileService
from ..qa_service import AnswerService, QuestionService

router = APIRouter(prefix="/api", tags=["answers"])


@router.get("/questions/{question_id}/answers", response_model=List[Answer])
async def list_answers(
    question_id: str,
    db: Session = Depends(get_db)
):
    """List a question's answers with their authors."""
    QuestionService(db).get_question(question_id)
    answers = AnswerService(db).get_answers_for_question(question_id)
    return [Answer.model_validate(a) for a in answers]


@router.post(
    "/questions/{question_id}/answers",
    response_model=Answer,
    status_code=status.HTTP_201_CREATED
)
async def create_answer(
    question_id: str,
    req: AnswerCreate,
    db: Session = Depends(get_db)
):
    user_id = ProfileService(db).ensure_profile(req.user_id, req.username, req.avatar_url)
    if not user_id:
        raise AuthenticationRequiredError("answer")

    answer = AnswerService(db).create_answer(question_id, user_id, req.content)
    return Answer.model_validate(answer)


@router.post("/answers/{answer_id}/accept", response_model=Answer)
async def accept_answer(
    answer_id: str,
    req: OwnerAction,
    db: Session = Depends(get_db)
):
    answer = AnswerService(db).accept_answer(answer_id, req.user_id)
    return Answer.model_validate(answer)
