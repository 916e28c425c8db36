"""
Votes API Router

Endpoints:
- GET /api/votes?questionId=|answerId=&userId= - Counts plus the caller's vote
- POST /api/votes - Vote, toggle off, or switch direction
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..exceptions import AuthenticationRequiredError
from ..models import Vote, VoteRequest, VoteResponse
from ..profile_service import ProfileService
from ..vote_service import VoteService

router = APIRouter(prefix="/api/votes", tags=["votes"])


@router.get("", response_model=VoteResponse)
async def get_votes(
    question_id: Optional[str] = Query(None, alias="questionId"),
    answer_id: Optional[str] = Query(None, alias="answerId"),
    user_id: Optional[str] = Query(None, alias="userId"),
    db: Session = Depends(get_db)
):
    service = VoteService(db)
    counts = service.get_vote_counts(question_id=question_id, answer_id=answer_id)
    user_vote = service.get_user_vote(user_id, question_id, answer_id) if user_id else None
    return VoteResponse(
        counts=counts,
        user_vote=Vote.model_validate(user_vote) if user_vote else None,
    )


@router.post("", response_model=VoteResponse)
async def cast_vote(
    req: VoteRequest,
    db: Session = Depends(get_db)
):
    """
    Apply a vote.

    Voting the same way twice removes the vote; voting the other way
    flips it. The response carries the vote on record (or null) and
    fresh counts.
    """
    user_id = ProfileService(db).ensure_profile(req.user_id)
    if not user_id:
        raise AuthenticationRequiredError("vote")

    service = VoteService(db)
    vote = service.create_or_toggle_vote(
        user_id, req.vote_type, question_id=req.question_id, answer_id=req.answer_id
    )
    counts = service.get_vote_counts(question_id=req.question_id, answer_id=req.answer_id)
    vote_model = Vote.model_validate(vote) if vote else None
    return VoteResponse(vote=vote_model, user_vote=vote_model, counts=counts)
