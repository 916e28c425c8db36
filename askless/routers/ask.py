"""
Ask API Router

Endpoints that put bots to work:
- POST /api/ask - Submit a question and collect answers from every bot
- POST /api/answer - One unsaved answer in a tone set by a sass level
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.orm import sessionmaker

from ..config import settings
from ..database import get_session_factory
from ..dependencies import get_llm_provider, get_orchestrator
from ..llm_providers import LLMProvider
from ..models import AskRequest, AskResponse, SingleAnswerRequest, SingleAnswerResponse
from ..orchestrator import BotAnswerOrchestrator, run_fan_out_in_background

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["ask"])

# Initialize rate limiter (off in test mode)
limiter = Limiter(key_func=get_remote_address, enabled=not settings.testing)


@router.post("/ask", response_model=AskResponse)
@limiter.limit("10/minute")
async def ask_question(
    req: AskRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    orchestrator: BotAnswerOrchestrator = Depends(get_orchestrator),
    session_factory: sessionmaker = Depends(get_session_factory),
    provider: LLMProvider = Depends(get_llm_provider)
):
    """
    Submit a question.

    Returns the existing answers when the question duplicates an earlier one.
    With fast=true the question is saved and the bots answer in the
    background; poll GET /api/questions/{id}/answers for their output.

    Rate limited to 10 requests per minute per IP.
    """
    response = await orchestrator.ask(req, generate_answers=not req.fast)

    if response.pending and response.question is not None:
        background_tasks.add_task(
            run_fan_out_in_background, response.question.id, session_factory, provider
        )
        logger.info(f"Queued bot fan-out for question {response.question.id}")

    return response


@router.post("/answer", response_model=SingleAnswerResponse)
@limiter.limit("20/minute")
async def answer_question(
    req: SingleAnswerRequest,
    request: Request,
    orchestrator: BotAnswerOrchestrator = Depends(get_orchestrator)
):
    """Generate a single answer without saving anything."""
    text, is_closed = await orchestrator.generate_single_answer(req.question, req.sass)
    return SingleAnswerResponse(answer=text, is_closed=is_closed)
