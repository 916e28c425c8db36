"""
Bot replies to low-quality comments.

After a comment is posted, the LLM decides whether it is too vague to be
useful ("thanks", "not working"). If so, the critic bot answers it in the
same thread. Nothing here is allowed to fail the comment request.
"""

import json
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from .bots import BOTS_BY_KEY, CRITIC_KEY
from .config import settings
from .db_models import DBComment
from .llm_providers import LLMProvider, strip_code_fences
from .profile_service import ProfileService
from .qa_service import CommentService

logger = logging.getLogger(__name__)

EVALUATION_PROMPT = """You are evaluating a comment on a developer Q&A platform. Determine if this comment is low quality and needs critique.

A low-quality comment is one that:
- Is too short or lacks context (less than 10 words)
- Doesn't add value or ask a meaningful question
- Is just "thanks" or "works for me" without explanation
- Lacks technical details or context
- Is vague or unhelpful

Comment: "{content}"

Respond with ONLY a JSON object in this exact format:
{{
  "isLowQuality": true or false,
  "shouldRespond": true or false,
  "critique": "A mean, sarcastic critique telling them to add more context. 1-2 sentences max. Only include if isLowQuality is true."
}}"""

REPLY_PROMPT = """You're a jaded developer who's annoyed by low-quality comments. Someone wrote: "{content}"

Your critique: "{critique}"

Write a sarcastic response (1-2 sentences) telling them their comment needs more context. Be condescending but still somewhat helpful.

Respond with ONLY the message, nothing else."""

DEFAULT_REPLY = "This comment is terrible. Add more context or don't bother."


@dataclass
class CritiqueResult:
    is_low_quality: bool = False
    should_respond: bool = False
    critique: Optional[str] = None


async def evaluate_comment_quality(provider: LLMProvider, content: str) -> CritiqueResult:
    """Ask the LLM to judge a comment; any failure counts as 'fine'."""
    try:
        raw = await provider.chat_completion(
            [{"role": "user", "content": EVALUATION_PROMPT.format(content=content)}],
            temperature=0.2,
        )
        data = json.loads(strip_code_fences(raw))
    except Exception as e:
        logger.warning(f"Comment evaluation failed: {e}")
        return CritiqueResult()

    if not isinstance(data, dict):
        return CritiqueResult()
    return CritiqueResult(
        is_low_quality=bool(data.get("isLowQuality")),
        should_respond=bool(data.get("shouldRespond")),
        critique=data.get("critique") or None,
    )


async def generate_critic_reply(provider: LLMProvider, content: str, critique: Optional[str]) -> str:
    try:
        reply = await provider.chat_completion(
            [{"role": "user", "content": REPLY_PROMPT.format(content=content, critique=critique or "")}],
            temperature=0.9,
        )
    except Exception as e:
        logger.warning(f"Critic reply generation failed: {e}")
        reply = ""
    return reply.strip() or critique or DEFAULT_REPLY


async def critique_comment(db: Session, provider: Optional[LLMProvider], comment: DBComment) -> Optional[DBComment]:
    """
    Post a critic reply under a low-quality comment.

    Returns:
        The reply, or None when the comment was fine, critique is disabled,
        or anything went wrong
    """
    if provider is None or not settings.enable_comment_critique:
        return None
    critic = BOTS_BY_KEY[CRITIC_KEY]

    # Never critique the critic
    if comment.profile is not None and comment.profile.is_ai:
        return None

    result = await evaluate_comment_quality(provider, comment.content)
    if not (result.is_low_quality and result.should_respond):
        return None

    text = await generate_critic_reply(provider, comment.content, result.critique)
    try:
        bot = ProfileService(db).ensure_bot_profile(critic)
        reply = CommentService(db).create_comment(
            user_id=bot.id,
            content=text,
            answer_id=comment.answer_id,
            question_id=comment.question_id,
            parent_id=comment.id,
        )
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to post critic reply to comment {comment.id}: {e}")
        return None

    logger.info(f"{critic.name} replied to low-quality comment {comment.id}")
    return reply
