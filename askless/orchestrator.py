"""
Bot answer orchestration.

Turns one submitted question into persisted bot answers:

    resolve asker -> resolve tags -> duplicate check -> persist question
        -> concurrent fan-out to every bot -> persist successes -> respond

A bot that fails is logged and left out; the request only fails when no
bot produced anything.
"""

import asyncio
import logging
import re
from collections import Counter
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from .bots import BOT_PERSONALITIES, BotPersonality, build_prompt, build_sass_instruction, personality_for_profile
from .db_models import DBAnswer, DBQuestion, DBTag
from .duplicate_detection import DuplicateDetector
from .exceptions import AllBotsFailedError, AsklessError, AuthenticationRequiredError, LLMError
from .llm_providers import LLMProvider, classify_llm_error
from .models import Answer, AskRequest, AskResponse, BotAnswer, Profile, Question, Tag
from .profile_service import ProfileService
from .qa_service import AnswerService, QuestionService
from .tag_service import TagsService

logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "This question looks like one that was already asked. Here are its answers."
PENDING_MESSAGE = "Question posted. The bots are typing..."

# Single-answer quality gate
MIN_ANSWER_LENGTH = 120
MIN_ANSWER_SENTENCES = 2
CLOSE_SASS_LEVEL = 65
MIN_QUESTION_LENGTH = 12


def to_bot_answer(answer: DBAnswer) -> BotAnswer:
    """Wrap a persisted answer with the name of the bot (or user) that wrote it."""
    personality = personality_for_profile(answer.user_id)
    profile = answer.profile
    return BotAnswer(
        answer=Answer.model_validate(answer),
        bot_profile=Profile.model_validate(profile),
        bot_name=personality.name if personality else profile.username,
        bot_id=answer.user_id,
        answer_text=answer.content,
    )


def needs_fallback(text: str) -> bool:
    """True when a generated answer is too thin to show on its own."""
    trimmed = (text or "").strip()
    if len(trimmed) < MIN_ANSWER_LENGTH:
        return True
    return len(re.findall(r"[.!?]", trimmed)) < MIN_ANSWER_SENTENCES


def fallback_answer(question: str) -> str:
    return (
        f"Short version: {question} usually comes down to references versus values. "
        "If you see it as a way to point at data rather than copy it, you are on the right track. "
        "Example: in C/C++, an int* holds the memory address of an int, so you can modify the "
        "original through it. If you need more detail, say what language/runtime you are using."
    )


class BotAnswerOrchestrator:
    """Runs the ask flow for one request."""

    def __init__(
        self,
        db: Session,
        provider: LLMProvider,
        personalities: Optional[List[BotPersonality]] = None,
        min_overlap: Optional[int] = None
    ):
        """
        Initialize orchestrator.

        Args:
            db: Database session
            provider: LLM provider used for tags and answers
            personalities: Bots to fan out to (defaults to all of them)
            min_overlap: Duplicate threshold override
        """
        self.db = db
        self.provider = provider
        self.personalities = personalities or BOT_PERSONALITIES
        self.profiles = ProfileService(db)
        self.tags = TagsService(db)
        self.detector = DuplicateDetector(db, min_overlap=min_overlap)
        self.questions = QuestionService(db)
        self.answers = AnswerService(db)

    async def ask(self, request: AskRequest, generate_answers: bool = True) -> AskResponse:
        """
        Handle a submitted question.

        Args:
            request: The validated ask payload
            generate_answers: False to stop after persisting the question
                (the caller schedules the fan-out itself)

        Raises:
            AuthenticationRequiredError: No user id supplied
            ProfileCreationError: The asker's profile could not be created
            AllBotsFailedError: Every bot failed
        """
        # 1. Asker
        user_id = self.profiles.ensure_profile(request.user_id, request.username, request.avatar_url)
        if not user_id:
            raise AuthenticationRequiredError("ask a question")

        # 2. Tags
        title = request.resolved_title
        tags = await self.resolve_tags(request, title)
        tag_names = [t.name for t in tags]

        # 3. Duplicates
        similar = self.detector.find_similar_questions(tag_names, limit=1)
        if similar:
            original = self.detector.record_hit(similar[0].question)
            existing = self.answers.get_answers_for_question(original.id)
            logger.info(
                f"Duplicate of {original.id} ({similar[0].overlap_count} shared tags), "
                f"returning {len(existing)} existing answers"
            )
            return AskResponse(
                is_duplicate=True,
                original_question=Question.model_validate(original),
                answers=[to_bot_answer(a) for a in existing],
                tags=[Tag.model_validate(t) for t in tags],
                total_bots=len(self.personalities),
                successful_bots=len(existing),
                message=DUPLICATE_MESSAGE,
            )

        # 4. Question
        question = self.questions.create_question(
            user_id, title, request.question, [t.id for t in tags]
        )

        if not generate_answers:
            return AskResponse(
                question=Question.model_validate(question),
                tags=[Tag.model_validate(t) for t in tags],
                total_bots=len(self.personalities),
                pending=True,
                message=PENDING_MESSAGE,
            )

        # 5-7. Fan-out, persist, respond
        answers = await self.generate_bot_answers(question)
        return AskResponse(
            question=Question.model_validate(question),
            answers=answers,
            tags=[Tag.model_validate(t) for t in tags],
            total_bots=len(self.personalities),
            successful_bots=len(answers),
        )

    async def resolve_tags(self, request: AskRequest, title: str) -> List[DBTag]:
        """Explicit tag ids, then free-text tags, then generated tags."""
        if request.tag_ids:
            return self.tags.get_tags_by_ids(request.tag_ids)
        if request.tags:
            return self.tags.get_or_create_tags(request.tags)

        try:
            generated = await self.provider.generate_tags(title, request.question)
        except Exception as e:
            logger.warning(f"Tag generation failed, continuing untagged: {e}")
            return []
        return self.tags.get_or_create_tags(generated)

    async def _answer_as(self, personality: BotPersonality, question: DBQuestion) -> Tuple[str, str]:
        profile = self.profiles.ensure_bot_profile(personality)
        text = await self.provider.generate_answer(build_prompt(personality, question.content))
        return profile.id, text

    async def generate_bot_answers(self, question: DBQuestion) -> List[BotAnswer]:
        """
        Ask every bot concurrently and persist the successful answers.

        Raises:
            AllBotsFailedError: If not a single bot produced an answer
        """
        results = await asyncio.gather(
            *(self._answer_as(p, question) for p in self.personalities),
            return_exceptions=True,
        )

        saved: List[DBAnswer] = []
        failures: Dict[str, LLMError] = {}
        for personality, result in zip(self.personalities, results):
            if isinstance(result, BaseException):
                error = classify_llm_error(result)
                failures[personality.key] = error
                logger.warning(f"Bot {personality.key} failed on {question.id} ({error.error_type}): {error}")
                continue
            profile_id, text = result
            saved.append(self.answers.create_answer(question.id, profile_id, text))

        logger.info(f"{len(saved)}/{len(self.personalities)} bots answered question {question.id}")

        if not saved:
            raise AllBotsFailedError(question.id, failures, cause=dominant_failure(failures))
        return [to_bot_answer(a) for a in saved]

    async def generate_single_answer(self, question: str, sass: float) -> Tuple[str, bool]:
        """
        One unsaved answer in a tone picked by the sass level.

        Returns:
            (answer text, whether the question would be closed)
        """
        prompt = f"{build_sass_instruction(sass)}\n\nQuestion: {question}"
        text = await self.provider.generate_answer(prompt)
        if needs_fallback(text):
            text = fallback_answer(question)
        is_closed = sass >= CLOSE_SASS_LEVEL or len(question) < MIN_QUESTION_LENGTH
        return text, is_closed


def dominant_failure(failures: Dict[str, LLMError]) -> Optional[LLMError]:
    """The first failure of the most common error type."""
    if not failures:
        return None
    most_common, _ = Counter(e.error_type for e in failures.values()).most_common(1)[0]
    return next(e for e in failures.values() if e.error_type == most_common)


async def run_fan_out_in_background(
    question_id: str,
    session_factory: Callable[[], Session],
    provider: LLMProvider
) -> None:
    """Background task for fast asks; uses its own session since the request's is closed."""
    db = session_factory()
    try:
        question = db.get(DBQuestion, question_id)
        if question is None:
            logger.error(f"Background fan-out: question {question_id} vanished")
            return
        await BotAnswerOrchestrator(db, provider).generate_bot_answers(question)
    except AllBotsFailedError as e:
        logger.error(f"Background fan-out for {question_id}: {e} ({e.error_type})")
    except AsklessError as e:
        logger.error(f"Background fan-out for {question_id} stopped: {e}")
    finally:
        db.close()
