"""
Async API client with the staggered answer reveal.

Answers arrive all at once but are shown one by one, in random order, so
the thread looks like it is filling in. After a fast ask (no answers yet)
the client polls until the bots have written something or it gives up.

Usage:
    async with AsklessClient("http://localhost:3001") as client:
        result = await client.ask("How do I center a div?", user_id=uid, tags=["css"])
        answers = result["answers"] or await client.poll_answers(result["question"]["id"])
        async for item in client.reveal(answers):
            render(item)
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

import httpx

from .config import settings

logger = logging.getLogger(__name__)

INITIAL_UPVOTES = 41
UPVOTE_TICKS = 3


@dataclass
class RevealTiming:
    first_delay: float = 1.0
    min_interval: float = 2.0
    max_interval: float = 4.0

    @classmethod
    def from_settings(cls) -> "RevealTiming":
        return cls(
            first_delay=settings.reveal_first_delay_seconds,
            min_interval=settings.reveal_min_interval_seconds,
            max_interval=settings.reveal_max_interval_seconds,
        )


@dataclass
class RevealedAnswer:
    """One answer at the moment it becomes visible."""
    at: float
    answer: Dict[str, Any]
    comments: List[Dict[str, Any]] = field(default_factory=list)
    counts: Dict[str, int] = field(default_factory=dict)
    upvote_frames: List[int] = field(default_factory=list)


def build_reveal_schedule(
    answers: Sequence[Any],
    timing: Optional[RevealTiming] = None,
    rng: Optional[random.Random] = None
) -> List[Tuple[float, Any]]:
    """
    Shuffle answers and assign each a reveal time in seconds.

    The first shows at timing.first_delay; each following one comes
    uniform(min_interval, max_interval) after the one before it.
    """
    timing = timing or RevealTiming.from_settings()
    rng = rng or random.Random()

    shuffled = list(answers)
    rng.shuffle(shuffled)

    schedule = []
    at = timing.first_delay
    for index, answer in enumerate(shuffled):
        if index:
            at += rng.uniform(timing.min_interval, timing.max_interval)
        schedule.append((at, answer))
    return schedule


def animated_vote_counts(start: int = INITIAL_UPVOTES, ticks: int = UPVOTE_TICKS) -> List[int]:
    """Frames of the tick-up animation, e.g. 41 -> [41, 42, 43, 44]."""
    return [start + tick for tick in range(ticks + 1)]


class AsklessClient:
    """Thin wrapper over httpx.AsyncClient for the askless HTTP API."""

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        timing: Optional[RevealTiming] = None,
        rng: Optional[random.Random] = None
    ):
        """
        Args:
            base_url: Server root, e.g. http://localhost:3001
            client: Preconfigured httpx client (tests pass one with a MockTransport)
            sleep: Awaitable used between polls and reveals
            timing: Reveal timing (defaults to settings)
            rng: Random source for shuffling and intervals
        """
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=30.0)
        self._sleep = sleep
        self.timing = timing or RevealTiming.from_settings()
        self.rng = rng or random.Random()

    async def __aenter__(self) -> "AsklessClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        resp = await self._client.get(path, params=params)
        resp.raise_for_status()
        return resp.json()

    async def _post(self, path: str, payload: Dict[str, Any]) -> Any:
        resp = await self._client.post(path, json=payload)
        resp.raise_for_status()
        return resp.json()

    async def ask(
        self,
        question: str,
        user_id: str,
        title: Optional[str] = None,
        tags: Optional[List[str]] = None,
        tag_ids: Optional[List[int]] = None,
        username: Optional[str] = None,
        fast: bool = False
    ) -> Dict[str, Any]:
        payload = {"question": question, "userId": user_id, "fast": fast}
        if title:
            payload["title"] = title
        if tags:
            payload["tags"] = tags
        if tag_ids:
            payload["tagIds"] = tag_ids
        if username:
            payload["username"] = username
        return await self._post("/api/ask", payload)

    async def get_answers(self, question_id: str) -> List[Dict[str, Any]]:
        return await self._get(f"/api/questions/{question_id}/answers")

    async def get_comments(self, answer_id: str) -> List[Dict[str, Any]]:
        return await self._get(f"/api/answers/{answer_id}/comments")

    async def get_vote_counts(
        self,
        question_id: Optional[str] = None,
        answer_id: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> Dict[str, Any]:
        params = {"questionId": question_id, "answerId": answer_id, "userId": user_id}
        return await self._get("/api/votes", {k: v for k, v in params.items() if v})

    async def vote(
        self,
        user_id: str,
        vote_type: str = "upvote",
        question_id: Optional[str] = None,
        answer_id: Optional[str] = None
    ) -> Dict[str, Any]:
        payload = {"userId": user_id, "voteType": vote_type}
        if question_id:
            payload["questionId"] = question_id
        if answer_id:
            payload["answerId"] = answer_id
        return await self._post("/api/votes", payload)

    async def poll_answers(
        self,
        question_id: str,
        interval: Optional[float] = None,
        max_attempts: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Refetch answers until some exist.

        Returns [] without raising when attempts run out or a fetch fails.
        """
        interval = settings.poll_interval_seconds if interval is None else interval
        max_attempts = settings.poll_max_attempts if max_attempts is None else max_attempts

        for attempt in range(max_attempts):
            try:
                answers = await self.get_answers(question_id)
            except httpx.HTTPError as e:
                logger.warning(f"Polling answers for {question_id} failed: {e}")
                return []
            if answers:
                return answers
            if attempt < max_attempts - 1:
                await self._sleep(interval)

        logger.info(f"No answers for {question_id} after {max_attempts} attempts")
        return []

    async def reveal(self, answers: Sequence[Dict[str, Any]]) -> AsyncIterator[RevealedAnswer]:
        """
        Yield answers on the reveal schedule, each with its comments and votes.

        Accepts either plain answer rows or the {answer: ...} envelopes
        returned by /api/ask.
        """
        elapsed = 0.0
        for at, item in build_reveal_schedule(answers, self.timing, self.rng):
            await self._sleep(at - elapsed)
            elapsed = at

            answer = item.get("answer", item)
            answer_id = answer["id"]
            comments = await self.get_comments(answer_id)
            votes = await self.get_vote_counts(answer_id=answer_id)
            yield RevealedAnswer(
                at=at,
                answer=item,
                comments=comments,
                counts=votes.get("counts", {}),
                upvote_frames=animated_vote_counts(),
            )
