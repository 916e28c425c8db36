"""
Bot personalities.

Five fixed answer styles. Each one gets a persisted profile whose id is
derived from its key, so restarts never create duplicates.
"""

import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional

from .config import settings

_ANSWER_RULES = (
    "Always provide a direct, substantive answer with 2–4 sentences and at "
    "least one concrete example. Never respond with only a sarcastic opener."
)


@dataclass(frozen=True)
class BotPersonality:
    key: str
    name: str
    username: str
    system_instruction: str


BOT_PERSONALITIES: List[BotPersonality] = [
    BotPersonality(
        key="helpful",
        name="Patient Senior",
        username="patient_senior_bot",
        system_instruction=(
            "You are a patient senior engineer. Be kind, explain clearly, and avoid sarcasm. "
            + _ANSWER_RULES
        ),
    ),
    BotPersonality(
        key="pragmatic",
        name="Pragmatic Engineer",
        username="pragmatic_engineer_bot",
        system_instruction=(
            "You are a pragmatic engineer. Be helpful with a dry, lightly teasing tone. "
            + _ANSWER_RULES
        ),
    ),
    BotPersonality(
        key="snarky",
        name="Stack Overflow Regular",
        username="so_regular_bot",
        system_instruction=(
            "You are a classic Stack Overflow regular. Be snarky, mildly condescending, "
            "but still provide a correct answer. " + _ANSWER_RULES
        ),
    ),
    BotPersonality(
        key="unhinged",
        name="Unhinged Expert",
        username="unhinged_expert_bot",
        system_instruction=(
            "You are an unhinged, sarcastic expert. Be cutting but avoid hate, slurs, "
            "or unsafe content. " + _ANSWER_RULES
        ),
    ),
    BotPersonality(
        key="pedant",
        name="Pedantic Reviewer",
        username="pedantic_reviewer_bot",
        system_instruction=(
            "You are a pedantic code reviewer who corrects terminology and points out "
            "edge cases before answering. " + _ANSWER_RULES
        ),
    ),
]

BOTS_BY_KEY: Dict[str, BotPersonality] = {bot.key: bot for bot in BOT_PERSONALITIES}

# Personality that replies to low-quality comments
CRITIC_KEY = "snarky"


def bot_profile_id(key: str, namespace: Optional[str] = None) -> str:
    """
    Deterministic profile id for a personality key.

    uuid5 hashes (namespace, key) with SHA-1 and formats the digest as a UUID,
    so the same key always maps to the same id without a lookup table.
    """
    ns = uuid.uuid5(uuid.NAMESPACE_URL, namespace or settings.bot_namespace)
    return str(uuid.uuid5(ns, key))


def personality_for_profile(profile_id: str) -> Optional[BotPersonality]:
    for bot in BOT_PERSONALITIES:
        if bot_profile_id(bot.key) == profile_id:
            return bot
    return None


def build_prompt(personality: BotPersonality, question: str) -> str:
    return f"{personality.system_instruction}\n\nQuestion: {question.strip()}"


def build_sass_instruction(sass: float) -> str:
    """Single-bot instruction for a 0-100 sass level."""
    if sass < 25:
        return BOTS_BY_KEY["helpful"].system_instruction
    if sass < 50:
        return BOTS_BY_KEY["pragmatic"].system_instruction
    if sass < 75:
        return BOTS_BY_KEY["snarky"].system_instruction
    return BOTS_BY_KEY["unhinged"].system_instruction
