"""
Tests for bot personalities and deterministic bot ids.
"""

import uuid

from askless.bots import (
    BOT_PERSONALITIES,
    BOTS_BY_KEY,
    bot_profile_id,
    build_prompt,
    build_sass_instruction,
    personality_for_profile,
)


class TestBotProfileIds:
    """Bot ids are derived, never stored in a lookup table."""

    def test_same_key_same_id(self):
        assert bot_profile_id("helpful") == bot_profile_id("helpful")

    def test_ids_are_valid_uuids(self):
        for bot in BOT_PERSONALITIES:
            parsed = uuid.UUID(bot_profile_id(bot.key))
            assert parsed.version == 5

    def test_ids_unique_per_personality(self):
        ids = {bot_profile_id(bot.key) for bot in BOT_PERSONALITIES}
        assert len(ids) == len(BOT_PERSONALITIES)

    def test_namespace_changes_id(self):
        assert bot_profile_id("helpful", "other.namespace") != bot_profile_id("helpful")

    def test_reverse_lookup(self):
        bot_id = bot_profile_id("pedant")
        assert personality_for_profile(bot_id) is BOTS_BY_KEY["pedant"]
        assert personality_for_profile(str(uuid.uuid4())) is None


class TestPrompts:

    def test_roster_has_five_bots(self):
        assert [b.key for b in BOT_PERSONALITIES] == ["helpful", "pragmatic", "snarky", "unhinged", "pedant"]

    def test_build_prompt_concatenates_instruction_and_question(self):
        bot = BOTS_BY_KEY["helpful"]
        prompt = build_prompt(bot, "  How do I center a div?  ")
        assert prompt == f"{bot.system_instruction}\n\nQuestion: How do I center a div?"

    def test_sass_tiers(self):
        assert build_sass_instruction(0) == BOTS_BY_KEY["helpful"].system_instruction
        assert build_sass_instruction(24.9) == BOTS_BY_KEY["helpful"].system_instruction
        assert build_sass_instruction(25) == BOTS_BY_KEY["pragmatic"].system_instruction
        assert build_sass_instruction(60) == BOTS_BY_KEY["snarky"].system_instruction
        assert build_sass_instruction(100) == BOTS_BY_KEY["unhinged"].system_instruction
