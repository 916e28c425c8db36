"""
Tests for the bot answer orchestrator.

Covers the ask flow end to end against an in-memory database: partial
bot failure, total failure, duplicate short-circuit and the fast path.
"""

from unittest.mock import patch

import pytest

from askless.bots import BOT_PERSONALITIES, BOTS_BY_KEY, bot_profile_id
from askless.db_models import DBAnswer, DBQuestion
from askless.exceptions import (
    AllBotsFailedError,
    AuthenticationRequiredError,
    LLMAuthenticationError,
    LLMRateLimitError,
    NotFoundError,
)
from askless.models import AskRequest
from askless.orchestrator import (
    BotAnswerOrchestrator,
    dominant_failure,
    fallback_answer,
    needs_fallback,
    run_fan_out_in_background,
)

from .conftest import ScriptedProvider

USER = {"userId": "11111111-1111-4111-8111-111111111111", "username": "alice"}


def _ask(question="How do I center a div?", **kwargs) -> AskRequest:
    return AskRequest(question=question, **{**USER, **kwargs})


class TestAskFlow:

    @pytest.mark.asyncio
    async def test_all_bots_answer(self, db_session, mock_provider):
        response = await BotAnswerOrchestrator(db_session, mock_provider).ask(_ask(tags=["css", "html"]))

        assert response.is_duplicate is False
        assert response.total_bots == 5
        assert response.successful_bots == 5
        assert {a.bot_name for a in response.answers} == {b.name for b in BOT_PERSONALITIES}
        assert {a.bot_id for a in response.answers} == {bot_profile_id(b.key) for b in BOT_PERSONALITIES}
        assert sorted(t.name for t in response.tags) == ["css", "html"]
        assert db_session.query(DBAnswer).count() == 5

    @pytest.mark.asyncio
    async def test_two_failures_three_successes(self, db_session):
        provider = ScriptedProvider(fail_keys=["snarky", "pedant"])

        response = await BotAnswerOrchestrator(db_session, provider).ask(_ask(tags=["css"]))

        assert response.successful_bots == 3
        assert len(response.answers) == 3
        assert "Stack Overflow Regular" not in {a.bot_name for a in response.answers}
        assert db_session.query(DBAnswer).count() == 3

    @pytest.mark.asyncio
    async def test_all_bots_fail(self, db_session, all_fail_provider):
        with pytest.raises(AllBotsFailedError) as exc_info:
            await BotAnswerOrchestrator(db_session, all_fail_provider).ask(_ask(tags=["css"]))

        error = exc_info.value
        assert len(error.failures) == 5
        assert error.error_type == "auth"
        assert error.suggestions
        assert db_session.query(DBAnswer).count() == 0
        # The question was saved before the fan-out
        assert db_session.query(DBQuestion).count() == 1

    @pytest.mark.asyncio
    async def test_every_bot_runs_even_when_one_fails(self, db_session):
        provider = ScriptedProvider(fail_keys=["helpful"])

        await BotAnswerOrchestrator(db_session, provider).ask(_ask(tags=["css"]))

        assert len(provider.prompts) == 5

    @pytest.mark.asyncio
    async def test_prompt_is_instruction_plus_question(self, db_session):
        provider = ScriptedProvider()

        await BotAnswerOrchestrator(db_session, provider).ask(_ask("Why is my div not centered?", tags=["css"]))

        expected = f"{BOTS_BY_KEY['helpful'].system_instruction}\n\nQuestion: Why is my div not centered?"
        assert expected in provider.prompts

    @pytest.mark.asyncio
    async def test_anonymous_ask_rejected(self, db_session, mock_provider):
        request = AskRequest(question="How do I center a div?")

        with pytest.raises(AuthenticationRequiredError):
            await BotAnswerOrchestrator(db_session, mock_provider).ask(request)
        assert db_session.query(DBQuestion).count() == 0


class TestTagsAndDuplicates:

    @pytest.mark.asyncio
    async def test_duplicate_returns_original_answers(self, db_session, mock_provider):
        orchestrator = BotAnswerOrchestrator(db_session, mock_provider)
        first = await orchestrator.ask(_ask(tags=["css", "html"]))

        second = await orchestrator.ask(_ask("Centering a div vertically?", tags=["html", "css"]))

        assert second.is_duplicate is True
        assert second.original_question.id == first.question.id
        assert second.question is None
        assert len(second.answers) == 5
        assert second.message
        assert db_session.query(DBQuestion).count() == 1
        assert db_session.get(DBQuestion, first.question.id).search_count == 1

    @pytest.mark.asyncio
    async def test_untagged_questions_never_duplicate(self, db_session):
        provider = ScriptedProvider(tags=[])
        orchestrator = BotAnswerOrchestrator(db_session, provider)

        await orchestrator.ask(_ask("Something vague"))
        second = await orchestrator.ask(_ask("Something vague"))

        assert second.is_duplicate is False
        assert db_session.query(DBQuestion).count() == 2

    @pytest.mark.asyncio
    async def test_generated_tags_used_when_none_given(self, db_session):
        provider = ScriptedProvider(tags=["python", "asyncio"])

        response = await BotAnswerOrchestrator(db_session, provider).ask(_ask("How does asyncio.gather work?"))

        assert sorted(t.name for t in response.tags) == ["asyncio", "python"]

    @pytest.mark.asyncio
    async def test_tag_generation_failure_does_not_block(self, db_session):
        provider = ScriptedProvider()

        async def broken(title, content):
            raise RuntimeError("tagger down")
        provider.generate_tags = broken

        response = await BotAnswerOrchestrator(db_session, provider).ask(_ask())

        assert response.tags == []
        assert response.successful_bots == 5

    @pytest.mark.asyncio
    async def test_tag_ids_take_precedence(self, db_session, mock_provider):
        from askless.tag_service import TagsService
        (go,) = TagsService(db_session).get_or_create_tags(["go"])

        response = await BotAnswerOrchestrator(db_session, mock_provider).ask(
            _ask(tag_ids=[go.id], tags=["css"])
        )

        assert [t.name for t in response.tags] == ["go"]


class TestFastPath:

    @pytest.mark.asyncio
    async def test_fast_ask_defers_answers(self, db_session, session_factory, mock_provider):
        orchestrator = BotAnswerOrchestrator(db_session, mock_provider)

        response = await orchestrator.ask(_ask(tags=["css"]), generate_answers=False)

        assert response.pending is True
        assert response.answers == []
        assert db_session.query(DBAnswer).count() == 0

        await run_fan_out_in_background(response.question.id, session_factory, mock_provider)

        assert db_session.query(DBAnswer).count() == 5

    @pytest.mark.asyncio
    async def test_background_failure_is_logged_not_raised(self, db_session, session_factory, all_fail_provider):
        orchestrator = BotAnswerOrchestrator(db_session, all_fail_provider)
        response = await orchestrator.ask(_ask(tags=["css"]), generate_answers=False)

        await run_fan_out_in_background(response.question.id, session_factory, all_fail_provider)

        assert db_session.query(DBAnswer).count() == 0

    @pytest.mark.asyncio
    async def test_question_deleted_mid_fan_out_is_logged_not_raised(self, db_session, session_factory, mock_provider):
        orchestrator = BotAnswerOrchestrator(db_session, mock_provider)
        response = await orchestrator.ask(_ask(tags=["css"]), generate_answers=False)
        question_id = response.question.id

        with patch(
            "askless.orchestrator.AnswerService.create_answer",
            side_effect=NotFoundError("Question", question_id),
        ):
            await run_fan_out_in_background(question_id, session_factory, mock_provider)

        assert db_session.query(DBAnswer).count() == 0


class TestSingleAnswer:

    @pytest.mark.asyncio
    async def test_short_answer_replaced_by_fallback(self, db_session, mock_provider):
        text, is_closed = await BotAnswerOrchestrator(db_session, mock_provider).generate_single_answer(
            "What is a pointer?", 10
        )

        assert text == fallback_answer("What is a pointer?")
        assert is_closed is False

    @pytest.mark.asyncio
    async def test_closed_when_sassy_or_short(self, db_session, mock_provider):
        orchestrator = BotAnswerOrchestrator(db_session, mock_provider)

        _, sassy = await orchestrator.generate_single_answer("What is a pointer in C?", 80)
        _, short = await orchestrator.generate_single_answer("pointers?", 0)

        assert sassy is True
        assert short is True

    @pytest.mark.asyncio
    async def test_llm_errors_propagate(self, db_session):
        provider = ScriptedProvider(fail_keys=["unhinged"], error=LLMRateLimitError("quota"))

        with pytest.raises(LLMRateLimitError):
            await BotAnswerOrchestrator(db_session, provider).generate_single_answer("What is a pointer?", 100)


class TestHelpers:

    def test_needs_fallback(self):
        assert needs_fallback("")
        assert needs_fallback("Too short.")
        assert needs_fallback("x" * 200)
        assert not needs_fallback("A pointer stores an address. " * 6)

    def test_dominant_failure_picks_most_common_type(self):
        auth = LLMAuthenticationError("bad key")
        failures = {
            "a": LLMRateLimitError("quota"),
            "b": auth,
            "c": LLMAuthenticationError("bad key again"),
        }

        assert dominant_failure(failures) is auth
        assert dominant_failure({}) is None

