"""
API tests for POST /api/ask, POST /api/answer and the bot endpoints.
"""

from askless.bots import BOT_PERSONALITIES, bot_profile_id
from askless.db_models import DBAnswer, DBProfile, DBQuestion
from askless.exceptions import LLMModelNotFoundError, LLMRateLimitError, MissingAPIKeyError

from ..conftest import ScriptedProvider


def _center_div(user, **extra):
    return {"question": "How do I center a div?", "tags": ["css", "html"], **user, **extra}


class TestAskScenarios:

    def test_center_a_div_then_duplicate(self, client, user, other_user, db_session):
        # First ask creates the question and collects bot answers
        first = client.post("/api/ask", json=_center_div(user))
        assert first.status_code == 200
        body = first.json()
        assert body["isDuplicate"] is False
        question_id = body["question"]["id"]
        assert body["totalBots"] == 5
        assert 1 <= body["successfulBots"] <= 5
        assert {a["botId"] for a in body["answers"]} <= {bot_profile_id(b.key) for b in BOT_PERSONALITIES}

        answers = client.get(f"/api/questions/{question_id}/answers")
        assert answers.status_code == 200
        assert 1 <= len(answers.json()) <= 5

        # Same tags again: answered from the first question
        second = client.post(
            "/api/ask",
            json={"question": "Centering a div?", "tags": ["html", "css"], **other_user},
        )
        assert second.status_code == 200
        dup = second.json()
        assert dup["isDuplicate"] is True
        assert dup["originalQuestion"]["id"] == question_id
        assert dup["originalQuestion"]["search_count"] == 1
        assert len(dup["answers"]) == len(body["answers"])
        assert db_session.query(DBQuestion).count() == 1

    def test_three_of_five_bots(self, make_client, user):
        client = make_client(ScriptedProvider(fail_keys=["helpful", "unhinged"]))

        response = client.post("/api/ask", json=_center_div(user))

        assert response.status_code == 200
        assert response.json()["successfulBots"] == 3
        assert len(response.json()["answers"]) == 3

    def test_all_bots_fail_is_500_without_answers(self, make_client, all_fail_provider, user, db_session):
        client = make_client(all_fail_provider)

        response = client.post("/api/ask", json=_center_div(user))

        assert response.status_code == 500
        body = response.json()
        assert "All 5 bots failed" in body["error"]
        assert body["errorType"] == "auth"
        assert body["suggestions"]
        assert db_session.query(DBAnswer).count() == 0

    def test_fast_ask_answers_arrive_later(self, client, user):
        response = client.post("/api/ask", json=_center_div(user, fast=True))

        assert response.status_code == 200
        body = response.json()
        assert body["pending"] is True
        assert body["answers"] == []

        # TestClient runs background tasks before returning
        answers = client.get(f"/api/questions/{body['question']['id']}/answers").json()
        assert len(answers) == 5

    def test_untagged_question_is_never_a_duplicate(self, make_client, user):
        client = make_client(ScriptedProvider(tags=[]))

        client.post("/api/ask", json={"question": "Why?", **user})
        second = client.post("/api/ask", json={"question": "Why?", **user})

        assert second.json()["isDuplicate"] is False


class TestAskErrors:

    def test_missing_question_is_400(self, client, user):
        response = client.post("/api/ask", json={"question": "   ", **user})

        assert response.status_code == 400
        assert response.json()["error"] == "Question is required"

    def test_missing_user_is_401(self, client):
        response = client.post("/api/ask", json={"question": "How do I center a div?"})

        assert response.status_code == 401
        assert "User is required" in response.json()["error"]

    def test_missing_api_key_is_401(self, make_client, user):
        from askless.dependencies import get_llm_provider
        from askless.main import app

        client = make_client()

        def no_key():
            raise MissingAPIKeyError()
        app.dependency_overrides[get_llm_provider] = no_key

        response = client.post("/api/ask", json=_center_div(user))

        assert response.status_code == 401

    def test_request_id_header(self, client, user):
        response = client.post("/api/ask", json=_center_div(user))
        assert response.headers.get("X-Request-ID")


class TestSingleAnswer:

    def test_answer(self, client):
        response = client.post("/api/answer", json={"question": "What is a pointer?", "sass": 90})

        assert response.status_code == 200
        body = response.json()
        assert body["answer"]
        assert body["isClosed"] is True

    def test_rate_limit_error_is_429_with_suggestions(self, make_client):
        client = make_client(ScriptedProvider(fail_keys=["helpful"], error=LLMRateLimitError("quota", retry_after=30)))

        response = client.post("/api/answer", json={"question": "What is a pointer?", "sass": 0})

        assert response.status_code == 429
        assert response.json()["suggestions"]
        assert response.headers["Retry-After"] == "30"

    def test_model_not_found_is_400(self, make_client):
        client = make_client(ScriptedProvider(fail_keys=["snarky"], error=LLMModelNotFoundError("gpt-nope")))

        response = client.post("/api/answer", json={"question": "What is a pointer?", "sass": 60})

        assert response.status_code == 400
        assert response.json()["errorType"] == "model_not_found"


class TestBots:

    def test_initialize_is_idempotent(self, client, db_session):
        first = client.post("/api/bots/initialize").json()
        second = client.post("/api/bots/initialize").json()

        assert first["created"] == 5
        assert second["created"] == 0
        assert [b["profileId"] for b in first["bots"]] == [b["profileId"] for b in second["bots"]]
        assert db_session.query(DBProfile).filter(DBProfile.is_ai.is_(True)).count() == 5

    def test_list_bots(self, client):
        bots = client.get("/api/bots").json()

        assert [b["key"] for b in bots] == [p.key for p in BOT_PERSONALITIES]
        assert bots[0]["profileId"] == bot_profile_id(bots[0]["key"])
