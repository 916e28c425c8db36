"""
Shared test fixtures for all test modules.

Provides:
- Test environment setup (TESTING=true, in-memory DB, mock LLM)
- engine / db_session: SQLite in-memory database shared by one test
- mock_provider / ScriptedProvider: deterministic LLM providers
- client: TestClient with DB and LLM dependencies overridden
"""

import os
from typing import Dict, Iterable, List

# =============================================================================
# Test Environment Configuration
# =============================================================================

# Must run before askless.config builds its settings
os.environ['TESTING'] = 'true'
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['LLM_PROVIDER'] = 'mock'
os.environ['OPENAI_API_KEY'] = os.environ.get('OPENAI_API_KEY', 'sk-test-key')
os.environ['ASKLESS_ENABLE_COMMENT_CRITIQUE'] = 'true'

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from askless.bots import BOTS_BY_KEY
from askless.db_models import Base
from askless.exceptions import LLMAuthenticationError, LLMError
from askless.llm_providers import MockLLMProvider

# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database with foreign keys enforced."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    @event.listens_for(engine, "connect")
    def _fk_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory) -> Session:
    """Create test database session (same database the client fixture uses)."""
    session = session_factory()
    yield session
    session.close()


# =============================================================================
# LLM Fixtures
# =============================================================================


class ScriptedProvider(MockLLMProvider):
    """
    Mock provider whose answers fail for chosen bot personalities.

    The bot is recognized by its instruction text inside the prompt.
    """

    def __init__(self, fail_keys: Iterable[str] = (), error: LLMError = None, tags: List[str] = None):
        self.fail_keys = set(fail_keys)
        self.error = error or LLMError("upstream failure")
        self.tags = tags
        self.prompts: List[str] = []

    async def generate_answer(self, prompt: str) -> str:
        self.prompts.append(prompt)
        for key in self.fail_keys:
            if BOTS_BY_KEY[key].system_instruction in prompt:
                raise self.error
        return await super().generate_answer(prompt)

    async def generate_tags(self, title: str, content: str) -> List[str]:
        if self.tags is not None:
            return list(self.tags)
        return await super().generate_tags(title, content)


class CritiqueProvider(MockLLMProvider):
    """Mock provider that flags every comment as low quality."""

    def __init__(self, reply: str = "Seriously? Add some context."):
        self.reply = reply
        self.calls: List[List[Dict]] = []

    async def chat_completion(self, messages, temperature: float = 0.7) -> str:
        self.calls.append(messages)
        if len(self.calls) == 1:
            return '```json\n{"isLowQuality": true, "shouldRespond": true, "critique": "Too vague."}\n```'
        return self.reply


@pytest.fixture
def mock_provider():
    """Provide a mock LLM provider for testing without OpenAI API calls."""
    return MockLLMProvider()


@pytest.fixture
def all_fail_provider():
    """Every bot fails as if the API key were invalid."""
    return ScriptedProvider(
        fail_keys=BOTS_BY_KEY.keys(),
        error=LLMAuthenticationError("Incorrect API key provided"),
    )


# =============================================================================
# API Client
# =============================================================================


@pytest.fixture
def make_client(session_factory):
    """Build a TestClient wired to the test database and a given provider."""
    from askless.database import get_session_factory
    from askless.dependencies import get_llm_provider, get_optional_llm_provider
    from askless.main import app

    def _make(provider=None):
        provider = provider or MockLLMProvider()
        app.dependency_overrides[get_session_factory] = lambda: session_factory
        app.dependency_overrides[get_llm_provider] = lambda: provider
        app.dependency_overrides[get_optional_llm_provider] = lambda: provider
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()


@pytest.fixture
def client(make_client, mock_provider):
    return make_client(mock_provider)


@pytest.fixture
def user():
    return {"userId": "11111111-1111-4111-8111-111111111111", "username": "alice"}


@pytest.fixture
def other_user():
    return {"userId": "22222222-2222-4222-8222-222222222222", "username": "bob"}
