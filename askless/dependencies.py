"""
Shared Dependencies for askless.

Provides:
- LLM provider access (built lazily from settings)
- The single runtime reload path for the API credential
- Service instances wired to the request's DB session
"""

import logging
from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from .exceptions import MissingAPIKeyError
from .llm_providers import LLMProvider, get_llm_provider as build_llm_provider
from .orchestrator import BotAnswerOrchestrator

# Logger
logger = logging.getLogger(__name__)

# =============================================================================
# LLM Provider
# =============================================================================


class _ProviderHolder:
    """Caches the provider; only reload() replaces it."""

    def __init__(self):
        self.provider: Optional[LLMProvider] = None
        self.api_key: Optional[str] = None

    def get(self) -> LLMProvider:
        if self.provider is None:
            self.provider = build_llm_provider(api_key=self.api_key)
            logger.info(f"LLM provider initialized: {type(self.provider).__name__}")
        return self.provider

    def reload(self, api_key: str) -> LLMProvider:
        provider = build_llm_provider(api_key=api_key)
        self.provider = provider
        self.api_key = api_key
        logger.info("LLM provider reloaded with a new API key")
        return provider

    @property
    def effective_api_key(self) -> Optional[str]:
        return self.api_key or settings.openai_api_key


_holder = _ProviderHolder()


def get_llm_provider() -> LLMProvider:
    """
    Dependency returning the configured LLM provider.

    Raises:
        MissingAPIKeyError: If the OpenAI provider has no key (mapped to 401)
    """
    return _holder.get()


def get_optional_llm_provider() -> Optional[LLMProvider]:
    """Like get_llm_provider, but None when no key is configured (best-effort callers)."""
    try:
        return get_llm_provider()
    except MissingAPIKeyError:
        logger.info("LLM provider not configured - skipping optional LLM step")
        return None


def reload_llm_provider(api_key: str) -> LLMProvider:
    """Swap in a provider built with a new API key (POST /api/config)."""
    return _holder.reload(api_key)


def current_api_key() -> Optional[str]:
    return _holder.effective_api_key


# =============================================================================
# Services
# =============================================================================


def get_orchestrator(
    db: Session = Depends(get_db),
    provider: LLMProvider = Depends(get_llm_provider)
) -> BotAnswerOrchestrator:
    return BotAnswerOrchestrator(db, provider)
