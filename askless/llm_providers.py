"""
Abstract LLM provider interface for decoupling from specific AI vendors.

Bot answers, tag generation and comment critique all go through an
LLMProvider, so tests can swap in MockLLMProvider and deployments can
point OPENAI_BASE_URL at any OpenAI-compatible endpoint.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import openai
from openai import AsyncOpenAI
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .config import settings
from .exceptions import (
    LLMAuthenticationError,
    LLMError,
    LLMModelNotFoundError,
    LLMRateLimitError,
    MissingAPIKeyError,
)

logger = logging.getLogger(__name__)

MAX_TAGS = 5

TAG_PROMPT = """You are a technical tag generator for a developer Q&A platform.
Generate 3-5 relevant tags for this question. Tags should be:
- Lowercase
- Single words or hyphenated (e.g., "machine-learning")
- Programming languages, frameworks, concepts, or technologies

Question Title: "{title}"
Question Content: "{content}"

Return ONLY a JSON array of tag names, nothing else.
Example: ["javascript", "react", "hooks", "async"]"""

_CODE_FENCE = re.compile(r"```(?:json)?\n?|\n?```")


def strip_code_fences(text: str) -> str:
    return _CODE_FENCE.sub("", text or "").strip()


def parse_tag_list(text: str) -> List[str]:
    """
    Parse a JSON array of tag names from a model response.

    Raises:
        ValueError: If the payload is not a JSON array of strings
    """
    tags = json.loads(strip_code_fences(text))
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise ValueError(f"Invalid tag format received: {tags!r}")
    cleaned = [t.lower().strip() for t in tags if t.strip()]
    return cleaned[:MAX_TAGS]


def classify_llm_error(exc: Exception, model: Optional[str] = None) -> LLMError:
    """
    Map a raw client exception onto the askless LLM error taxonomy.

    OpenAI SDK exceptions are matched by type; anything else falls back to
    matching well-known fragments of the message.
    """
    if isinstance(exc, LLMError):
        return exc

    message = str(exc)
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return LLMAuthenticationError(message)
    if isinstance(exc, openai.RateLimitError):
        return LLMRateLimitError(message)
    if isinstance(exc, openai.NotFoundError):
        return LLMModelNotFoundError(model, message)

    lowered = message.lower()
    if "api key" in lowered or "api_key" in lowered or "401" in lowered or "403" in lowered:
        return LLMAuthenticationError(message)
    if "429" in lowered or "quota" in lowered or "rate limit" in lowered:
        return LLMRateLimitError(message)
    if "404" in lowered or "not found" in lowered:
        return LLMModelNotFoundError(model, message)
    return LLMError(message)


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    async def generate_answer(self, prompt: str) -> str:
        """
        Generate a free-text answer for a fully built prompt.

        Raises:
            LLMError (or a subclass) once every fallback model has failed
        """
        pass

    @abstractmethod
    async def generate_tags(self, title: str, content: str) -> List[str]:
        """
        Suggest up to 5 lower-case tags for a question.

        Best-effort: returns [] on any failure instead of raising.
        """
        pass

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[Dict],
        temperature: float = 0.7
    ) -> str:
        """
        Generic chat completion for various tasks.

        Args:
            messages: List of message dicts with 'role' and 'content'
            temperature: Sampling temperature (0-1)

        Returns:
            Response text
        """
        pass


class OpenAIProvider(LLMProvider):
    """OpenAI implementation of LLM provider."""

    def __init__(
        self,
        api_key: str = None,
        models: Optional[List[str]] = None,
        tag_model: str = None,
        max_tokens: int = None,
        base_url: str = None,
    ):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key (defaults to settings.openai_api_key)
            models: Ordered fallback models for answers
            tag_model: Model for tag generation and critique
            max_tokens: Completion cap for answers
            base_url: Optional OpenAI-compatible endpoint
        """
        self.api_key = api_key or settings.openai_api_key
        if not self.api_key:
            raise MissingAPIKeyError("OPENAI_API_KEY")

        self.client = AsyncOpenAI(
            api_key=self.api_key,
            base_url=base_url or settings.openai_base_url,
            max_retries=0  # Retries are handled by tenacity in _call_openai
        )
        self.models = models or settings.model_fallback_list
        self.tag_model = tag_model or settings.tag_model
        self.max_tokens = max_tokens or settings.answer_max_tokens

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type((openai.APIConnectionError,)),
        reraise=True
    )
    async def _call_openai(
        self,
        messages: List[Dict],
        model: str,
        max_tokens: int,
        temperature: float = 0.75
    ) -> str:
        """Call OpenAI API, retrying transient connection failures."""
        logger.info(f"Calling OpenAI with model: {model}")

        response = await self.client.chat.completions.create(
            model=model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        content = response.choices[0].message.content

        if getattr(response, "usage", None):
            logger.info(
                f"📊 OpenAI usage: model={model}, tokens={response.usage.prompt_tokens}"
                f"+{response.usage.completion_tokens}={response.usage.total_tokens}"
            )

        return content or ""

    async def _complete_with_fallbacks(
        self,
        messages: List[Dict],
        max_tokens: int,
        temperature: float = 0.75
    ) -> str:
        """
        Try each fallback model in order and return the first usable answer.

        Quota, model-not-found and generic failures move on to the next
        model. An authentication failure stops immediately because every
        model shares the same key.
        """
        last_error: Optional[LLMError] = None

        for model in self.models:
            try:
                text = await self._call_openai(messages, model, max_tokens, temperature)
            except Exception as e:
                error = classify_llm_error(e, model)
                if isinstance(error, LLMAuthenticationError):
                    raise error from e
                logger.warning(f"Model {model} failed ({error.error_type}): {error}; trying next model")
                last_error = error
                continue

            if text.strip():
                return text.strip()
            logger.warning(f"Model {model} returned an empty response; trying next model")
            last_error = LLMError(f"Empty response from {model}")

        if last_error is None:
            raise LLMError("No models configured")
        raise last_error

    async def generate_answer(self, prompt: str) -> str:
        return await self._complete_with_fallbacks(
            messages=[{"role": "user", "content": prompt}],
            max_tokens=self.max_tokens,
        )

    async def generate_tags(self, title: str, content: str) -> List[str]:
        prompt = TAG_PROMPT.format(title=title, content=content)
        try:
            response = await self._call_openai(
                messages=[{"role": "user", "content": prompt}],
                model=self.tag_model,
                max_tokens=100,
                temperature=0.2,
            )
            tags = parse_tag_list(response)
            logger.debug(f"Generated tags: {tags}")
            return tags
        except Exception as e:
            logger.error(f"Error generating tags: {e}")
            return []

    async def chat_completion(
        self,
        messages: List[Dict],
        temperature: float = 0.7
    ) -> str:
        try:
            return await self._call_openai(
                messages=messages,
                model=self.tag_model,
                max_tokens=300,
                temperature=temperature,
            )
        except Exception as e:
            logger.error(f"Chat completion failed: {e}")
            raise classify_llm_error(e, self.tag_model) from e


class MockLLMProvider(LLMProvider):
    """
    Mock LLM provider for testing.

    Returns deterministic data without making API calls.
    """

    KNOWN_TAGS = [
        "python", "javascript", "typescript", "react", "css", "html",
        "sql", "docker", "git", "async", "api", "testing",
    ]

    async def generate_answer(self, prompt: str) -> str:
        question = prompt.rsplit("Question:", 1)[-1].strip()
        return (
            f"Mock answer for: {question[:80]}. "
            "Start with the simplest working example, then refine it."
        )

    async def generate_tags(self, title: str, content: str) -> List[str]:
        text = f"{title} {content}".lower()
        return [tag for tag in self.KNOWN_TAGS if re.search(rf"\b{re.escape(tag)}\b", text)][:MAX_TAGS]

    async def chat_completion(
        self,
        messages: List[Dict],
        temperature: float = 0.7
    ) -> str:
        return '{"isLowQuality": false, "shouldRespond": false}'


# =============================================================================
# Provider Factory
# =============================================================================

def get_llm_provider(provider_type: str = None, api_key: str = None) -> LLMProvider:
    """
    Factory function to get the configured LLM provider.

    Args:
        provider_type: Override provider type ("openai", "mock")
        api_key: Override API key (used by the runtime reload path)

    Raises:
        MissingAPIKeyError: If the OpenAI provider has no key
        ValueError: If provider type is invalid
    """
    provider = provider_type or settings.llm_provider

    if provider == "openai":
        return OpenAIProvider(api_key=api_key)
    elif provider == "mock":
        return MockLLMProvider()
    else:
        raise ValueError(f"Unknown LLM provider: {provider}. Supported: openai, mock")
