"""
Custom Exceptions for the askless backend.

Provides specific exception types for different error scenarios so the
exception handlers in main.py can map each one to an HTTP status and a
user-facing message.
"""

from typing import List, Optional


class AsklessError(Exception):
    """Base exception for all askless errors."""
    pass


# =============================================================================
# Lookup / Ownership Exceptions
# =============================================================================

class NotFoundError(AsklessError):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class PermissionDeniedError(AsklessError):
    """Raised when a user acts on content they do not own."""
    pass


# =============================================================================
# Identity Exceptions
# =============================================================================

class AuthenticationRequiredError(AsklessError):
    """Raised when no user identity can be established for a request."""

    def __init__(self, action: str = "perform this action"):
        self.action = action
        super().__init__(f"User is required to {action}")


class ProfileCreationError(AsklessError):
    """Raised when a profile row cannot be created (e.g. foreign key failure)."""

    def __init__(self, profile_id: str, reason: str = None):
        self.profile_id = profile_id
        self.reason = reason
        msg = f"Failed to create profile {profile_id}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


# =============================================================================
# Configuration Exceptions
# =============================================================================

class ConfigurationError(AsklessError):
    """Raised when there's a configuration problem."""

    def __init__(self, setting: str, reason: str = None):
        self.setting = setting
        self.reason = reason
        msg = f"Configuration error: {setting}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class MissingAPIKeyError(ConfigurationError):
    """Raised when the LLM API key is not configured."""

    def __init__(self, key_name: str = "OPENAI_API_KEY"):
        self.key_name = key_name
        super().__init__(key_name, "API key not configured")


# =============================================================================
# AI/LLM Exceptions
# =============================================================================

class LLMError(AsklessError):
    """Base exception for LLM-related errors."""

    error_type = "generic"
    suggestions: List[str] = []


class LLMAuthenticationError(LLMError):
    """Raised when the LLM API rejects the configured credential."""

    error_type = "auth"
    suggestions = [
        "1. Check that OPENAI_API_KEY is set to a valid key",
        "2. Make sure the key has not expired or been revoked",
        "3. Update the key at runtime with POST /api/config",
    ]


class LLMRateLimitError(LLMError):
    """Raised when LLM API rate limit or quota is exceeded."""

    error_type = "rate_limit"
    suggestions = [
        "1. Wait a few minutes and try again (rate limits reset periodically)",
        "2. Use a different API key",
        "3. Check your quota usage in the provider dashboard",
        "4. Consider upgrading your API plan if you need higher limits",
    ]

    def __init__(self, message: str = None, retry_after: int = None):
        self.retry_after = retry_after
        msg = message or "LLM API rate limit exceeded"
        if retry_after:
            msg += f". Retry after {retry_after} seconds"
        super().__init__(msg)


class LLMModelNotFoundError(LLMError):
    """Raised when a configured model does not exist or is not available to the key."""

    error_type = "model_not_found"
    suggestions = [
        "1. Check ASKLESS_MODEL_FALLBACKS lists models your key can access",
        "2. Make sure the API key belongs to the right organization/project",
        "3. Try generating a new API key",
    ]

    def __init__(self, model: str = None, message: str = None):
        self.model = model
        super().__init__(message or f"Model not found: {model}")


class AllBotsFailedError(LLMError):
    """Raised when no bot personality produced an answer for a question."""

    def __init__(self, question_id: Optional[str], failures: dict, cause: Optional[LLMError] = None):
        self.question_id = question_id
        self.failures = failures
        self.cause = cause
        if cause is not None:
            self.error_type = cause.error_type
            self.suggestions = cause.suggestions
        super().__init__(f"All {len(failures)} bots failed to answer")


# =============================================================================
# Storage Exceptions
# =============================================================================

class VoteStoreUnavailableError(AsklessError):
    """Raised when the votes table is missing (migration not applied)."""

    def __init__(self):
        super().__init__("Votes table does not exist. Run the votes migration before voting.")
