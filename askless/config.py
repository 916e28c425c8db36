"""
Centralized Configuration for askless.

All environment variables are managed here using Pydantic Settings.
This provides:
- Type validation
- Default values
- Single source of truth

Usage:
    from askless.config import settings

    db_url = settings.database_url
    fallbacks = settings.model_fallback_list
"""

from typing import List, Literal, Optional

from pydantic import ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables are prefixed with ASKLESS_ where applicable.
    See .env.example for all available options.
    """

    # =============================================================================
    # Application Environment
    # =============================================================================

    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
        validation_alias="ASKLESS_ENVIRONMENT"
    )

    testing: bool = Field(
        default=False,
        description="Enable testing mode",
        validation_alias="TESTING"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        validation_alias="ASKLESS_LOG_LEVEL"
    )

    allowed_origins: str = Field(
        default="http://localhost:5173",
        description="CORS allowed origins (comma-separated or '*')",
        validation_alias="ASKLESS_ALLOWED_ORIGINS"
    )

    host: str = Field(
        default="0.0.0.0",
        description="Interface the API server binds to",
        validation_alias="HOST"
    )

    port: int = Field(
        default=3001,
        description="Port the API server listens on",
        validation_alias="PORT"
    )

    # =============================================================================
    # Database
    # =============================================================================

    database_url: str = Field(
        default="sqlite:///./askless.db",
        description="Database connection URL (PostgreSQL or SQLite)",
        validation_alias="DATABASE_URL"
    )

    # =============================================================================
    # LLM Provider
    # =============================================================================

    llm_provider: Literal["openai", "mock"] = Field(
        default="openai",
        description="LLM provider to use",
        validation_alias="LLM_PROVIDER"
    )

    openai_api_key: Optional[str] = Field(
        default=None,
        description="OpenAI API key",
        validation_alias="OPENAI_API_KEY"
    )

    openai_base_url: Optional[str] = Field(
        default=None,
        description="Override for the OpenAI-compatible API endpoint",
        validation_alias="OPENAI_BASE_URL"
    )

    model_fallbacks: str = Field(
        default="gpt-4o-mini,gpt-4.1-mini,gpt-4o,gpt-3.5-turbo",
        description="Comma-separated models tried in order for each generation",
        validation_alias="ASKLESS_MODEL_FALLBACKS"
    )

    tag_model: str = Field(
        default="gpt-4o-mini",
        description="Model used for tag generation and comment critique",
        validation_alias="ASKLESS_TAG_MODEL"
    )

    answer_max_tokens: int = Field(
        default=400,
        ge=16,
        description="Completion token cap for bot answers",
        validation_alias="ASKLESS_ANSWER_MAX_TOKENS"
    )

    # =============================================================================
    # Bots & Duplicate Detection
    # =============================================================================

    bot_namespace: str = Field(
        default="askless.bots",
        description="Namespace hashed together with a personality key to derive bot profile ids",
        validation_alias="ASKLESS_BOT_NAMESPACE"
    )

    duplicate_min_overlap: int = Field(
        default=2,
        ge=1,
        description="Shared tags needed before a question counts as a duplicate",
        validation_alias="ASKLESS_DUPLICATE_MIN_OVERLAP"
    )

    enable_comment_critique: bool = Field(
        default=True,
        description="Let a bot reply to low-quality comments",
        validation_alias="ASKLESS_ENABLE_COMMENT_CRITIQUE"
    )

    # =============================================================================
    # Client Reveal / Poll Timing
    # =============================================================================

    reveal_first_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        validation_alias="ASKLESS_REVEAL_FIRST_DELAY"
    )

    reveal_min_interval_seconds: float = Field(
        default=2.0,
        ge=0.0,
        validation_alias="ASKLESS_REVEAL_MIN_INTERVAL"
    )

    reveal_max_interval_seconds: float = Field(
        default=4.0,
        ge=0.0,
        validation_alias="ASKLESS_REVEAL_MAX_INTERVAL"
    )

    poll_interval_seconds: float = Field(
        default=1.5,
        ge=0.0,
        validation_alias="ASKLESS_POLL_INTERVAL"
    )

    poll_max_attempts: int = Field(
        default=6,
        ge=1,
        validation_alias="ASKLESS_POLL_MAX_ATTEMPTS"
    )

    # =============================================================================
    # Computed Properties
    # =============================================================================

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def model_fallback_list(self) -> List[str]:
        """Fallback models in the order they are tried."""
        return [m.strip() for m in self.model_fallbacks.split(",") if m.strip()]

    @property
    def origin_list(self) -> List[str]:
        if self.allowed_origins.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    # =============================================================================
    # Pydantic Model Configuration
    # =============================================================================

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =============================================================================
    # Field Validators
    # =============================================================================

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v):
        """Convert postgres:// to postgresql:// for SQLAlchemy compatibility."""
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is uppercase and valid."""
        v = v.upper()
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        """Ensure environment is lowercase."""
        return v.lower() if isinstance(v, str) else v


# =============================================================================
# Global Settings Instance
# =============================================================================

settings = Settings()


def get_settings() -> Settings:
    """
    Get settings instance (for dependency injection).

    Usage:
        @app.get("/endpoint")
        def endpoint(settings: Settings = Depends(get_settings)):
            ...
    """
    return settings


__all__ = ["settings", "get_settings", "Settings"]
