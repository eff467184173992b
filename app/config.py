"""Application configuration using pydantic-settings."""

import json
from ast import literal_eval
from functools import lru_cache
from typing import Annotated, ClassVar, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "The Daily Agent"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    environment: Literal["development", "staging", "production"] = "development"

    # API
    api_v1_prefix: str = "/api/v1"

    # Bearer token shared by the scheduler and operator endpoints
    cron_secret: str | None = None

    # Redis document store
    redis_url: str = "redis://localhost:6379/0"
    store_key_prefix: str = "daily_agent"

    # LLM Configuration
    default_llm_model: str = "openrouter:moonshotai/kimi-k2"
    openrouter_api_key: str | None = None
    llm_max_retries: int = 3

    # Per-tier model overrides (optional; override the built-in defaults below)
    model_reasoning: str | None = None
    model_standard: str | None = None
    model_fast: str | None = None

    _MODEL_DEFAULTS: ClassVar[dict[str, dict[str, str]]] = {
        "development": {
            "reasoning": "openrouter:moonshotai/kimi-k2",
            "standard": "openrouter:moonshotai/kimi-k2",
            "fast": "openrouter:google/gemma-3-27b-it:free",
        },
        "staging": {
            "reasoning": "openrouter:moonshotai/kimi-k2",
            "standard": "openrouter:moonshotai/kimi-k2",
            "fast": "openrouter:moonshotai/kimi-k2",
        },
        "production": {
            "reasoning": "openrouter:google/gemini-2.5-pro",
            "standard": "openrouter:moonshotai/kimi-k2",
            "fast": "openrouter:moonshotai/kimi-k2",
        },
    }

    def get_model(self, tier: str = "standard") -> str:
        """Resolve the model string for a given tier based on environment.

        Priority: env var override > built-in defaults > default_llm_model fallback.
        """
        override = getattr(self, f"model_{tier}", None)
        if isinstance(override, str) and override:
            return override

        env_defaults = self._MODEL_DEFAULTS.get(self.environment, {})
        resolved = env_defaults.get(tier, self.default_llm_model)
        if isinstance(resolved, str):
            return resolved
        return self.default_llm_model

    # Lead source and web search
    newsdata_api_key: str | None = None
    newsdata_base_url: str = "https://newsdata.io/api/1"
    tavily_api_key: str | None = None
    lead_topics: Annotated[list[str], NoDecode] = [
        "world",
        "technology",
        "business",
        "science",
        "politics",
        "entertainment",
        "sports",
    ]

    # Workflow
    journalist_count: int = 5
    initial_lead_limit: int = 45
    top_up_lead_limit: int = 5
    min_validated_articles: int = 35
    max_attempts: int = 3
    min_article_body_length: int = 50
    generation_failure_markers: Annotated[list[str], NoDecode] = [
        "could not generate",
        "failed to generate summary",
    ]

    # Invocation budget
    invocation_time_limit_seconds: int = 300
    timeout_guard_ratio: float = 0.77

    # Trigger loop
    scheduler_interval_seconds: float = 60.0
    manual_poll_interval_seconds: float = 0.5

    @property
    def timeout_guard_threshold_seconds(self) -> float:
        """Elapsed time after which an in-flight editorial phase is resumed."""
        return self.invocation_time_limit_seconds * self.timeout_guard_ratio

    @field_validator("lead_topics", "generation_failure_markers", mode="before")
    @classmethod
    def _parse_string_list(cls, value: object) -> object:
        """Accept JSON list/string or comma-separated values."""
        if isinstance(value, list):
            return [str(item).strip() for item in value if str(item).strip()]
        if not isinstance(value, str):
            return value

        raw = value.strip()
        if not raw:
            return []

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            try:
                parsed = literal_eval(raw)
            except (ValueError, SyntaxError):
                return [item.strip() for item in raw.split(",") if item.strip()]

        if isinstance(parsed, str):
            parsed = [parsed]
        if isinstance(parsed, tuple | set):
            parsed = list(parsed)
        if not isinstance(parsed, list):
            raise ValueError("Expected a JSON array, JSON string, or comma-separated string.")
        return [str(item).strip() for item in parsed if str(item).strip()]

    @field_validator("journalist_count", "max_attempts")
    @classmethod
    def _require_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be >= 1")
        return value

    @field_validator("timeout_guard_ratio")
    @classmethod
    def _validate_guard_ratio(cls, value: float) -> float:
        if not 0 < value < 1:
            raise ValueError("timeout_guard_ratio must be between 0 and 1")
        return value


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()

    return settings


settings = get_settings()
