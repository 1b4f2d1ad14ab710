"""
Application Configuration

This module provides type-safe configuration loading using Pydantic settings.
Environment variables are loaded from .env file and validated.

Usage:
    from hsk_tutor.config import settings

    # Access settings
    redis_url = settings.REDIS_URL
    pool_size = settings.get_pool_size(ContentKind.VOCABULARY)
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic_settings import BaseSettings

from hsk_tutor.enums import ContentKind, RateLimitType


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "HSK Tutor"
    DEBUG: bool = False
    CORS_ORIGINS: list[str] = ["*"]

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    # All keys are written as "{KEY_PREFIX}:{lifetime}:{namespace}:{key}"
    KEY_PREFIX: str = "hsk"

    # LLM providers (LiteLLM reads the keys from the environment as well)
    GEMINI_API_KEY: str = ""
    OPENAI_API_KEY: str = ""

    # Text model for all content generation
    # Format: provider/model-name
    TEXT_MODEL: str = "gemini/gemini-2.5-flash"
    LLM_TEMPERATURE: float = 0.7
    LLM_MAX_TOKENS: int = 32768
    LLM_RETRY_ATTEMPTS: int = 3

    # Content pools - number of items fetched per provider call
    POOL_SIZE_VOCABULARY: int = 100
    POOL_SIZE_WRITING: int = 25
    POOL_SIZE_CONVERSATION: int = 8
    VOCABULARY_PAGE_SIZE: int = 10

    # Mock exam
    EXAM_QUESTION_COUNT: int = 40
    EXAM_OPTION_COUNT: int = 4
    EXAM_DURATION_SECONDS: int = 50 * 60
    EXAM_TICK_SECONDS: float = 1.0

    # Review scheduling
    REVIEW_NEW_CARD_INTERVAL_DAYS: int = 1

    # History
    HISTORY_MAX_ITEMS: int = 100

    # In-memory learner contexts idle longer than this are closed and dropped
    CONTEXT_IDLE_SECONDS: int = 3600
    CONTEXT_SWEEP_INTERVAL_SECONDS: int = 60

    # Rate limiting (SlowAPI format: "<count>/<period>")
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT: str = "100/minute"
    RATE_LIMIT_LLM_HEAVY: str = "10/minute"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    def get_pool_size(self, kind: ContentKind) -> int:
        """
        Get the target pool size for a content kind.

        Kinds without a dedicated pool (exam questions, lookups) are
        requested one batch at a time and fall back to the exam size.
        """
        sizes = {
            ContentKind.VOCABULARY: self.POOL_SIZE_VOCABULARY,
            ContentKind.WRITING_CHARACTER: self.POOL_SIZE_WRITING,
            ContentKind.CONVERSATION: self.POOL_SIZE_CONVERSATION,
            ContentKind.EXAM_QUESTION: self.EXAM_QUESTION_COUNT,
        }
        return sizes.get(kind, 1)

    def get_rate_limit(self, rate_limit_type: RateLimitType) -> str:
        """Get the SlowAPI rate limit string for an endpoint category."""
        limits = {
            RateLimitType.DEFAULT: self.RATE_LIMIT_DEFAULT,
            RateLimitType.LLM_HEAVY: self.RATE_LIMIT_LLM_HEAVY,
        }
        return limits.get(rate_limit_type, self.RATE_LIMIT_DEFAULT)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()


@lru_cache()
def load_yaml_config() -> dict[str, Any]:
    """Load application configuration from config/default.yaml."""
    config_path = Path(__file__).parent.parent.parent.parent / "config" / "default.yaml"

    if not config_path.exists():
        return {}

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


yaml_config: dict[str, Any] = load_yaml_config()
