"""Application configuration settings."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Application
    APP_NAME: str = "AIO Diagnosis API"
    APP_VERSION: str = "1.0.0"

    # LLM (generative search with web grounding)
    ANTHROPIC_API_KEY: Optional[str] = None
    LLM_MODEL: str = "claude-sonnet-4-5"
    LLM_MAX_TOKENS: int = 1024
    LLM_WEB_SEARCH_MAX_USES: int = 3

    # Self-imposed rate limiting against the LLM provider
    LLM_CALL_DELAY_SECONDS: float = 3.0
    LLM_BACKOFF_BASE_SECONDS: float = 5.0
    LLM_BACKOFF_CAP_SECONDS: float = 30.0
    LLM_MAX_ATTEMPTS: int = 3

    # Crawler
    CRAWLER_MAX_PAGES: int = 20
    CRAWLER_TIMEOUT: int = 10  # seconds

    # Database
    DATABASE_URL: str = "sqlite:///./aio_diagnoses.db"

    # API
    ANALYZE_RATE_LIMIT: str = "5/minute"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
