"""Configuration management using pydantic-settings."""
from typing import Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )

    # Sanity project configuration
    sanity_project_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "sanity_project_id", "SANITY_PROJECT_ID", "NEXT_PUBLIC_SANITY_PROJECT_ID"
        ),
    )
    sanity_api_version: str = Field(
        default="2025-02-10",
        validation_alias=AliasChoices(
            "sanity_api_version", "SANITY_API_VERSION", "NEXT_PUBLIC_SANITY_API_VERSION"
        ),
    )
    sanity_dataset: str = Field(
        default="production",
        validation_alias=AliasChoices(
            "sanity_dataset", "SANITY_DATASET", "NEXT_PUBLIC_SANITY_DATASET"
        ),
    )

    # Viewer token for draft preview (supplied, never minted here)
    sanity_viewer_token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "sanity_viewer_token",
            "SANITY_VIEWER_TOKEN",
            "SANITY_API_READ_TOKEN",
            "NEXT_PUBLIC_SANITY_VIEWER_TOKEN",
        ),
    )

    # HTTP
    request_timeout_seconds: float = 30.0

    # Rate limiting (10 req/sec max)
    rate_limit_min_interval_ms: int = 100

    # Cache settings
    cache_enabled: bool = True
    cache_default_ttl_seconds: int = 60
    cache_max_entries: int = 100

    # Remote cache tier (Redis); disabled when unset
    redis_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("redis_url", "REDIS_URL", "KV_URL"),
    )
    redis_socket_timeout_seconds: float = 5.0

    # Retry (optional transport decorator)
    retry_enabled: bool = False
    retry_attempts: int = 3
    retry_min_wait_ms: int = 100
    retry_max_wait_ms: int = 2000

    # Cache warming
    warm_concurrency: int = 5

    log_level: str = "INFO"


def load_settings(env_file: str = ".env") -> Settings:
    """Load env_file into the process environment, then build settings from it."""
    load_dotenv(env_file)
    return Settings(_env_file=env_file)


settings = load_settings()
