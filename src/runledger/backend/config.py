"""Configuration settings for the runledger backend."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RUNLEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str

    # API
    debug: bool = False

    # Logging
    log_level: str = "INFO"
    log_json_format: bool = True

    # External collaborators
    duplicate_lookup_timeout_seconds: float = 5.0
    screenshot_upload_timeout_seconds: float = 30.0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    # pydantic-settings loads required fields from env vars at runtime
    return Settings()  # type: ignore[call-arg]
