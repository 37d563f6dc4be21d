"""Centralized configuration management for seqdir.

Uses Pydantic BaseSettings for environment variable loading with validation.
Configuration is loaded once and cached; the CLI reads it at startup.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from seqdir.manager import StatusErrorPolicy

ALLOWED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class Settings(BaseSettings):
    """seqdir settings.

    All settings can be overridden via environment variables prefixed with
    ``SEQDIR_`` (e.g. ``SEQDIR_POLL_INTERVAL_SECONDS=30``).
    """

    model_config = SettingsConfigDict(
        env_prefix="SEQDIR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========== Polling ==========
    poll_interval_seconds: float = Field(
        default=60.0,
        description="Seconds between polls for `seqdir watch`",
    )
    status_error_policy: str = Field(
        default=StatusErrorPolicy.IGNORE.value,
        description="How to treat an unreadable RunCompletionStatus.xml: ignore, raise",
    )

    # ========== Watchlist ==========
    watchlist_path: Optional[str] = Field(
        default=None,
        description="YAML file listing run directories to watch",
    )

    # ========== Logging ==========
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )

    @field_validator("poll_interval_seconds")
    @classmethod
    def validate_poll_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("poll_interval_seconds must be greater than 0")
        return v

    @field_validator("status_error_policy")
    @classmethod
    def validate_status_error_policy(cls, v: str) -> str:
        """Validate policy is one of the allowed values."""
        allowed = {p.value for p in StatusErrorPolicy}
        if v.lower() not in allowed:
            raise ValueError(f"status_error_policy must be one of: {allowed}")
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        if v.upper() not in ALLOWED_LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {ALLOWED_LOG_LEVELS}")
        return v.upper()

    def get_status_error_policy(self) -> StatusErrorPolicy:
        return StatusErrorPolicy(self.status_error_policy)

    def get_log_level(self) -> int:
        return getattr(logging, self.log_level)

    def get_watchlist_path(self) -> Optional[Path]:
        if not self.watchlist_path:
            return None
        return Path(self.watchlist_path).expanduser()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are loaded once and cached for the lifetime of the process.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when you need to reload settings with different
    environment variables.
    """
    get_settings.cache_clear()


def get_settings_for_testing(**overrides) -> Settings:
    """Create settings instance with overrides for testing.

    This bypasses the cache, allowing tests to use custom configuration.
    """
    return Settings(**overrides)
