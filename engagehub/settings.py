"""
engagehub.settings - Centralized Configuration

Single source of truth for engagehub configuration.
Loads from .env files and environment variables using pydantic-settings.

Usage:
    >>> from engagehub.settings import get_settings
    >>> settings = get_settings()
    >>> settings.database_url
    'postgresql+asyncpg://localhost/engagehub_dev'
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngageSettings(BaseSettings):
    """Centralized engagehub configuration loaded from .env / environment variables.

    All ENGAGEHUB_* prefixed env vars are loaded automatically.
    The database URL uses the standard DATABASE_URL name via alias.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ENGAGEHUB_",
        extra="ignore",
    )

    # -- Environment -----------------------------------------------------------
    env: str = "development"

    # -- Database --------------------------------------------------------------
    database_url: str = Field(
        default="postgresql+asyncpg://localhost/engagehub_dev",
        alias="DATABASE_URL",
    )
    database_echo: bool = False

    # -- API Server ------------------------------------------------------------
    # Defaults to loopback; set ENGAGEHUB_API_HOST=0.0.0.0 for container use.
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"

    # -- Adapters --------------------------------------------------------------
    adapter_operation_timeout_seconds: float | None = Field(default=30.0, gt=0)
    # Skips every adapter flag check. Local development only.
    adapter_force_enable: bool = False
    # Environments where the factory treats an unreachable flag service as "enabled"
    adapter_fail_open_environments: list[str] = ["development"]

    # -- Feature Flags ---------------------------------------------------------
    feature_flag_cache_ttl_seconds: int = Field(default=300, ge=0)
    log_feature_flag_evaluations: bool = False

    # -- Helpers ---------------------------------------------------------------

    @property
    def is_development(self) -> bool:
        return self.env == "development"

    def should_log_flag_evaluations(self) -> bool:
        """Evaluations are persisted in development or when explicitly enabled."""
        return self.is_development or self.log_feature_flag_evaluations


# ---------------------------------------------------------------------------
# Singleton accessor
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_settings() -> EngageSettings:
    """Return the cached EngageSettings singleton."""
    return EngageSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for tests)."""
    get_settings.cache_clear()
