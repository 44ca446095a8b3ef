"""Runtime configuration for Metals Spine.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    The scheduler that triggers ingestion only controls environment
    variables, so every knob the engine needs is reachable through one.

    - **Pydantic validation:** Type-checked at startup, not mid-run
    - **Environment-driven:** ``METALS_*`` env vars and a ``.env`` file
    - **Sensible defaults:** Local SQLite file, Chicago run dates

Fields
──────
database_url      : Store URL (``sqlite:///path``, ``postgresql://...``)
csv_url           : Default upstream CSV location (URL or file path)
timezone          : IANA zone used to compute the run date
scheduled_prefix  : Trigger sources starting with this are "scheduled"
log_level         : DEBUG | INFO | WARNING | ERROR
log_format        : console | json
http_timeout      : Seconds before an HTTP fetch is abandoned

Examples:
    >>> from metals_spine.core.settings import get_settings
    >>> get_settings().timezone
    'America/Chicago'
"""

from __future__ import annotations

from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from ``METALS_``-prefixed environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="METALS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Storage ──────────────────────────────────────────────────
    database_url: str = "sqlite:///metals_spine.db"

    # ── Source ───────────────────────────────────────────────────
    csv_url: str | None = None
    http_timeout: float = Field(default=30.0, gt=0)

    # ── Run policy ───────────────────────────────────────────────
    timezone: str = "America/Chicago"
    scheduled_prefix: str = Field(default="cron", min_length=1)

    # ── Observability ────────────────────────────────────────────
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "console"] = "console"

    @field_validator("log_level", "log_format", mode="before")
    @classmethod
    def _normalise_case(cls, value: object, info) -> object:
        if isinstance(value, str):
            return value.upper() if info.field_name == "log_level" else value.lower()
        return value

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value

    @field_validator("csv_url", mode="before")
    @classmethod
    def _blank_is_unset(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the process-wide settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None


__all__ = ["Settings", "get_settings", "reset_settings"]
