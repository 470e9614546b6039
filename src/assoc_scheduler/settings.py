"""Scheduler settings.

Configuration is explicit, validated, and environment-driven.  Every
field can be overridden with an ``ASSOC_SCHEDULER_`` environment
variable; nested retry fields use ``__`` (``ASSOC_SCHEDULER_RETRY__MAX_ATTEMPTS=5``).

Examples:
    >>> from assoc_scheduler.settings import SchedulerSettings
    >>> settings = SchedulerSettings(retry={"max_attempts": 5, "interval": 30})
    >>> settings.retry.interval
    datetime.timedelta(seconds=30)

Tags:
    settings, configuration, pydantic, environment

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from datetime import timedelta

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RetrySettings(BaseModel):
    """Retry policy applied after a handler failure."""

    max_attempts: int = Field(default=3, ge=0, description="Maximum retries after a failed firing")
    interval: timedelta = Field(
        default=timedelta(minutes=1),
        description="Delay before a one-shot retry trigger fires",
    )

    @field_validator("interval")
    @classmethod
    def _positive_interval(cls, value: timedelta) -> timedelta:
        if value.total_seconds() <= 0:
            raise ValueError("retry interval must be positive")
        return value


class SchedulerSettings(BaseSettings):
    """Settings for the scheduler service, API, and CLI.

    Order of precedence (highest → lowest):
        1. Environment variables (``ASSOC_SCHEDULER_DATABASE_URL``, etc.)
        2. ``.env`` file
        3. Defaults below
    """

    model_config = SettingsConfigDict(
        env_prefix="ASSOC_SCHEDULER_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # ── Storage ──────────────────────────────────────────────────
    database_url: str = Field(
        default="sqlite:///assoc_scheduler.db",
        description="sqlite:///path, a bare file path, or 'memory'",
    )

    # ── Execution ────────────────────────────────────────────────
    retry: RetrySettings = Field(default_factory=RetrySettings)
    start_engine: bool = Field(default=True, description="Start the trigger engine on API startup")

    # ── Observability ────────────────────────────────────────────
    debug: bool = False
    log_level: str = "INFO"
    json_logs: bool | None = Field(default=None, description="None = JSON when stdout is not a tty")

    # ── API ──────────────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 12100
    api_prefix: str = "/api/v1"
    api_title: str = "assoc-scheduler API"
    api_version: str = "0.3.0"
