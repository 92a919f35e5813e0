"""Environment-driven settings for rollout-core.

All fields can be set through ``ROLLOUT_*`` environment variables (e.g.
``ROLLOUT_POD_UPDATE_TIMEOUT=900``) or a ``.env`` file in the working
directory. Durations are in seconds.

Examples:
    >>> from rollout.core.settings import get_settings
    >>> settings = get_settings()
    >>> settings.timing().pod_update_timeout
    600.0
"""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from rollout.execution.conflict import ConflictRetryPolicy
    from rollout.update.models import TimingConfig


class RolloutSettings(BaseSettings):
    """Configuration for one controller process running rollouts.

    Fields
    ──────
    pod_update_timeout       : Max time to wait for a single ordinal to verify
    pod_max_polling_interval : Upper bound on the verification backoff interval
    conflict_max_attempts    : Update attempts before a conflict becomes fatal
    conflict_retry_delay     : Pause between conflict retries
    log_level                : Structlog log level
    log_json                 : JSON logs (True), console (False), auto (None)
    """

    model_config = SettingsConfigDict(
        env_prefix="ROLLOUT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Timing ───────────────────────────────────────────────────
    pod_update_timeout: float = Field(default=600.0, description="Seconds per ordinal")
    pod_max_polling_interval: float = Field(default=30.0, description="Seconds")

    # ── Conflict retry ───────────────────────────────────────────
    conflict_max_attempts: int = Field(default=6, ge=1)
    conflict_retry_delay: float = Field(default=0.01, ge=0.0)

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool | None = None

    @field_validator("pod_update_timeout", "pod_max_polling_interval")
    @classmethod
    def _positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level {value!r}")
        return level

    def timing(self) -> TimingConfig:
        """Build the per-rollout timing configuration."""
        from rollout.update.models import TimingConfig

        return TimingConfig(
            pod_update_timeout=self.pod_update_timeout,
            pod_max_polling_interval=self.pod_max_polling_interval,
        )

    def conflict_policy(self) -> ConflictRetryPolicy:
        """Build the conflict retry policy."""
        from rollout.execution.conflict import ConflictRetryPolicy

        return ConflictRetryPolicy(
            max_attempts=self.conflict_max_attempts,
            delay=self.conflict_retry_delay,
        )


@lru_cache(maxsize=1)
def get_settings() -> RolloutSettings:
    """Load and cache settings from the environment."""
    return RolloutSettings()


__all__ = ["RolloutSettings", "get_settings"]
