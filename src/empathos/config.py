"""Centralised engine settings loaded from environment / .env file."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """All runtime configuration for the fusion-and-orchestration core.

    Values are read from environment variables first, then from a *.env* file
    located at the project root.  Every variable lives in the flat
    ``EMPATHOS_`` namespace (e.g. ``EMPATHOS_STRESS_THRESHOLD=0.8``).
    """

    model_config = SettingsConfigDict(
        env_prefix="EMPATHOS_",
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Retention ─────────────────────────────────────────────
    history_capacity: int = Field(1000, ge=1)
    action_history_capacity: int = Field(100, ge=1)
    average_window_seconds: float = Field(300.0, gt=0)

    # ── Rule thresholds ───────────────────────────────────────
    stress_threshold: float = Field(0.7, ge=0.0, le=1.0)
    deep_work_threshold: float = Field(0.75, ge=0.0, le=1.0)
    high_confusion_threshold: float = Field(0.6, ge=0.0, le=1.0)
    low_focus_threshold: float = Field(0.3, ge=0.0, le=1.0)

    # ── Scheduler ─────────────────────────────────────────────
    cycle_interval_seconds: float = Field(2.0, gt=0)
    collector_timeout_seconds: float = Field(1.5, gt=0)

    # ── Sources (privacy defaults: only behavioral tracking is on) ──
    enable_facial: bool = False
    enable_vocal: bool = False
    enable_behavioral: bool = True
    enable_wearable: bool = False

    # ── Dispatch ──────────────────────────────────────────────
    subscriber_queue_size: int = Field(256, ge=1)
    subscriber_put_timeout_seconds: float = Field(0.5, ge=0)
    log_actions: bool = True
    webhook_url: str = ""
    webhook_timeout_seconds: float = 10.0

    # ── Logging ───────────────────────────────────────────────
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Return a cached :class:`Settings` singleton."""
    return Settings()
