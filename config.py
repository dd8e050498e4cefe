"""
Configuration settings for the HypeOS adaptive learning engine.

Uses Pydantic Settings for environment variable management with .env file support.
All variables use the HYPEOS_ prefix, e.g. HYPEOS_DATABASE_URL.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="HYPEOS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Persistence
    # ========================================
    database_url: str = Field(
        default=f"sqlite:///{Path.home() / '.hypeos' / 'state.db'}",
        description="SQLAlchemy URL of the engine state store",
    )
    save_retry_attempts: int = Field(
        default=3,
        ge=1,
        description="Fetch-merge-save attempts after a version conflict",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: str = Field(default="INFO", description="Loguru level for the CLI sink")

    # ========================================
    # Performance Tracking
    # ========================================
    trend_mode: Literal["windowed", "snapshot"] = Field(
        default="windowed",
        description="windowed: last 7 days vs previous 7; snapshot: point-in-time ratio",
    )
    trend_window_days: int = Field(default=7, ge=1)

    # ========================================
    # Skill Decay
    # ========================================
    decay_rate_per_day: float = Field(
        default=5.0,
        gt=0,
        description="Strength lost per day past the review interval",
    )
    mastered_decay_rate_per_day: float = Field(default=2.0, gt=0)
    review_window_days: int = Field(
        default=2,
        description="Skills due within this many days need review",
    )

    # ========================================
    # Review Queue
    # ========================================
    minutes_per_review: int = Field(default=15, ge=1)
    default_max_review_items: int = Field(default=10, ge=1)

    # ========================================
    # Scoring
    # ========================================
    apply_mastery_multiplier: bool = Field(
        default=False,
        description="Scale difficulty points by review-history mastery before category/streak",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
