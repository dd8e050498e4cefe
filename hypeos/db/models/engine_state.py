"""
Engine State Models.

SQLAlchemy models for per-user adaptive learning state:
- Performance profile (one row per user)
- Category metrics (one row per user and category)
- Review items (one row per user, task and skill)

Every table carries a `version` column managed by the ORM (version_id_col),
so a flush against a row that changed underneath raises StaleDataError.
Datetimes are stored as naive UTC.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, Float, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class PerformanceProfileRow(Base):
    """Aggregate performance of one user."""

    __tablename__ = "performance_profiles"

    user_id: Mapped[str] = mapped_column(Text, primary_key=True)
    overall_success_rate: Mapped[float] = mapped_column(Float, default=0.5)
    weekly_trend: Mapped[float] = mapped_column(Float, default=0.0)
    consistency_score: Mapped[float] = mapped_column(Float, default=0.0)
    total_tasks_attempted: Mapped[int] = mapped_column(Integer, default=0)
    total_tasks_completed: Mapped[int] = mapped_column(Integer, default=0)
    last_updated: Mapped[datetime] = mapped_column()

    # [[iso timestamp, completed], ...] for the windowed trend
    recent_attempts: Mapped[list] = mapped_column(JSON, default=list)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<PerformanceProfileRow(user={self.user_id}, v{self.version})>"


class CategoryMetricsRow(Base):
    """Attempt statistics of one user in one category."""

    __tablename__ = "category_metrics"

    user_id: Mapped[str] = mapped_column(Text, primary_key=True)
    category: Mapped[str] = mapped_column(Text, primary_key=True)

    attempts: Mapped[int] = mapped_column(Integer, default=0)
    completions: Mapped[int] = mapped_column(Integer, default=0)
    average_time: Mapped[float] = mapped_column(Float, default=0.0)
    last_attempt: Mapped[datetime | None] = mapped_column()
    consecutive_fails: Mapped[int] = mapped_column(Integer, default=0)
    consecutive_successes: Mapped[int] = mapped_column(Integer, default=0)
    difficulty_history: Mapped[list] = mapped_column(JSON, default=list)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<CategoryMetricsRow(user={self.user_id}, category={self.category}, v{self.version})>"


class ReviewItemRow(Base):
    """SM-2 state of one user's task skill."""

    __tablename__ = "review_items"

    user_id: Mapped[str] = mapped_column(Text, primary_key=True)
    task_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    skill: Mapped[str] = mapped_column(Text, primary_key=True)

    item_id: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(Text, nullable=False)
    ease_factor: Mapped[float] = mapped_column(Float, default=2.5)
    interval: Mapped[int] = mapped_column(Integer, default=1)
    repetitions: Mapped[int] = mapped_column(Integer, default=0)
    last_review: Mapped[datetime] = mapped_column()
    next_review: Mapped[datetime] = mapped_column()
    quality_history: Mapped[list] = mapped_column(JSON, default=list)
    average_quality: Mapped[float] = mapped_column(Float, default=0.0)
    mastered: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column()

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (Index("idx_review_items_next_review", "user_id", "next_review"),)

    def __repr__(self) -> str:
        return f"<ReviewItemRow(user={self.user_id}, item={self.item_id}, v{self.version})>"
