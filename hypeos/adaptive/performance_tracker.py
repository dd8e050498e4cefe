"""
Performance Profile Tracker.

Maintains per-user, per-category attempt statistics and the two trend
signals consumed by the difficulty calculator:
- weekly_trend: -1 (declining) .. 1 (improving)
- consistency_score: 0 .. 1

Updates are functional: the input profile is never modified, a new profile
with a new category map is returned.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Literal

from loguru import logger

from hypeos.core.models import (
    AttemptRecord,
    PerformanceMetrics,
    Task,
    UserPerformanceProfile,
    normalize_category,
    utc_now,
)
from hypeos.core.numeric import clamp

EMA_WEIGHT = 0.3
NEUTRAL_SUCCESS_RATE = 0.5

TrendMode = Literal["windowed", "snapshot"]


@dataclass
class TrendConfig:
    """Configuration for the weekly trend signal."""

    mode: TrendMode = "windowed"
    window_days: int = 7

    @property
    def retention_days(self) -> int:
        """Attempts older than two windows are no longer needed."""
        return self.window_days * 2


@dataclass
class PerformanceSummary:
    """Report card for a profile."""

    overall_grade: str
    strengths: list[str]
    improvements: list[str]
    recommendations: list[str]


def initialize_performance_profile(user_id: str, now: datetime | None = None) -> UserPerformanceProfile:
    """Neutral-prior profile for a user with no history."""
    return UserPerformanceProfile(
        user_id=user_id,
        overall_success_rate=NEUTRAL_SUCCESS_RATE,
        category_performance={},
        weekly_trend=0.0,
        consistency_score=0.0,
        total_tasks_attempted=0,
        total_tasks_completed=0,
        last_updated=now or utc_now(),
    )


def update_performance_metrics(
    profile: UserPerformanceProfile,
    task: Task,
    completed: bool,
    time_spent_minutes: float,
    difficulty_multiplier: float | None = None,
    now: datetime | None = None,
    trend: TrendConfig | None = None,
) -> UserPerformanceProfile:
    """
    Record one attempt and return the updated profile.

    Args:
        profile: Current profile (left untouched)
        task: Attempted task; its normalized category is tracked
        completed: Whether the attempt succeeded
        time_spent_minutes: Time on task, folded into the EMA
        difficulty_multiplier: Multiplier the task was scored with, appended
            to the category's difficulty history
        now: Clock override
        trend: Trend configuration (windowed by default)

    Returns:
        New UserPerformanceProfile
    """
    now = now or utc_now()
    trend = trend or TrendConfig()
    category = normalize_category(task.category)

    current = profile.category_performance.get(category) or PerformanceMetrics(category=category)
    metrics = _updated_metrics(current, completed, time_spent_minutes, difficulty_multiplier, now)

    category_performance = dict(profile.category_performance)
    category_performance[category] = metrics

    attempted = profile.total_tasks_attempted + 1
    completed_total = profile.total_tasks_completed + (1 if completed else 0)
    success_rate = completed_total / max(attempted, 1)

    cutoff = now - timedelta(days=trend.retention_days)
    recent = [a for a in profile.recent_attempts if a.at >= cutoff]
    recent.append(AttemptRecord(at=now, completed=completed))

    if trend.mode == "snapshot":
        weekly_trend = _snapshot_trend(category_performance, success_rate)
    else:
        weekly_trend = _windowed_trend(recent, now, trend.window_days)

    consistency = min(1.0, completed_total / max(attempted * 0.7, 1))

    logger.debug(
        f"Profile {profile.user_id}: {category} attempt "
        f"({'done' if completed else 'failed'}), success={success_rate:.2f}, trend={weekly_trend:+.2f}"
    )

    return replace(
        profile,
        overall_success_rate=success_rate,
        category_performance=category_performance,
        weekly_trend=weekly_trend,
        consistency_score=consistency,
        total_tasks_attempted=attempted,
        total_tasks_completed=completed_total,
        last_updated=now,
        recent_attempts=recent,
    )


def _updated_metrics(
    metrics: PerformanceMetrics,
    completed: bool,
    time_spent: float,
    difficulty_multiplier: float | None,
    now: datetime,
) -> PerformanceMetrics:
    if completed:
        successes, fails = metrics.consecutive_successes + 1, 0
    else:
        successes, fails = 0, metrics.consecutive_fails + 1

    time_spent = max(0.0, time_spent)
    if metrics.average_time == 0:
        average_time = time_spent
    else:
        average_time = metrics.average_time * (1 - EMA_WEIGHT) + time_spent * EMA_WEIGHT

    history = list(metrics.difficulty_history)
    if difficulty_multiplier is not None:
        history.append(difficulty_multiplier)

    return replace(
        metrics,
        attempts=metrics.attempts + 1,
        completions=metrics.completions + (1 if completed else 0),
        average_time=average_time,
        last_attempt=now,
        consecutive_fails=fails,
        consecutive_successes=successes,
        difficulty_history=history,
    )


def _windowed_trend(attempts: list[AttemptRecord], now: datetime, window_days: int) -> float:
    """
    Success rate of the last window minus the window before it.

    Neutral (0.0) until both windows have at least one attempt.
    """
    window = timedelta(days=window_days)
    current = [a for a in attempts if now - a.at <= window]
    previous = [a for a in attempts if window < now - a.at <= window * 2]
    if not current or not previous:
        return 0.0

    current_rate = sum(a.completed for a in current) / len(current)
    previous_rate = sum(a.completed for a in previous) / len(previous)
    return clamp(current_rate - previous_rate, -1.0, 1.0)


def _snapshot_trend(category_performance: dict[str, PerformanceMetrics], overall: float) -> float:
    """Point-in-time heuristic: mean category rate against the overall rate."""
    if not category_performance:
        return 0.0
    mean_rate = sum(m.success_rate for m in category_performance.values()) / len(
        category_performance
    )
    return 0.5 if mean_rate > overall else -0.2


def get_performance_summary(profile: UserPerformanceProfile) -> PerformanceSummary:
    """Grade the profile and list strong and weak categories."""
    rate = profile.overall_success_rate
    if rate >= 0.8:
        grade = "A"
    elif rate >= 0.65:
        grade = "B"
    elif rate >= 0.5:
        grade = "C"
    else:
        grade = "D"

    strengths: list[str] = []
    improvements: list[str] = []
    for category, metrics in profile.category_performance.items():
        if metrics.success_rate >= 0.8 and metrics.attempts >= 5:
            strengths.append(category)
        elif metrics.success_rate < 0.5 and metrics.attempts >= 3:
            improvements.append(category)

    recommendations: list[str] = []
    if rate < 0.5:
        recommendations.append("Focus on completing easier tasks to build confidence")
    if profile.weekly_trend < 0:
        recommendations.append("Try to maintain consistency - your streak helps!")
    if strengths:
        recommendations.append(f"Keep excelling in {strengths[0]} - you're doing great!")
    if improvements:
        recommendations.append(f"Consider spending more time on {improvements[0]} to improve")

    return PerformanceSummary(
        overall_grade=grade,
        strengths=strengths,
        improvements=improvements,
        recommendations=recommendations,
    )
