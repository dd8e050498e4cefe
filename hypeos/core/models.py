"""
Core data model for the adaptive learning engine.

Design:
- Task: a catalog entry, normalized on construction (category, skill key)
- StreakData: read-only input from the streak calculator
- PerformanceMetrics / UserPerformanceProfile: per-user performance state
- ReviewItem: SM-2 state for one (task, skill) pair

Stored state is re-validated on construction so that clamps hold even for
records loaded from a damaged store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum

from hypeos.core.numeric import clamp

DEFAULT_CATEGORY = "general"

MIN_EASE_FACTOR = 1.3
MAX_EASE_FACTOR = 2.5
MASTERY_INTERVAL_DAYS = 365


def utc_now() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def normalize_category(category: str | None) -> str:
    """Empty or missing categories fall back to 'general'."""
    if category is None:
        return DEFAULT_CATEGORY
    if not isinstance(category, str):
        raise TypeError(f"category must be a string, got {type(category).__name__}")
    category = category.strip()
    return category or DEFAULT_CATEGORY


# =============================================================================
# Enums
# =============================================================================


class ImpactTier(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class DifficultyLevel(str, Enum):
    """Difficulty tier shown next to a task."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXPERT = "expert"

    @property
    def is_challenging(self) -> bool:
        return self in (DifficultyLevel.HARD, DifficultyLevel.EXPERT)

    @property
    def color(self) -> str:
        """Rich color for CLI display."""
        return {
            DifficultyLevel.EASY: "green",
            DifficultyLevel.MEDIUM: "cyan",
            DifficultyLevel.HARD: "yellow",
            DifficultyLevel.EXPERT: "red",
        }[self]


class MasteryLevel(str, Enum):
    """
    Skill mastery stage.

    WEAKENED overrides every other stage once retention strength drops
    below 50.
    """

    NEW = "new"
    LEARNING = "learning"
    PRACTICED = "practiced"
    MASTERED = "mastered"
    WEAKENED = "weakened"

    @classmethod
    def from_repetitions(cls, repetitions: int) -> MasteryLevel:
        if repetitions <= 0:
            return cls.NEW
        if repetitions < 3:
            return cls.LEARNING
        return cls.PRACTICED

    @property
    def emoji(self) -> str:
        """Status glyph for CLI display."""
        return {
            MasteryLevel.NEW: "○",
            MasteryLevel.LEARNING: "◔",
            MasteryLevel.PRACTICED: "◕",
            MasteryLevel.MASTERED: "●",
            MasteryLevel.WEAKENED: "◌",
        }[self]

    @property
    def color(self) -> str:
        return {
            MasteryLevel.NEW: "dim",
            MasteryLevel.LEARNING: "yellow",
            MasteryLevel.PRACTICED: "cyan",
            MasteryLevel.MASTERED: "green",
            MasteryLevel.WEAKENED: "red",
        }[self]


class ReviewType(str, Enum):
    OVERDUE = "overdue"
    WEAKENED = "weakened"
    NEW = "new"
    PRACTICE = "practice"
    MASTERY = "mastery"


# =============================================================================
# Catalog Inputs
# =============================================================================


@dataclass
class Task:
    """
    A gamified task from the caller's catalog.

    The engine never mutates tasks. `skill_key` is the explicit skill tag or
    "{category}-{id}" when the task has none.
    """

    id: int
    title: str
    category: str = DEFAULT_CATEGORY
    impact: ImpactTier = ImpactTier.MEDIUM
    base_points: int = 10
    completed: bool = False
    skill: str | None = None

    def __post_init__(self) -> None:
        self.category = normalize_category(self.category)
        if not isinstance(self.impact, ImpactTier):
            self.impact = ImpactTier(self.impact)
        if self.skill is not None:
            if not isinstance(self.skill, str):
                raise TypeError(f"skill must be a string, got {type(self.skill).__name__}")
            if not self.skill.strip():
                self.skill = None

    @property
    def skill_key(self) -> str:
        return self.skill or f"{self.category}-{self.id}"

    @classmethod
    def from_dict(cls, data: dict) -> Task:
        """
        Create a Task from a catalog dictionary.

        Accepts both snake_case and the camelCase keys used by the web client.
        """
        return cls(
            id=int(data["id"]),
            title=data.get("title", ""),
            category=data.get("category") or DEFAULT_CATEGORY,
            impact=ImpactTier(data.get("impact", "medium")),
            base_points=int(data.get("base_points", data.get("basePoints", 10))),
            completed=bool(data.get("completed", False)),
            skill=data.get("skill"),
        )


@dataclass(frozen=True)
class StreakData:
    """Streak lengths supplied by the external streak calculator."""

    current_streak: int = 0
    longest_streak: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "current_streak", max(0, int(self.current_streak)))
        object.__setattr__(self, "longest_streak", max(0, int(self.longest_streak)))


# =============================================================================
# Performance State
# =============================================================================


@dataclass
class PerformanceMetrics:
    """Attempt statistics for one user in one category."""

    category: str
    attempts: int = 0
    completions: int = 0
    average_time: float = 0.0  # minutes, EMA
    last_attempt: datetime | None = None
    consecutive_fails: int = 0
    consecutive_successes: int = 0
    difficulty_history: list[float] = field(default_factory=list)
    version: int = 0

    def __post_init__(self) -> None:
        self.attempts = max(0, self.attempts)
        self.completions = max(0, min(self.completions, self.attempts))
        self.average_time = max(0.0, self.average_time)
        if self.last_attempt is not None:
            self.last_attempt = ensure_utc(self.last_attempt)

    @property
    def success_rate(self) -> float:
        return self.completions / max(self.attempts, 1)


@dataclass(frozen=True)
class AttemptRecord:
    """A timestamped attempt outcome kept for the windowed trend."""

    at: datetime
    completed: bool


@dataclass
class UserPerformanceProfile:
    """Per-user performance aggregate."""

    user_id: str
    overall_success_rate: float = 0.5
    category_performance: dict[str, PerformanceMetrics] = field(default_factory=dict)
    weekly_trend: float = 0.0  # -1 declining .. 1 improving
    consistency_score: float = 0.0
    total_tasks_attempted: int = 0
    total_tasks_completed: int = 0
    last_updated: datetime = field(default_factory=utc_now)
    recent_attempts: list[AttemptRecord] = field(default_factory=list)
    version: int = 0

    def __post_init__(self) -> None:
        self.overall_success_rate = clamp(self.overall_success_rate, 0.0, 1.0)
        self.weekly_trend = clamp(self.weekly_trend, -1.0, 1.0)
        self.consistency_score = clamp(self.consistency_score, 0.0, 1.0)
        self.total_tasks_attempted = max(0, self.total_tasks_attempted)
        self.total_tasks_completed = max(
            0, min(self.total_tasks_completed, self.total_tasks_attempted)
        )
        self.last_updated = ensure_utc(self.last_updated)

    def metrics_for(self, category: str | None) -> PerformanceMetrics:
        """Metrics for a category, or an empty record if never attempted."""
        category = normalize_category(category)
        return self.category_performance.get(category) or PerformanceMetrics(category=category)


# =============================================================================
# Spaced Repetition State
# =============================================================================


def review_item_id(task_id: int, skill: str) -> str:
    return f"{task_id}-{skill}"


@dataclass
class ReviewItem:
    """SM-2 scheduling state for one task skill."""

    task_id: int
    category: str
    skill: str
    ease_factor: float = MAX_EASE_FACTOR
    interval: int = 1  # days
    repetitions: int = 0
    last_review: datetime = field(default_factory=utc_now)
    next_review: datetime | None = None
    quality_history: list[float] = field(default_factory=list)
    average_quality: float = 0.0
    created_at: datetime = field(default_factory=utc_now)
    mastered: bool = False
    id: str = ""
    version: int = 0

    def __post_init__(self) -> None:
        self.category = normalize_category(self.category)
        if not self.id:
            self.id = review_item_id(self.task_id, self.skill)
        self.ease_factor = clamp(self.ease_factor, MIN_EASE_FACTOR, MAX_EASE_FACTOR)
        self.interval = max(1, int(self.interval))
        self.repetitions = max(0, int(self.repetitions))
        self.last_review = ensure_utc(self.last_review)
        self.created_at = ensure_utc(self.created_at)
        if self.next_review is None:
            self.next_review = self.last_review + timedelta(days=self.interval)
        else:
            self.next_review = ensure_utc(self.next_review)
        self.mastered = self.interval > MASTERY_INTERVAL_DAYS

    @property
    def key(self) -> tuple[int, str]:
        return (self.task_id, self.skill)
