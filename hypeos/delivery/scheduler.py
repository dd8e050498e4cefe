"""
SM-2 Spaced Repetition Scheduler for task skills.

Implements a simplified SuperMemo 2 variant:
- Ease factor steps instead of the continuous EF' formula
- Difficulty-aware quality adjustment (hard tasks earn a bonus)
- Daily review sessions ordered by urgency

SM-2 Quality Scale:
0 - Complete blackout
1 - Incorrect, remembered once shown
2 - Incorrect, but felt familiar
3 - Correct, with significant difficulty
4 - Correct, with some hesitation
5 - Correct, with perfect recall
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from functools import cmp_to_key

from loguru import logger

from hypeos.core.models import (
    MASTERY_INTERVAL_DAYS,
    MAX_EASE_FACTOR,
    MIN_EASE_FACTOR,
    DifficultyLevel,
    ReviewItem,
    normalize_category,
    review_item_id,
    utc_now,
)
from hypeos.core.numeric import clamp, round_half_away_from_zero

PASSING_QUALITY = 3
MAX_QUALITY = 5

# =============================================================================
# SM-2 Algorithm
# =============================================================================


@dataclass
class SM2Config:
    """Configuration for the SM-2 variant."""

    initial_ease_factor: float = MAX_EASE_FACTOR
    minimum_ease_factor: float = MIN_EASE_FACTOR
    maximum_ease_factor: float = MAX_EASE_FACTOR
    first_interval: int = 1  # Days for first review
    second_interval: int = 6  # Days for second review
    easy_task_ease_factor: float = 2.0  # Starting EF for skills first met on easy tasks


@dataclass
class ReviewCalculation:
    """Next-state values computed from one quality score."""

    next_interval: int
    next_ease_factor: float
    next_repetitions: int
    next_review_date: datetime
    mastered: bool


@dataclass
class DifficultyContext:
    """Difficulty the reviewed task was scored at."""

    difficulty_level: DifficultyLevel
    adjusted_points: int
    base_points: int

    @property
    def multiplier(self) -> float:
        if self.base_points <= 0:
            return 1.0
        return self.adjusted_points / self.base_points


@dataclass
class ReviewOutcome:
    """Result of processing one review."""

    updated_item: ReviewItem
    interval_increase: int
    recommendation: str
    quality_adjustment: float
    adjusted_quality: float


@dataclass
class ReviewSession:
    """A prepared daily review session."""

    id: str
    user_id: str
    date: datetime
    items_due: list[ReviewItem] = field(default_factory=list)
    items_reviewed: int = 0
    completed: bool = False


@dataclass
class RetentionMetrics:
    """Aggregate retention statistics over a user's review items."""

    total_items: int
    mastered_items: int
    active_items: int
    average_ease_factor: float
    average_interval: float
    retention_rate: float  # 0-1, mean quality / 5


class SM2Scheduler:
    """
    Schedules skill reviews with an SM-2 variant.

    Each review item has:
    - Ease factor (EF): growth rate of the interval, bounded [1.3, 2.5]
    - Interval: days until the next review
    - Repetitions: consecutive passing reviews
    """

    def __init__(self, config: SM2Config | None = None):
        """
        Initialize the scheduler.

        Args:
            config: Custom configuration (uses defaults if None)
        """
        self.config = config or SM2Config()

    def initialize_review_item(
        self,
        task_id: int,
        category: str,
        skill: str,
        now: datetime | None = None,
    ) -> ReviewItem:
        """Fresh review item due tomorrow."""
        now = now or utc_now()
        return ReviewItem(
            task_id=task_id,
            category=category,
            skill=skill,
            ease_factor=self.config.initial_ease_factor,
            interval=self.config.first_interval,
            repetitions=0,
            last_review=now,
            next_review=now + timedelta(days=self.config.first_interval),
            quality_history=[],
            average_quality=0.0,
            created_at=now,
        )

    def calculate_next_review(
        self,
        item: ReviewItem,
        quality: float,
        now: datetime | None = None,
    ) -> ReviewCalculation:
        """
        Calculate the next review from an (already adjusted) quality score.

        Args:
            item: Current review item
            quality: Quality 0-5

        Returns:
            ReviewCalculation with the new interval, EF and review date
        """
        now = now or utc_now()
        quality = clamp(quality, 0, MAX_QUALITY)
        cfg = self.config

        ease_factor = clamp(item.ease_factor, cfg.minimum_ease_factor, cfg.maximum_ease_factor)
        repetitions = item.repetitions

        if quality >= 5:
            ease_factor = min(cfg.maximum_ease_factor, ease_factor + 0.1)
        elif quality >= 4:
            pass
        elif quality >= PASSING_QUALITY:
            ease_factor = max(cfg.minimum_ease_factor, ease_factor - 0.15)
        else:
            # Failed - reset to beginning
            ease_factor = max(cfg.minimum_ease_factor, ease_factor - 0.3)
            repetitions = 0

        # 0.1 steps accumulate float noise; keep EF on a 2-decimal grid
        ease_factor = round(ease_factor, 2)

        if repetitions == 0:
            interval = cfg.first_interval
        elif repetitions == 1:
            interval = cfg.second_interval
        else:
            interval = round_half_away_from_zero(item.interval * ease_factor)

        if quality >= PASSING_QUALITY:
            repetitions += 1

        return ReviewCalculation(
            next_interval=interval,
            next_ease_factor=ease_factor,
            next_repetitions=repetitions,
            next_review_date=now + timedelta(days=interval),
            mastered=interval > MASTERY_INTERVAL_DAYS,
        )

    def process_review(
        self,
        item: ReviewItem,
        quality: float,
        time_spent: float | None = None,
        difficulty: DifficultyContext | None = None,
        now: datetime | None = None,
    ) -> ReviewOutcome:
        """
        Apply a self-assessed review to an item.

        Hard and expert tasks adjust quality by (multiplier - 1) * 2, capped at
        +1 and negative when scored below base points; easy tasks subtract 0.5.
        The adjusted quality drives scheduling; the raw score is what
        gets stored in the quality history.

        Args:
            item: Review item to update (left untouched)
            quality: User self-assessment 0-5
            time_spent: Minutes on task (logged only)
            difficulty: Optional difficulty context of the task
            now: Clock override

        Returns:
            ReviewOutcome with the updated item and a recommendation
        """
        now = now or utc_now()
        quality = clamp(quality, 0, MAX_QUALITY)

        quality_adjustment = 0.0
        adjusted_quality = quality
        if difficulty is not None:
            if difficulty.difficulty_level.is_challenging:
                quality_adjustment = min(1.0, (difficulty.multiplier - 1) * 2)
            elif difficulty.difficulty_level == DifficultyLevel.EASY:
                quality_adjustment = -0.5
            adjusted_quality = clamp(quality + quality_adjustment, 0, MAX_QUALITY)

        calculation = self.calculate_next_review(item, adjusted_quality, now=now)

        quality_history = [*item.quality_history, quality]
        average_quality = sum(quality_history) / len(quality_history)

        updated = replace(
            item,
            ease_factor=calculation.next_ease_factor,
            interval=calculation.next_interval,
            repetitions=calculation.next_repetitions,
            last_review=now,
            next_review=calculation.next_review_date,
            quality_history=quality_history,
            average_quality=average_quality,
            mastered=calculation.mastered,
        )

        recommendation = self._recommendation(adjusted_quality)
        if difficulty is not None and quality_adjustment > 0:
            recommendation += f" Great job on a {difficulty.difficulty_level.value} task!"

        logger.debug(
            f"Review {item.id}: q={quality} (adj {adjusted_quality:.2f}"
            f"{f', {time_spent:.0f} min' if time_spent is not None else ''}) "
            f"EF {item.ease_factor:.2f}->{updated.ease_factor:.2f}, "
            f"interval {item.interval}d->{updated.interval}d"
        )

        return ReviewOutcome(
            updated_item=updated,
            interval_increase=calculation.next_interval - item.interval,
            recommendation=recommendation,
            quality_adjustment=quality_adjustment,
            adjusted_quality=adjusted_quality,
        )

    @staticmethod
    def _recommendation(adjusted_quality: float) -> str:
        if adjusted_quality >= 5:
            return "Excellent! Mastery increasing."
        if adjusted_quality >= 4:
            return "Good work. Keep reviewing."
        if adjusted_quality >= PASSING_QUALITY:
            return "Getting there. Review again soon."
        return "Needs more practice. We'll review this more frequently."

    def initialize_or_get_review_item(
        self,
        items: list[ReviewItem],
        task_id: int,
        category: str,
        skill: str,
        difficulty_level: DifficultyLevel | None = None,
        now: datetime | None = None,
    ) -> tuple[ReviewItem, bool]:
        """
        Find the item for a task skill or create one.

        Skills first met on easy tasks start with a lower ease factor.

        Returns:
            (item, created)
        """
        existing = find_review_item(items, task_id, category, skill)
        if existing is not None:
            return existing, False

        item = self.initialize_review_item(task_id, category, skill, now=now)
        if difficulty_level == DifficultyLevel.EASY:
            item = replace(item, ease_factor=self.config.easy_task_ease_factor)
        return item, True


# =============================================================================
# Collection Queries
# =============================================================================


def find_review_item(
    items: list[ReviewItem],
    task_id: int,
    category: str,
    skill: str,
) -> ReviewItem | None:
    """
    Review item for a task skill.

    Exact (task, skill) match first; otherwise another task that trains the
    same skill in the same category.
    """
    category = normalize_category(category)
    wanted_id = review_item_id(task_id, skill)
    for item in items:
        if item.id == wanted_id or (
            item.task_id == task_id and item.category == category and item.skill == skill
        ):
            return item
    for item in items:
        if item.category == category and item.skill == skill:
            return item
    return None


def get_items_due_for_review(items: list[ReviewItem], as_of: datetime | None = None) -> list[ReviewItem]:
    """Items whose next review has arrived, excluding mastered ones."""
    as_of = as_of or utc_now()
    return [item for item in items if item.next_review <= as_of and not item.mastered]


def generate_daily_review_session(
    items: list[ReviewItem],
    max_items: int = 10,
    user_id: str = "",
    now: datetime | None = None,
) -> ReviewSession:
    """
    Build today's review session.

    Priority:
    1. Most overdue first (when overdue gaps differ by more than a day)
    2. Lower ease factor first (when EFs differ by more than 0.2)
    3. Least recently reviewed first
    """
    now = now or utc_now()
    due = get_items_due_for_review(items, now)

    def compare(a: ReviewItem, b: ReviewItem) -> int:
        a_overdue = (now - a.next_review).total_seconds()
        b_overdue = (now - b.next_review).total_seconds()
        if abs(a_overdue - b_overdue) > 86400:
            return -1 if a_overdue > b_overdue else 1
        if abs(a.ease_factor - b.ease_factor) > 0.2:
            return -1 if a.ease_factor < b.ease_factor else 1
        if a.last_review != b.last_review:
            return -1 if a.last_review < b.last_review else 1
        return 0

    prioritized = sorted(due, key=cmp_to_key(compare))[:max_items]

    logger.info(f"Review session for {user_id or 'anonymous'}: {len(prioritized)}/{len(due)} due items")

    return ReviewSession(
        id=f"review-{uuid.uuid4().hex[:12]}",
        user_id=user_id,
        date=now,
        items_due=prioritized,
    )


def calculate_retention_metrics(items: list[ReviewItem], now: datetime | None = None) -> RetentionMetrics:
    """Retention statistics across all review items."""
    if not items:
        return RetentionMetrics(
            total_items=0,
            mastered_items=0,
            active_items=0,
            average_ease_factor=MAX_EASE_FACTOR,
            average_interval=0.0,
            retention_rate=0.0,
        )

    now = now or utc_now()
    mastered = sum(1 for i in items if i.mastered)
    active = sum(1 for i in items if not i.mastered and i.next_review <= now)
    qualities = [q for i in items for q in i.quality_history]
    retention = sum(qualities) / (len(qualities) * MAX_QUALITY) if qualities else 0.0

    return RetentionMetrics(
        total_items=len(items),
        mastered_items=mastered,
        active_items=active,
        average_ease_factor=sum(i.ease_factor for i in items) / len(items),
        average_interval=sum(i.interval for i in items) / len(items),
        retention_rate=retention,
    )
