"""
Daily Review Queue.

Ranks the tasks whose skills need attention today:

    Type       Priority              Condition
    overdue    90 + min(10, days)    past the review interval
    weakened   75 + strength // 2    strength below 50
    new        60                    never-practiced skill, task open
    practice   55 + (2 - d) * 5      due within 2 days
    mastery    40                    mastered, due within 7 days
    practice   30                    everything else

Helpers summarize the queue for the CLI (urgency message, motivation line,
priority statistics).
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime

from loguru import logger

from hypeos.core.models import (
    MasteryLevel,
    ReviewType,
    StreakData,
    Task,
    UserPerformanceProfile,
    utc_now,
)
from hypeos.core.numeric import clamp, round_half_away_from_zero
from hypeos.study.unified_difficulty import UnifiedDifficultyEngine, UnifiedTaskDifficulty

DEFAULT_MINUTES_PER_REVIEW = 15
MASTERY_MAINTENANCE_DAYS = 7


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


@dataclass
class ReviewQueueItem:
    task: Task
    difficulty: UnifiedTaskDifficulty
    priority: int  # 1-100, higher = more urgent
    review_type: ReviewType
    reason: str
    days_overdue: int | None = None
    strength_loss: int | None = None


@dataclass
class DailyReviewQueue:
    items: list[ReviewQueueItem] = field(default_factory=list)
    overdue_count: int = 0
    weakened_count: int = 0
    new_count: int = 0
    practice_count: int = 0
    mastery_count: int = 0
    estimated_minutes: int = 0
    generated_at: datetime = field(default_factory=utc_now)

    @property
    def total_items(self) -> int:
        return len(self.items)

    @property
    def counts_by_type(self) -> dict[ReviewType, int]:
        return dict(Counter(item.review_type for item in self.items))


@dataclass
class QueueSummary:
    urgent_count: int
    total_count: int
    estimated_minutes: int
    message: str


@dataclass
class QueueStats:
    by_type: dict[ReviewType, int]
    average_priority: int
    highest_priority: int
    lowest_priority: int


class ReviewQueueBuilder:
    """Builds the prioritized daily review queue for one user."""

    def __init__(
        self,
        engine: UnifiedDifficultyEngine,
        minutes_per_review: int = DEFAULT_MINUTES_PER_REVIEW,
        use_category_time: bool = False,
    ):
        """
        Args:
            engine: Scoring engine holding the user's review items
            minutes_per_review: Flat time estimate per queue item
            use_category_time: Estimate time from each category's average
                time on task instead of the flat value
        """
        self.engine = engine
        self.minutes_per_review = minutes_per_review
        self.use_category_time = use_category_time

    def generate_daily_review_queue(
        self,
        tasks: list[Task],
        profile: UserPerformanceProfile,
        streak: StreakData,
        max_items: int = 10,
        now: datetime | None = None,
    ) -> DailyReviewQueue:
        """
        Build today's queue from the task catalog.

        Args:
            tasks: Catalog tasks
            profile: User's performance profile
            streak: Streak data
            max_items: Queue length cap
            now: Clock override

        Returns:
            DailyReviewQueue sorted by priority (ties keep catalog order)
        """
        now = now or utc_now()
        candidates = self.engine.get_tasks_needing_review(tasks, profile, streak, now)

        queue_items = [self._classify(c.task, c.difficulty) for c in candidates]
        queue_items.sort(key=lambda item: item.priority, reverse=True)
        top = queue_items[:max_items]

        counts = Counter(item.review_type for item in top)
        queue = DailyReviewQueue(
            items=top,
            overdue_count=counts[ReviewType.OVERDUE],
            weakened_count=counts[ReviewType.WEAKENED],
            new_count=counts[ReviewType.NEW],
            practice_count=counts[ReviewType.PRACTICE],
            mastery_count=counts[ReviewType.MASTERY],
            estimated_minutes=self._estimate_minutes(top, profile),
            generated_at=now,
        )

        logger.info(
            f"Review queue for {self.engine.user_id}: {queue.total_items} items "
            f"({queue.overdue_count} overdue, {queue.weakened_count} weakened, {queue.new_count} new)"
        )
        return queue

    def _classify(self, task: Task, difficulty: UnifiedTaskDifficulty) -> ReviewQueueItem:
        strength = difficulty.skill_strength
        days_overdue: int | None = None
        strength_loss: int | None = None

        if strength.is_overdue:
            review_type = ReviewType.OVERDUE
            days_overdue = strength.days_since_last_review - difficulty.review_interval
            priority = 90 + min(10, days_overdue)
            strength_loss = 100 - strength.strength
            reason = f"Overdue by {_plural(days_overdue, 'day')}. Strength: {strength.strength}%"
        elif strength.strength < 50 and not difficulty.mastered:
            review_type = ReviewType.WEAKENED
            priority = 75 + strength.strength // 2
            strength_loss = 100 - strength.strength
            reason = f"Skill has weakened to {strength.strength}%. Needs review soon."
        elif difficulty.mastery_level == MasteryLevel.NEW and not task.completed:
            review_type = ReviewType.NEW
            priority = 60
            reason = "New skill - start learning today!"
        elif strength.needs_review and strength.days_until_decay <= 2:
            review_type = ReviewType.PRACTICE
            priority = 55 + (2 - strength.days_until_decay) * 5
            reason = f"Review in {_plural(strength.days_until_decay, 'day')}"
        elif difficulty.mastered and strength.days_until_decay <= MASTERY_MAINTENANCE_DAYS:
            review_type = ReviewType.MASTERY
            priority = 40
            reason = "Maintain mastery - review soon"
        else:
            review_type = ReviewType.PRACTICE
            priority = 30
            reason = "Good to practice"

        return ReviewQueueItem(
            task=task,
            difficulty=difficulty,
            priority=int(clamp(priority, 1, 100)),
            review_type=review_type,
            reason=reason,
            days_overdue=days_overdue,
            strength_loss=strength_loss,
        )

    def _estimate_minutes(self, items: list[ReviewQueueItem], profile: UserPerformanceProfile) -> int:
        if not self.use_category_time:
            return len(items) * self.minutes_per_review

        total = 0.0
        for item in items:
            average = profile.metrics_for(item.task.category).average_time
            total += average if average > 0 else self.minutes_per_review
        return round_half_away_from_zero(total)


# =============================================================================
# Queue Helpers
# =============================================================================


def get_review_queue_summary(queue: DailyReviewQueue) -> QueueSummary:
    urgent = queue.overdue_count + queue.weakened_count
    if urgent > 0:
        message = f"{_plural(urgent, 'urgent review')} needed"
    elif queue.total_items > 0:
        message = f"{_plural(queue.total_items, 'skill')} ready for review"
    else:
        message = "All skills are up to date!"

    return QueueSummary(
        urgent_count=urgent,
        total_count=queue.total_items,
        estimated_minutes=queue.estimated_minutes,
        message=message,
    )


def get_next_review_task(queue: DailyReviewQueue) -> ReviewQueueItem | None:
    return queue.items[0] if queue.items else None


def filter_review_queue(queue: DailyReviewQueue, review_type: ReviewType) -> list[ReviewQueueItem]:
    return [item for item in queue.items if item.review_type == review_type]


def get_review_queue_stats(queue: DailyReviewQueue) -> QueueStats:
    """Priority distribution of the queue."""
    if not queue.items:
        return QueueStats(by_type={}, average_priority=0, highest_priority=0, lowest_priority=100)

    priorities = [item.priority for item in queue.items]
    return QueueStats(
        by_type=queue.counts_by_type,
        average_priority=round_half_away_from_zero(sum(priorities) / len(priorities)),
        highest_priority=max(priorities),
        lowest_priority=min(priorities),
    )


def needs_review_attention(queue: DailyReviewQueue) -> bool:
    return queue.overdue_count > 0 or queue.weakened_count > 0


def get_review_queue_motivation(queue: DailyReviewQueue) -> str:
    if queue.overdue_count > 0:
        verb = "is" if queue.overdue_count == 1 else "are"
        return f"⚠️ {_plural(queue.overdue_count, 'skill')} {verb} overdue! Let's restore them."
    if queue.weakened_count > 0:
        verb = "has" if queue.weakened_count == 1 else "have"
        return f"💪 {_plural(queue.weakened_count, 'skill')} {verb} weakened. Time to strengthen!"
    if queue.new_count > 0:
        return f"🎯 {_plural(queue.new_count, 'new skill')} to learn!"
    if queue.total_items > 0:
        return f"📚 {_plural(queue.total_items, 'skill')} ready for review."
    return "✨ All skills are strong! Great work maintaining your knowledge."
