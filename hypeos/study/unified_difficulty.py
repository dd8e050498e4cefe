"""
Unified Difficulty Engine.

Main integration point of the adaptive learning engine. For each task it
combines:
1. Adaptive difficulty (performance-scaled base points and tier)
2. Category multiplier (fixed table, default 1.0)
3. Streak multiplier (largest threshold the current streak meets)
4. Spaced repetition state (mastery level, review interval, skill strength)

Points are rounded after every stage:

    points_after_category = round(difficulty_points * category_multiplier)
    final_points          = round(points_after_category * streak_multiplier)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal

from loguru import logger

from hypeos.adaptive.difficulty_calculator import (
    apply_mastery_overlay,
    calculate_adaptive_difficulty,
    calculate_mastery_multiplier,
    calculate_performance_score,
)
from hypeos.adaptive.performance_tracker import TrendConfig, update_performance_metrics
from hypeos.core.models import (
    DifficultyLevel,
    MasteryLevel,
    ReviewItem,
    StreakData,
    Task,
    UserPerformanceProfile,
    utc_now,
)
from hypeos.core.numeric import round_half_away_from_zero
from hypeos.delivery.scheduler import DifficultyContext, SM2Scheduler, find_review_item
from hypeos.study.skill_strength import DecayConfig, SkillStrength, calculate_skill_strength

CATEGORY_MULTIPLIERS: dict[str, Decimal] = {
    "sales": Decimal("1.5"),
    "marketing": Decimal("1.3"),
    "content": Decimal("1.2"),
    "admin": Decimal("1.0"),
    "learning": Decimal("1.1"),
    "networking": Decimal("1.4"),
}

# Minimum streak days -> multiplier
STREAK_MULTIPLIERS: dict[int, Decimal] = {
    3: Decimal("1.5"),
    7: Decimal("2.0"),
    14: Decimal("2.5"),
    21: Decimal("3.0"),
    30: Decimal("3.5"),
    50: Decimal("4.0"),
    100: Decimal("5.0"),
}


def get_category_multiplier(category: str) -> Decimal:
    return CATEGORY_MULTIPLIERS.get(category, Decimal("1.0"))


def get_streak_multiplier(current_streak: int) -> Decimal:
    """Largest multiplier whose threshold the streak meets, else 1.0."""
    applicable = [m for days, m in STREAK_MULTIPLIERS.items() if current_streak >= days]
    return max(applicable, default=Decimal("1.0"))


@dataclass
class UnifiedTaskDifficulty:
    """Everything the UI needs to show a task."""

    final_points: int
    difficulty_level: DifficultyLevel
    review_interval: int  # 0 when the skill is untracked
    mastery_level: MasteryLevel
    needs_review: bool
    performance_score: float
    explanation: str
    streak_multiplier: float
    mastery_multiplier: float
    skill_strength: SkillStrength
    difficulty_points: int
    difficulty_multiplier: float
    category_multiplier: float
    mastered: bool = False


@dataclass
class TaskWithDifficulty:
    task: Task
    difficulty: UnifiedTaskDifficulty


@dataclass
class TaskCompletion:
    """Result of complete_task()."""

    updated_profile: UserPerformanceProfile
    updated_review_item: ReviewItem | None
    points_earned: int
    difficulty: UnifiedTaskDifficulty
    message: str


class UnifiedDifficultyEngine:
    """
    Per-user scoring and scheduling facade.

    Holds the user's review items for the duration of a session. The engine
    never touches storage; callers persist what complete_task() returns.

    Usage:
        engine = UnifiedDifficultyEngine("user-1", review_items)
        difficulty = engine.get_task_difficulty(task, profile, streak)
        completion = engine.complete_task(task, profile, streak, True, 20, quality=4)
    """

    def __init__(
        self,
        user_id: str,
        review_items: list[ReviewItem] | None = None,
        scheduler: SM2Scheduler | None = None,
        decay: DecayConfig | None = None,
        trend: TrendConfig | None = None,
        apply_mastery_multiplier: bool = False,
    ):
        self.user_id = user_id
        self.review_items: list[ReviewItem] = list(review_items or [])
        self.scheduler = scheduler or SM2Scheduler()
        self.decay = decay or DecayConfig()
        self.trend = trend or TrendConfig()
        self.apply_mastery_multiplier = apply_mastery_multiplier

    # =========================================================================
    # Scoring
    # =========================================================================

    def review_item_for(self, task: Task) -> ReviewItem | None:
        return find_review_item(self.review_items, task.id, task.category, task.skill_key)

    def get_task_difficulty(
        self,
        task: Task,
        profile: UserPerformanceProfile,
        streak: StreakData,
        now: datetime | None = None,
    ) -> UnifiedTaskDifficulty:
        """
        Unified difficulty of a task for display.

        Args:
            task: Catalog task
            profile: User's performance profile
            streak: Current and longest streak
            now: Clock override

        Returns:
            UnifiedTaskDifficulty with staged points and review state
        """
        now = now or utc_now()
        review_item = self.review_item_for(task)

        performance_score = calculate_performance_score(profile, streak)
        difficulty = calculate_adaptive_difficulty(
            task.base_points,
            performance_score,
            task.category,
            profile.metrics_for(task.category),
        )

        mastery_multiplier, _ = calculate_mastery_multiplier(review_item)
        difficulty_points = difficulty.adjusted_points
        difficulty_level = difficulty.difficulty_level
        explanation = difficulty.explanation
        if self.apply_mastery_multiplier:
            overlay = apply_mastery_overlay(task.base_points, difficulty, review_item)
            difficulty_points = overlay.adjusted_points
            difficulty_level = overlay.difficulty_level
            explanation = overlay.explanation

        category_multiplier = get_category_multiplier(task.category)
        streak_multiplier = get_streak_multiplier(streak.current_streak)
        points_after_category = round_half_away_from_zero(
            Decimal(difficulty_points) * category_multiplier
        )
        final_points = round_half_away_from_zero(
            Decimal(points_after_category) * streak_multiplier
        )

        if review_item is None:
            strength = SkillStrength.untracked()
            mastery_level = MasteryLevel.NEW
            needs_review = False
        else:
            strength = calculate_skill_strength(review_item, now, self.decay)
            mastery_level = strength.level
            needs_review = (
                review_item.next_review <= now or strength.is_overdue or strength.needs_review
            )

        return UnifiedTaskDifficulty(
            final_points=final_points,
            difficulty_level=difficulty_level,
            review_interval=review_item.interval if review_item else 0,
            mastery_level=mastery_level,
            needs_review=needs_review,
            performance_score=performance_score,
            explanation=explanation,
            streak_multiplier=float(streak_multiplier),
            mastery_multiplier=mastery_multiplier,
            skill_strength=strength,
            difficulty_points=difficulty_points,
            difficulty_multiplier=float(difficulty.multiplier),
            category_multiplier=float(category_multiplier),
            mastered=review_item.mastered if review_item else False,
        )

    # =========================================================================
    # Completion
    # =========================================================================

    def complete_task(
        self,
        task: Task,
        profile: UserPerformanceProfile,
        streak: StreakData,
        completed: bool,
        time_spent_minutes: float,
        quality: float | None = None,
        now: datetime | None = None,
    ) -> TaskCompletion:
        """
        Record a task attempt in both the tracker and the scheduler.

        The difficulty is computed before the attempt is recorded, so the
        points earned are the ones the user saw. The review item is only
        touched for completed tasks: with a quality score it goes through
        SM-2, without one only its last review is stamped.

        Args:
            task: Attempted task
            profile: Performance profile before the attempt
            streak: Streak data
            completed: Whether the task was completed
            time_spent_minutes: Minutes on task
            quality: Optional 0-5 self-assessment
            now: Clock override

        Returns:
            TaskCompletion with the updated profile and review item
        """
        now = now or utc_now()
        difficulty = self.get_task_difficulty(task, profile, streak, now)

        updated_profile = update_performance_metrics(
            profile,
            task,
            completed,
            time_spent_minutes,
            difficulty_multiplier=difficulty.difficulty_multiplier,
            now=now,
            trend=self.trend,
        )

        updated_item: ReviewItem | None = None
        review_message = ""
        if completed:
            review_item, created = self.scheduler.initialize_or_get_review_item(
                self.review_items,
                task.id,
                task.category,
                task.skill_key,
                difficulty_level=difficulty.difficulty_level,
                now=now,
            )
            if created:
                logger.debug(f"New review item {review_item.id} for {self.user_id}")

            if quality is not None:
                outcome = self.scheduler.process_review(
                    review_item,
                    quality,
                    time_spent=time_spent_minutes,
                    difficulty=DifficultyContext(
                        difficulty_level=difficulty.difficulty_level,
                        adjusted_points=difficulty.difficulty_points,
                        base_points=task.base_points,
                    ),
                    now=now,
                )
                updated_item = outcome.updated_item
                review_message = outcome.recommendation
            else:
                updated_item = replace(review_item, last_review=now)

            self.upsert_review_item(updated_item)

        points_earned = difficulty.final_points if completed else 0
        if completed:
            message = f"Task completed! +{points_earned} points. {review_message or difficulty.explanation}"
        else:
            message = "Task marked as incomplete."

        logger.info(
            f"Task {task.id} ({task.category}) {'completed' if completed else 'attempted'} "
            f"by {self.user_id}: +{points_earned} pts"
        )

        return TaskCompletion(
            updated_profile=updated_profile,
            updated_review_item=updated_item,
            points_earned=points_earned,
            difficulty=difficulty,
            message=message,
        )

    def upsert_review_item(self, item: ReviewItem) -> None:
        for index, existing in enumerate(self.review_items):
            if existing.id == item.id:
                self.review_items[index] = item
                return
        self.review_items.append(item)

    # =========================================================================
    # Task Lists
    # =========================================================================

    def get_tasks_with_difficulties(
        self,
        tasks: list[Task],
        profile: UserPerformanceProfile,
        streak: StreakData,
        now: datetime | None = None,
    ) -> list[TaskWithDifficulty]:
        now = now or utc_now()
        return [
            TaskWithDifficulty(task, self.get_task_difficulty(task, profile, streak, now))
            for task in tasks
        ]

    def get_tasks_needing_review(
        self,
        tasks: list[Task],
        profile: UserPerformanceProfile,
        streak: StreakData,
        now: datetime | None = None,
    ) -> list[TaskWithDifficulty]:
        """Tasks whose skills need review, overdue first then weakest."""
        candidates = [
            t
            for t in self.get_tasks_with_difficulties(tasks, profile, streak, now)
            if t.difficulty.needs_review
            or t.difficulty.skill_strength.needs_review
            or t.difficulty.skill_strength.is_overdue
        ]
        # sorted() is stable, ties keep catalog order
        return sorted(
            candidates,
            key=lambda t: (not t.difficulty.skill_strength.is_overdue, t.difficulty.skill_strength.strength),
        )

    def get_recommended_next_task(
        self,
        tasks: list[Task],
        profile: UserPerformanceProfile,
        streak: StreakData,
        now: datetime | None = None,
    ) -> TaskWithDifficulty | None:
        """
        Pick the task to do next.

        Order:
        1. Incomplete tasks needing review, shortest interval first
        2. New skills, highest points first
        3. Learning skills, highest points first
        4. First incomplete task
        """
        all_tasks = self.get_tasks_with_difficulties(tasks, profile, streak, now)
        incomplete = [t for t in all_tasks if not t.task.completed]

        review = [t for t in incomplete if t.difficulty.needs_review]
        if review:
            return min(review, key=lambda t: t.difficulty.review_interval)

        for level in (MasteryLevel.NEW, MasteryLevel.LEARNING):
            candidates = [t for t in incomplete if t.difficulty.mastery_level == level]
            if candidates:
                return max(candidates, key=lambda t: t.difficulty.final_points)

        return incomplete[0] if incomplete else None
