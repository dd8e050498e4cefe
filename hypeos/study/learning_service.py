"""
Adaptive Learning Service.

High-level service for one user's session:
- Loads the profile and review items from the repository (cold start on failure)
- Completes tasks and saves the result (fetch-merge-save on version conflicts)
- Builds the daily review queue and reports
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from loguru import logger

from config import Settings, get_settings
from hypeos.adaptive.performance_tracker import (
    PerformanceSummary,
    TrendConfig,
    get_performance_summary,
    initialize_performance_profile,
)
from hypeos.core.exceptions import StaleStateError, StateStoreError
from hypeos.core.models import ReviewItem, StreakData, Task, UserPerformanceProfile, utc_now
from hypeos.delivery.scheduler import (
    RetentionMetrics,
    ReviewSession,
    SM2Scheduler,
    calculate_retention_metrics,
    generate_daily_review_session,
)
from hypeos.delivery.state_store import EngineStateRepository
from hypeos.study.review_queue import DailyReviewQueue, ReviewQueueBuilder
from hypeos.study.skill_strength import DecayConfig
from hypeos.study.unified_difficulty import (
    TaskCompletion,
    TaskWithDifficulty,
    UnifiedDifficultyEngine,
)


class AdaptiveLearningService:
    """
    Session facade over the engine and its repository.

    The repository is read once in load() and written right after every
    completed task. Storage failures never abort the session: a failed load
    starts from a fresh profile, a failed save keeps the in-memory state.
    """

    def __init__(
        self,
        user_id: str,
        repository: EngineStateRepository,
        settings: Settings | None = None,
    ):
        """
        Initialize the service.

        Args:
            user_id: User whose state is loaded
            repository: State storage
            settings: Engine settings (defaults to get_settings())
        """
        self.user_id = user_id
        self.repository = repository
        self.settings = settings or get_settings()

        self.profile: UserPerformanceProfile = initialize_performance_profile(user_id)
        self.engine = self._build_engine([])
        self.cold_start = True

    def _build_engine(self, review_items: list[ReviewItem]) -> UnifiedDifficultyEngine:
        s = self.settings
        return UnifiedDifficultyEngine(
            self.user_id,
            review_items,
            scheduler=SM2Scheduler(),
            decay=DecayConfig(
                decay_rate_per_day=s.decay_rate_per_day,
                mastered_decay_rate_per_day=s.mastered_decay_rate_per_day,
                review_window_days=s.review_window_days,
            ),
            trend=TrendConfig(mode=s.trend_mode, window_days=s.trend_window_days),
            apply_mastery_multiplier=s.apply_mastery_multiplier,
        )

    # =========================================================================
    # Loading
    # =========================================================================

    def load(self) -> AdaptiveLearningService:
        """Read the user's state; unreadable state means a cold start."""
        try:
            profile, items = self._fetch()
        except StateStoreError as e:
            logger.warning(f"Could not load state for {self.user_id}, starting fresh: {e}")
            profile, items = None, []

        self.cold_start = profile is None
        self.profile = profile or initialize_performance_profile(self.user_id)
        self.engine = self._build_engine(items)

        logger.info(
            f"Loaded {self.user_id}: {self.profile.total_tasks_attempted} attempts, "
            f"{len(items)} review items{' (cold start)' if self.cold_start else ''}"
        )
        return self

    def _fetch(self) -> tuple[UserPerformanceProfile | None, list[ReviewItem]]:
        profile = self.repository.load_performance_profile(self.user_id)
        items = self.repository.load_review_items(self.user_id)
        return profile, items

    # =========================================================================
    # Completion
    # =========================================================================

    def complete_task(
        self,
        task: Task,
        streak: StreakData,
        completed: bool,
        time_spent_minutes: float,
        quality: float | None = None,
        now: datetime | None = None,
    ) -> TaskCompletion:
        """
        Complete a task and persist the result.

        On a version conflict the latest state is fetched, the attempt is
        applied to it again and the save is retried. Only the part that
        failed is re-applied: a profile that already saved is kept.

        Returns:
            TaskCompletion of the attempt that was saved (or kept in memory)
        """
        now = now or utc_now()
        profile_before = self.profile
        engine = self.engine
        completion = engine.complete_task(
            task, profile_before, streak, completed, time_spent_minutes, quality, now
        )

        saved_profile: UserPerformanceProfile | None = None
        attempts = self.settings.save_retry_attempts
        for attempt in range(1, attempts + 1):
            try:
                if saved_profile is None:
                    saved_profile = self.repository.save_performance_profile(
                        completion.updated_profile
                    )
                saved_item = None
                if completion.updated_review_item is not None:
                    saved_item = self.repository.upsert_review_item(
                        self.user_id, completion.updated_review_item
                    )
                completion = replace(
                    completion,
                    updated_profile=saved_profile,
                    updated_review_item=saved_item,
                )
                if saved_item is not None:
                    engine.upsert_review_item(saved_item)
                break
            except StaleStateError as e:
                logger.warning(f"Save conflict for {self.user_id} (attempt {attempt}/{attempts}): {e}")
                if attempt == attempts:
                    logger.error(f"Giving up saving task {task.id} for {self.user_id}")
                    break
                try:
                    latest_profile, latest_items = self._fetch()
                except StateStoreError as load_error:
                    logger.error(f"Could not reload state for {self.user_id}: {load_error}")
                    break
                if saved_profile is None:
                    profile_before = latest_profile or initialize_performance_profile(self.user_id)
                engine = self._build_engine(latest_items)
                completion = engine.complete_task(
                    task, profile_before, streak, completed, time_spent_minutes, quality, now
                )
                if saved_profile is not None:
                    completion = replace(completion, updated_profile=saved_profile)
            except StateStoreError as e:
                logger.error(f"Could not save state for {self.user_id}, keeping it in memory: {e}")
                break

        self.profile = saved_profile or completion.updated_profile
        self.engine = engine
        return completion

    # =========================================================================
    # Queries
    # =========================================================================

    def generate_review_queue(
        self,
        tasks: list[Task],
        streak: StreakData,
        max_items: int | None = None,
        use_category_time: bool = False,
        now: datetime | None = None,
    ) -> DailyReviewQueue:
        builder = ReviewQueueBuilder(
            self.engine,
            minutes_per_review=self.settings.minutes_per_review,
            use_category_time=use_category_time,
        )
        return builder.generate_daily_review_queue(
            tasks,
            self.profile,
            streak,
            max_items=max_items or self.settings.default_max_review_items,
            now=now,
        )

    def task_difficulties(
        self, tasks: list[Task], streak: StreakData, now: datetime | None = None
    ) -> list[TaskWithDifficulty]:
        return self.engine.get_tasks_with_difficulties(tasks, self.profile, streak, now)

    def recommended_next_task(
        self, tasks: list[Task], streak: StreakData, now: datetime | None = None
    ) -> TaskWithDifficulty | None:
        return self.engine.get_recommended_next_task(tasks, self.profile, streak, now)

    def review_session(self, max_items: int | None = None, now: datetime | None = None) -> ReviewSession:
        return generate_daily_review_session(
            self.engine.review_items,
            max_items=max_items or self.settings.default_max_review_items,
            user_id=self.user_id,
            now=now,
        )

    def retention_metrics(self, now: datetime | None = None) -> RetentionMetrics:
        return calculate_retention_metrics(self.engine.review_items, now)

    def performance_summary(self) -> PerformanceSummary:
        return get_performance_summary(self.profile)
