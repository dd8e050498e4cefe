"""
State Store for the adaptive learning engine.

Provides persistence behind one repository interface:
- Performance profile per user (with per-category metrics)
- SM-2 review items per user

Implementations:
- InMemoryStateStore: process-local, used by tests and ephemeral sessions
- SQLStateStore: SQLAlchemy ORM over any database URL (SQLite by default)

Both use optimistic concurrency. Every stored record carries a version; a
save whose version no longer matches the stored one raises StaleStateError
and writes nothing. Saves return the records with their new versions.
"""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime

from loguru import logger
from sqlalchemy import Engine, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from hypeos.core.exceptions import StaleStateError, StateStoreError
from hypeos.core.models import (
    AttemptRecord,
    PerformanceMetrics,
    ReviewItem,
    UserPerformanceProfile,
    ensure_utc,
)
from hypeos.db.database import create_db_engine, init_db, make_session_factory, session_scope
from hypeos.db.models import CategoryMetricsRow, PerformanceProfileRow, ReviewItemRow

# =============================================================================
# Repository Interface
# =============================================================================


class EngineStateRepository(ABC):
    """Storage port for per-user engine state."""

    @abstractmethod
    def load_performance_profile(self, user_id: str) -> UserPerformanceProfile | None:
        """Stored profile, or None for an unknown user."""

    @abstractmethod
    def save_performance_profile(self, profile: UserPerformanceProfile) -> UserPerformanceProfile:
        """Save a profile and its category metrics."""

    @abstractmethod
    def load_review_items(self, user_id: str) -> list[ReviewItem]:
        """All review items of a user."""

    @abstractmethod
    def save_review_items(self, user_id: str, items: list[ReviewItem]) -> list[ReviewItem]:
        """Save several review items atomically."""

    def upsert_review_item(self, user_id: str, item: ReviewItem) -> ReviewItem:
        """Insert or update one review item."""
        return self.save_review_items(user_id, [item])[0]


# =============================================================================
# In-Memory Store
# =============================================================================


class InMemoryStateStore(EngineStateRepository):
    """
    Dictionary-backed store.

    Records are deep-copied on the way in and out, so callers never share
    state with the store.
    """

    def __init__(self):
        self._profiles: dict[str, UserPerformanceProfile] = {}
        self._items: dict[str, dict[tuple[int, str], ReviewItem]] = {}

    def load_performance_profile(self, user_id: str) -> UserPerformanceProfile | None:
        profile = self._profiles.get(user_id)
        return copy.deepcopy(profile) if profile is not None else None

    def save_performance_profile(self, profile: UserPerformanceProfile) -> UserPerformanceProfile:
        stored = self._profiles.get(profile.user_id)
        stored_version = stored.version if stored is not None else 0
        if profile.version != stored_version:
            raise StaleStateError("profile", (profile.user_id,), profile.version)

        stored_metrics = stored.category_performance if stored is not None else {}
        category_performance: dict[str, PerformanceMetrics] = {}
        for category, metrics in profile.category_performance.items():
            previous = stored_metrics.get(category)
            previous_version = previous.version if previous is not None else 0
            if metrics.version != previous_version:
                raise StaleStateError("category metrics", (profile.user_id, category), metrics.version)
            changed = previous is None or previous != metrics
            category_performance[category] = replace(
                metrics, version=previous_version + 1 if changed else previous_version
            )

        saved = replace(
            profile,
            category_performance=category_performance,
            version=stored_version + 1,
        )
        self._profiles[profile.user_id] = copy.deepcopy(saved)
        logger.debug(f"Saved profile {profile.user_id} v{saved.version}")
        return copy.deepcopy(saved)

    def load_review_items(self, user_id: str) -> list[ReviewItem]:
        return [copy.deepcopy(item) for item in self._items.get(user_id, {}).values()]

    def save_review_items(self, user_id: str, items: list[ReviewItem]) -> list[ReviewItem]:
        stored = self._items.setdefault(user_id, {})
        saved: list[ReviewItem] = []
        for item in items:
            previous = stored.get(item.key)
            previous_version = previous.version if previous is not None else 0
            if item.version != previous_version:
                raise StaleStateError("review item", (user_id, *item.key), item.version)
            changed = previous is None or previous != item
            saved.append(replace(item, version=item.version + 1 if changed else item.version))

        for item in saved:
            stored[item.key] = copy.deepcopy(item)
        return saved


# =============================================================================
# SQL Store
# =============================================================================


def _naive_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return ensure_utc(value).replace(tzinfo=None)


@contextmanager
def _translate_errors(action: str) -> Generator[None, None, None]:
    """Map SQLAlchemy failures onto the engine's store errors."""
    try:
        yield
    except StaleDataError as exc:
        raise StaleStateError(action, (), -1) from exc
    except IntegrityError as exc:
        # Another writer inserted the same key first
        raise StaleStateError(action, (), 0) from exc
    except SQLAlchemyError as exc:
        logger.error(f"State store {action} failed: {exc}")
        raise StateStoreError(f"{action} failed: {exc}") from exc


class SQLStateStore(EngineStateRepository):
    """
    SQLAlchemy-backed state persistence.

    Handles:
    - Profile row plus one metrics row per category
    - One row per (user, task, skill) review item
    """

    def __init__(self, database_url: str | None = None, engine: Engine | None = None):
        """
        Initialize the state store.

        Args:
            database_url: SQLAlchemy URL (defaults to settings.database_url)
            engine: Existing engine to reuse instead of creating one
        """
        self.engine = engine or create_db_engine(database_url)
        self._session_factory = make_session_factory(self.engine)
        with _translate_errors("schema init"):
            init_db(self.engine)

        logger.info(f"SQLStateStore initialized at {self.engine.url.render_as_string(hide_password=True)}")

    @contextmanager
    def _session(self, action: str) -> Generator[Session, None, None]:
        with _translate_errors(action), session_scope(self._session_factory) as session:
            yield session

    # =========================================================================
    # Performance Profile
    # =========================================================================

    def load_performance_profile(self, user_id: str) -> UserPerformanceProfile | None:
        with self._session("profile load") as session:
            row = session.get(PerformanceProfileRow, user_id)
            if row is None:
                return None
            metric_rows = session.scalars(
                select(CategoryMetricsRow).where(CategoryMetricsRow.user_id == user_id)
            ).all()

            return UserPerformanceProfile(
                user_id=row.user_id,
                overall_success_rate=row.overall_success_rate,
                category_performance={m.category: self._metrics_from_row(m) for m in metric_rows},
                weekly_trend=row.weekly_trend,
                consistency_score=row.consistency_score,
                total_tasks_attempted=row.total_tasks_attempted,
                total_tasks_completed=row.total_tasks_completed,
                last_updated=row.last_updated,
                recent_attempts=[
                    AttemptRecord(at=ensure_utc(datetime.fromisoformat(at)), completed=bool(done))
                    for at, done in row.recent_attempts or []
                ],
                version=row.version,
            )

    def save_performance_profile(self, profile: UserPerformanceProfile) -> UserPerformanceProfile:
        with self._session("profile save") as session:
            row = session.get(PerformanceProfileRow, profile.user_id)
            if row is None:
                if profile.version != 0:
                    raise StaleStateError("profile", (profile.user_id,), profile.version)
                row = PerformanceProfileRow(user_id=profile.user_id)
                session.add(row)
            elif row.version != profile.version:
                raise StaleStateError("profile", (profile.user_id,), profile.version)

            row.overall_success_rate = profile.overall_success_rate
            row.weekly_trend = profile.weekly_trend
            row.consistency_score = profile.consistency_score
            row.total_tasks_attempted = profile.total_tasks_attempted
            row.total_tasks_completed = profile.total_tasks_completed
            row.last_updated = _naive_utc(profile.last_updated)
            row.recent_attempts = [
                [_naive_utc(a.at).isoformat(), a.completed] for a in profile.recent_attempts
            ]

            metric_rows: dict[str, CategoryMetricsRow] = {}
            for category, metrics in profile.category_performance.items():
                metric_row = session.get(CategoryMetricsRow, (profile.user_id, category))
                if metric_row is None:
                    if metrics.version != 0:
                        raise StaleStateError(
                            "category metrics", (profile.user_id, category), metrics.version
                        )
                    metric_row = CategoryMetricsRow(user_id=profile.user_id, category=category)
                    session.add(metric_row)
                elif metric_row.version != metrics.version:
                    raise StaleStateError(
                        "category metrics", (profile.user_id, category), metrics.version
                    )
                self._fill_metrics_row(metric_row, metrics)
                metric_rows[category] = metric_row

            session.flush()

            saved = replace(
                profile,
                category_performance={
                    category: replace(metrics, version=metric_rows[category].version)
                    for category, metrics in profile.category_performance.items()
                },
                version=row.version,
            )

        logger.debug(f"Saved profile {profile.user_id} v{saved.version}")
        return saved

    @staticmethod
    def _metrics_from_row(row: CategoryMetricsRow) -> PerformanceMetrics:
        return PerformanceMetrics(
            category=row.category,
            attempts=row.attempts,
            completions=row.completions,
            average_time=row.average_time,
            last_attempt=row.last_attempt,
            consecutive_fails=row.consecutive_fails,
            consecutive_successes=row.consecutive_successes,
            difficulty_history=list(row.difficulty_history or []),
            version=row.version,
        )

    @staticmethod
    def _fill_metrics_row(row: CategoryMetricsRow, metrics: PerformanceMetrics) -> None:
        row.attempts = metrics.attempts
        row.completions = metrics.completions
        row.average_time = metrics.average_time
        row.last_attempt = _naive_utc(metrics.last_attempt)
        row.consecutive_fails = metrics.consecutive_fails
        row.consecutive_successes = metrics.consecutive_successes
        row.difficulty_history = list(metrics.difficulty_history)

    # =========================================================================
    # Review Items
    # =========================================================================

    def load_review_items(self, user_id: str) -> list[ReviewItem]:
        with self._session("review item load") as session:
            rows = session.scalars(
                select(ReviewItemRow)
                .where(ReviewItemRow.user_id == user_id)
                .order_by(ReviewItemRow.created_at, ReviewItemRow.task_id)
            ).all()
            return [self._item_from_row(row) for row in rows]

    def save_review_items(self, user_id: str, items: list[ReviewItem]) -> list[ReviewItem]:
        with self._session("review item save") as session:
            rows: list[ReviewItemRow] = []
            for item in items:
                row = session.get(ReviewItemRow, (user_id, item.task_id, item.skill))
                if row is None:
                    if item.version != 0:
                        raise StaleStateError("review item", (user_id, *item.key), item.version)
                    row = ReviewItemRow(user_id=user_id, task_id=item.task_id, skill=item.skill)
                    session.add(row)
                elif row.version != item.version:
                    raise StaleStateError("review item", (user_id, *item.key), item.version)
                self._fill_item_row(row, item)
                rows.append(row)

            session.flush()
            saved = [replace(item, version=row.version) for item, row in zip(items, rows)]

        logger.debug(f"Saved {len(saved)} review items for {user_id}")
        return saved

    @staticmethod
    def _item_from_row(row: ReviewItemRow) -> ReviewItem:
        return ReviewItem(
            id=row.item_id,
            task_id=row.task_id,
            category=row.category,
            skill=row.skill,
            ease_factor=row.ease_factor,
            interval=row.interval,
            repetitions=row.repetitions,
            last_review=row.last_review,
            next_review=row.next_review,
            quality_history=list(row.quality_history or []),
            average_quality=row.average_quality,
            created_at=row.created_at,
            version=row.version,
        )

    @staticmethod
    def _fill_item_row(row: ReviewItemRow, item: ReviewItem) -> None:
        row.item_id = item.id
        row.category = item.category
        row.ease_factor = item.ease_factor
        row.interval = item.interval
        row.repetitions = item.repetitions
        row.last_review = _naive_utc(item.last_review)
        row.next_review = _naive_utc(item.next_review)
        row.quality_history = list(item.quality_history)
        row.average_quality = item.average_quality
        row.mastered = item.mastered
        row.created_at = _naive_utc(item.created_at)
