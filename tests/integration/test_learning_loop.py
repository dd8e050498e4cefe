"""
Integration tests for the adaptive learning service.

Covers the full loop: load state, complete tasks, persist, reload.
"""

from datetime import timedelta

import pytest

from hypeos.core.exceptions import StaleStateError, StateStoreError
from hypeos.core.models import ReviewType
from hypeos.delivery.state_store import InMemoryStateStore, SQLStateStore
from hypeos.study.learning_service import AdaptiveLearningService


class UnreadableStore(InMemoryStateStore):
    def load_performance_profile(self, user_id):
        raise StateStoreError("database is locked")


class UnwritableStore(InMemoryStateStore):
    def save_performance_profile(self, profile):
        raise StateStoreError("disk full")


class AlwaysStaleStore(InMemoryStateStore):
    def __init__(self):
        super().__init__()
        self.save_calls = 0

    def save_performance_profile(self, profile):
        self.save_calls += 1
        raise StaleStateError("profile", (profile.user_id,), profile.version)


@pytest.fixture
def store():
    return InMemoryStateStore()


def _service(store, settings, user_id="user-1"):
    return AdaptiveLearningService(user_id, store, settings).load()


class TestLoading:
    def test_cold_start(self, store, settings):
        service = _service(store, settings)

        assert service.cold_start
        assert service.profile.total_tasks_attempted == 0
        assert service.engine.review_items == []

    def test_unreadable_store_starts_fresh(self, settings):
        service = _service(UnreadableStore(), settings)

        assert service.cold_start
        assert service.profile.overall_success_rate == 0.5

    def test_state_survives_between_sessions(self, store, settings, sales_task, no_streak, now):
        first = _service(store, settings)
        first.complete_task(sales_task, no_streak, True, 20, quality=5, now=now)

        second = _service(store, settings)

        assert not second.cold_start
        assert second.profile.total_tasks_attempted == 1
        assert second.profile.version == 1
        assert [i.id for i in second.engine.review_items] == ["1-cold-email"]


class TestCompleteTask:
    def test_saved_versions_flow_back(self, store, settings, sales_task, no_streak, now):
        service = _service(store, settings)

        completion = service.complete_task(sales_task, no_streak, True, 20, quality=5, now=now)

        assert completion.points_earned == 128
        assert completion.updated_profile.version == 1
        assert completion.updated_review_item.version == 1
        assert service.profile.version == 1
        assert service.engine.review_items[0].version == 1

    def test_concurrent_sessions_merge(self, store, settings, sales_task, no_streak, now):
        phone = _service(store, settings)
        laptop = _service(store, settings)

        phone.complete_task(sales_task, no_streak, True, 20, quality=5, now=now)
        completion = laptop.complete_task(
            sales_task, no_streak, True, 20, quality=5, now=now + timedelta(minutes=5)
        )

        stored = store.load_performance_profile("user-1")
        assert stored.total_tasks_attempted == 2
        assert stored.version == 2
        assert completion.updated_review_item.repetitions == 2
        assert laptop.profile.total_tasks_attempted == 2

    def test_failed_save_keeps_state_in_memory(self, settings, sales_task, no_streak, now):
        service = _service(UnwritableStore(), settings)

        completion = service.complete_task(sales_task, no_streak, True, 20, quality=5, now=now)

        assert completion.points_earned == 128
        assert service.profile.total_tasks_attempted == 1
        assert service.profile.version == 0

    def test_retries_are_bounded(self, settings, sales_task, no_streak, now):
        store = AlwaysStaleStore()
        service = _service(store, settings)

        service.complete_task(sales_task, no_streak, True, 20, quality=4, now=now)

        assert store.save_calls == settings.save_retry_attempts
        assert service.profile.total_tasks_attempted == 1

    def test_incomplete_attempt_saves_no_review_item(self, store, settings, sales_task, no_streak, now):
        service = _service(store, settings)

        service.complete_task(sales_task, no_streak, False, 10, now=now)

        assert store.load_review_items("user-1") == []
        assert store.load_performance_profile("user-1").total_tasks_completed == 0


class TestQueries:
    def test_queue_after_completion(self, store, settings, sales_task, no_streak, now):
        service = _service(store, settings)
        service.complete_task(sales_task, no_streak, True, 20, quality=5, now=now)

        queue = service.generate_review_queue([sales_task], no_streak, now=now + timedelta(days=1))

        assert queue.total_items == 1
        assert queue.items[0].review_type == ReviewType.PRACTICE
        assert queue.estimated_minutes == settings.minutes_per_review

    def test_reports(self, store, settings, sales_task, no_streak, now):
        service = _service(store, settings)
        service.complete_task(sales_task, no_streak, True, 20, quality=4, now=now)

        session = service.review_session(now=now + timedelta(days=2))
        metrics = service.retention_metrics(now=now + timedelta(days=2))
        summary = service.performance_summary()
        recommended = service.recommended_next_task([sales_task], no_streak, now=now)

        assert [i.id for i in session.items_due] == ["1-cold-email"]
        assert session.user_id == "user-1"
        assert metrics.total_items == 1
        assert metrics.retention_rate == pytest.approx(0.8)
        assert summary.overall_grade == "A"
        assert recommended.task.id == sales_task.id


def test_sql_learning_loop(settings, sales_task, no_streak, now):
    """Five perfect reviews on an easy task double the interval from 6 days."""
    store = SQLStateStore("sqlite://")
    service = _service(store, settings)

    intervals = []
    day = now
    for _ in range(5):
        completion = service.complete_task(sales_task, no_streak, True, 15, quality=5, now=day)
        intervals.append(completion.updated_review_item.interval)
        day += timedelta(days=completion.updated_review_item.interval)

    assert intervals == [1, 6, 12, 24, 48]

    reloaded = _service(store, settings)
    item = reloaded.engine.review_items[0]
    assert item.ease_factor == 2.0
    assert item.repetitions == 5
    assert item.version == 5
    assert reloaded.profile.total_tasks_completed == 5
    assert reloaded.profile.version == 5
