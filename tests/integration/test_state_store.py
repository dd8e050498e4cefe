"""
Integration tests for the engine state stores.

Runs the same contract against the in-memory store and the SQLAlchemy
store on an in-memory SQLite database.
"""

from dataclasses import replace
from datetime import timedelta

import pytest

from hypeos.adaptive.performance_tracker import (
    initialize_performance_profile,
    update_performance_metrics,
)
from hypeos.core.exceptions import StaleStateError
from hypeos.core.models import ReviewItem, Task
from hypeos.delivery.state_store import InMemoryStateStore, SQLStateStore


@pytest.fixture(params=["memory", "sql"])
def store(request):
    if request.param == "memory":
        return InMemoryStateStore()
    return SQLStateStore("sqlite://")


@pytest.fixture
def profile(now):
    profile = initialize_performance_profile("user-1", now=now)
    sales = Task(id=1, title="Cold email", category="sales")
    admin = Task(id=2, title="Inbox zero", category="admin")
    profile = update_performance_metrics(profile, sales, True, 20, difficulty_multiplier=0.85, now=now)
    return update_performance_metrics(profile, admin, False, 5, difficulty_multiplier=1.0, now=now)


@pytest.fixture
def item(now):
    return ReviewItem(
        task_id=1,
        category="sales",
        skill="cold-email",
        ease_factor=2.0,
        interval=6,
        repetitions=2,
        last_review=now,
        quality_history=[4, 5],
        average_quality=4.5,
        created_at=now - timedelta(days=7),
    )


class TestProfiles:
    def test_unknown_user(self, store):
        assert store.load_performance_profile("nobody") is None
        assert store.load_review_items("nobody") == []

    def test_round_trip(self, store, profile):
        saved = store.save_performance_profile(profile)

        assert saved.version == 1
        assert all(m.version == 1 for m in saved.category_performance.values())
        assert store.load_performance_profile("user-1") == saved

    def test_saved_copy_is_detached(self, store, profile):
        store.save_performance_profile(profile)

        loaded = store.load_performance_profile("user-1")
        loaded.category_performance["sales"].difficulty_history.append(9.9)

        assert store.load_performance_profile("user-1").category_performance["sales"].difficulty_history == [0.85]

    def test_version_bumps_on_every_save(self, store, profile, now):
        saved = store.save_performance_profile(profile)
        task = Task(id=1, title="Cold email", category="sales")

        updated = update_performance_metrics(saved, task, True, 10, now=now + timedelta(hours=1))
        resaved = store.save_performance_profile(updated)

        assert resaved.version == 2
        assert resaved.category_performance["sales"].version == 2
        assert resaved.total_tasks_attempted == 3

    def test_stale_profile_is_rejected(self, store, profile):
        store.save_performance_profile(profile)

        with pytest.raises(StaleStateError):
            store.save_performance_profile(profile)

        assert store.load_performance_profile("user-1").version == 1

    def test_stale_category_metrics_are_rejected(self, store, profile):
        saved = store.save_performance_profile(profile)
        sales = saved.category_performance["sales"]
        conflicting = replace(
            saved,
            category_performance={**saved.category_performance, "sales": replace(sales, version=0)},
        )

        with pytest.raises(StaleStateError):
            store.save_performance_profile(conflicting)

        assert store.load_performance_profile("user-1") == saved


class TestReviewItems:
    def test_round_trip(self, store, item):
        saved = store.save_review_items("user-1", [item])

        assert saved[0].version == 1
        assert store.load_review_items("user-1") == saved

    def test_upsert_updates_existing(self, store, item, now):
        first = store.upsert_review_item("user-1", item)
        second = store.upsert_review_item(
            "user-1", replace(first, interval=15, repetitions=3, next_review=now + timedelta(days=15))
        )

        assert second.version == 2
        loaded = store.load_review_items("user-1")
        assert len(loaded) == 1
        assert loaded[0].interval == 15

    def test_stale_item_is_rejected(self, store, item):
        store.upsert_review_item("user-1", item)

        with pytest.raises(StaleStateError):
            store.upsert_review_item("user-1", replace(item, interval=20))

    def test_new_item_with_version_is_rejected(self, store, item):
        with pytest.raises(StaleStateError):
            store.upsert_review_item("user-1", replace(item, version=3))

    def test_batch_is_atomic(self, store, item):
        store.upsert_review_item("user-1", item)
        fresh = replace(item, task_id=2, skill="pitch", id="")
        stale = replace(item, interval=30)

        with pytest.raises(StaleStateError):
            store.save_review_items("user-1", [fresh, stale])

        assert [i.skill for i in store.load_review_items("user-1")] == ["cold-email"]

    def test_users_are_isolated(self, store, item):
        store.upsert_review_item("user-1", item)

        assert store.load_review_items("user-2") == []
        assert store.upsert_review_item("user-2", item).version == 1


def test_sql_store_persists_across_instances(tmp_path, profile, item):
    url = f"sqlite:///{tmp_path / 'nested' / 'state.db'}"

    first = SQLStateStore(url)
    saved_profile = first.save_performance_profile(profile)
    saved_items = first.save_review_items("user-1", [item])
    first.engine.dispose()

    second = SQLStateStore(url)

    assert second.load_performance_profile("user-1") == saved_profile
    assert second.load_review_items("user-1") == saved_items
