"""
Unit tests for the performance profile tracker.

Tests:
- Counter and streak bookkeeping per category
- EMA of time on task
- Functional updates (input profile untouched)
- Windowed and snapshot weekly trend
- Performance summary grading
"""

from datetime import timedelta

import pytest

from hypeos.adaptive.performance_tracker import (
    TrendConfig,
    get_performance_summary,
    initialize_performance_profile,
    update_performance_metrics,
)
from hypeos.core.models import PerformanceMetrics, Task, UserPerformanceProfile


def _task(category="sales", task_id=1):
    return Task(id=task_id, title="Task", category=category)


@pytest.fixture
def profile(now):
    return initialize_performance_profile("user-1", now=now)


class TestInitialize:
    def test_neutral_prior(self, profile):
        assert profile.overall_success_rate == 0.5
        assert profile.total_tasks_attempted == 0
        assert profile.total_tasks_completed == 0
        assert profile.weekly_trend == 0.0
        assert profile.category_performance == {}


class TestUpdateMetrics:
    def test_completion_updates_counters(self, profile, now):
        updated = update_performance_metrics(profile, _task(), True, 20, now=now)

        metrics = updated.category_performance["sales"]
        assert metrics.attempts == 1
        assert metrics.completions == 1
        assert metrics.consecutive_successes == 1
        assert metrics.consecutive_fails == 0
        assert metrics.last_attempt == now
        assert updated.total_tasks_attempted == 1
        assert updated.total_tasks_completed == 1
        assert updated.overall_success_rate == 1.0

    def test_failure_resets_success_streak(self, profile, now):
        updated = update_performance_metrics(profile, _task(), True, 20, now=now)
        updated = update_performance_metrics(updated, _task(), False, 20, now=now)

        metrics = updated.category_performance["sales"]
        assert metrics.consecutive_successes == 0
        assert metrics.consecutive_fails == 1
        assert updated.overall_success_rate == 0.5

    def test_input_profile_is_not_modified(self, profile, now):
        update_performance_metrics(profile, _task(), True, 20, now=now)

        assert profile.category_performance == {}
        assert profile.total_tasks_attempted == 0

    def test_untouched_categories_keep_their_metrics(self, profile, now):
        first = update_performance_metrics(profile, _task("admin"), True, 10, now=now)
        second = update_performance_metrics(first, _task("sales"), False, 10, now=now)

        assert second.category_performance["admin"] == first.category_performance["admin"]
        assert first.category_performance.get("sales") is None

    def test_ema_of_time_spent(self, profile, now):
        updated = update_performance_metrics(profile, _task(), True, 20, now=now)
        assert updated.category_performance["sales"].average_time == 20

        updated = update_performance_metrics(updated, _task(), True, 10, now=now)
        # 20 * 0.7 + 10 * 0.3
        assert updated.category_performance["sales"].average_time == pytest.approx(17.0)

    def test_empty_category_is_tracked_as_general(self, profile, now):
        updated = update_performance_metrics(profile, _task(category=""), True, 5, now=now)
        assert "general" in updated.category_performance

    def test_difficulty_multiplier_appended_to_history(self, profile, now):
        updated = update_performance_metrics(profile, _task(), True, 5, difficulty_multiplier=1.15, now=now)
        updated = update_performance_metrics(updated, _task(), True, 5, difficulty_multiplier=0.85, now=now)

        assert updated.category_performance["sales"].difficulty_history == [1.15, 0.85]

    def test_consistency_score(self, profile, now):
        updated = profile
        for completed in (True, False, False):
            updated = update_performance_metrics(updated, _task(), completed, 5, now=now)

        # 1 / max(3 * 0.7, 1)
        assert updated.consistency_score == pytest.approx(1 / 2.1)

    def test_success_rate_stays_in_unit_interval(self, profile, now):
        updated = profile
        for i in range(20):
            updated = update_performance_metrics(updated, _task(), i % 3 == 0, 5, now=now)
            assert 0.0 <= updated.overall_success_rate <= 1.0


class TestWindowedTrend:
    def test_neutral_until_both_windows_have_attempts(self, profile, now):
        updated = update_performance_metrics(profile, _task(), True, 5, now=now)
        assert updated.weekly_trend == 0.0

    def test_improvement_over_previous_week(self, profile, now):
        updated = update_performance_metrics(profile, _task(), False, 5, now=now - timedelta(days=10))
        updated = update_performance_metrics(updated, _task(), True, 5, now=now)

        assert updated.weekly_trend == 1.0

    def test_decline_over_previous_week(self, profile, now):
        updated = update_performance_metrics(profile, _task(), True, 5, now=now - timedelta(days=9))
        updated = update_performance_metrics(updated, _task(), True, 5, now=now - timedelta(days=1))
        updated = update_performance_metrics(updated, _task(), False, 5, now=now)

        # current window 1/2, previous window 1/1
        assert updated.weekly_trend == pytest.approx(-0.5)

    def test_old_attempts_are_pruned(self, profile, now):
        updated = update_performance_metrics(profile, _task(), True, 5, now=now - timedelta(days=20))
        updated = update_performance_metrics(updated, _task(), True, 5, now=now)

        assert len(updated.recent_attempts) == 1
        assert updated.recent_attempts[0].at == now


class TestSnapshotTrend:
    def test_positive_when_mean_category_rate_beats_overall(self, profile, now):
        trend = TrendConfig(mode="snapshot")
        updated = update_performance_metrics(profile, _task("sales"), True, 5, now=now, trend=trend)
        for completed in (False, False, True):
            updated = update_performance_metrics(updated, _task("admin"), completed, 5, now=now, trend=trend)

        # mean(1.0, 1/3) = 0.67 > overall 0.5
        assert updated.weekly_trend == 0.5

    def test_negative_otherwise(self, profile, now):
        trend = TrendConfig(mode="snapshot")
        updated = update_performance_metrics(profile, _task("sales"), True, 5, now=now, trend=trend)

        assert updated.weekly_trend == -0.2


class TestPerformanceSummary:
    @pytest.mark.parametrize(
        "rate, grade",
        [(0.9, "A"), (0.8, "A"), (0.7, "B"), (0.55, "C"), (0.2, "D")],
    )
    def test_grades(self, rate, grade):
        profile = UserPerformanceProfile(user_id="u", overall_success_rate=rate)
        assert get_performance_summary(profile).overall_grade == grade

    def test_strengths_and_improvements(self):
        profile = UserPerformanceProfile(
            user_id="u",
            overall_success_rate=0.4,
            weekly_trend=-0.3,
            category_performance={
                "sales": PerformanceMetrics(category="sales", attempts=6, completions=6),
                "admin": PerformanceMetrics(category="admin", attempts=4, completions=1),
            },
        )

        summary = get_performance_summary(profile)

        assert summary.strengths == ["sales"]
        assert summary.improvements == ["admin"]
        assert "Focus on completing easier tasks to build confidence" in summary.recommendations
        assert "Keep excelling in sales - you're doing great!" in summary.recommendations
        assert "Consider spending more time on admin to improve" in summary.recommendations
