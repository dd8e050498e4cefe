"""
Unit tests for the adaptive difficulty calculator.

Tests:
- Performance score formula
- Performance bands and category overlay
- Multiplier clamping and point rounding
- Mastery multiplier and overlay
"""

from decimal import Decimal

import pytest

from hypeos.adaptive.difficulty_calculator import (
    DifficultyResult,
    apply_mastery_overlay,
    calculate_adaptive_difficulty,
    calculate_mastery_multiplier,
    calculate_performance_score,
)
from hypeos.core.models import (
    DifficultyLevel,
    PerformanceMetrics,
    ReviewItem,
    StreakData,
    UserPerformanceProfile,
)


def _metrics(attempts=0, completions=0):
    return PerformanceMetrics(category="sales", attempts=attempts, completions=completions)


class TestPerformanceScore:
    def test_formula(self):
        profile = UserPerformanceProfile(user_id="u", overall_success_rate=0.9, weekly_trend=0.2)
        streak = StreakData(current_streak=5, longest_streak=10)

        # 0.9 * 0.5 * (0.2 + 1) / 2
        assert calculate_performance_score(profile, streak) == pytest.approx(0.27)

    def test_new_user_without_streak_scores_zero(self):
        profile = UserPerformanceProfile(user_id="u")
        assert calculate_performance_score(profile, StreakData()) == 0.0

    def test_streak_ratio_is_clamped(self):
        profile = UserPerformanceProfile(user_id="u", overall_success_rate=1.0, weekly_trend=1.0)
        streak = StreakData(current_streak=12, longest_streak=4)

        assert calculate_performance_score(profile, streak) == 1.0

    def test_declining_trend_zeroes_score(self):
        profile = UserPerformanceProfile(user_id="u", overall_success_rate=1.0, weekly_trend=-1.0)
        assert calculate_performance_score(profile, StreakData(3, 3)) == 0.0


class TestAdaptiveDifficulty:
    @pytest.mark.parametrize(
        "score, points, level",
        [
            (0.85, 115, DifficultyLevel.HARD),
            (0.7, 105, DifficultyLevel.MEDIUM),
            (0.5, 100, DifficultyLevel.MEDIUM),
            (0.3, 85, DifficultyLevel.EASY),
        ],
    )
    def test_performance_bands(self, score, points, level):
        result = calculate_adaptive_difficulty(100, score, "sales", _metrics())

        assert result.adjusted_points == points
        assert result.difficulty_level == level

    def test_band_thresholds_are_exclusive(self):
        result = calculate_adaptive_difficulty(100, 0.8, "sales", _metrics())
        assert result.multiplier == Decimal("1.05")

    def test_hard_plus_category_bonus_becomes_expert(self):
        """20 attempts, 19 completions and a strong score."""
        result = calculate_adaptive_difficulty(100, 0.85, "sales", _metrics(20, 19))

        assert result.multiplier == Decimal("1.265")
        assert result.difficulty_level == DifficultyLevel.EXPERT
        assert result.adjusted_points == 127
        assert result.category_success_rate == pytest.approx(0.95)
        assert result.explanation == "Difficulty increased - You're performing excellently!"

    def test_struggling_category_gets_support(self):
        result = calculate_adaptive_difficulty(100, 0.3, "sales", _metrics(3, 0))

        assert result.multiplier == Decimal("0.765")
        assert result.difficulty_level == DifficultyLevel.EASY
        assert result.adjusted_points == 77

    def test_category_bonus_on_medium_band(self):
        result = calculate_adaptive_difficulty(100, 0.5, "sales", _metrics(5, 5))

        assert result.multiplier == Decimal("1.1")
        assert result.difficulty_level == DifficultyLevel.HARD
        assert result.adjusted_points == 110
        assert result.explanation == "Category mastery bonus applied!"

    def test_category_bonus_needs_five_attempts(self):
        result = calculate_adaptive_difficulty(100, 0.5, "sales", _metrics(4, 4))
        assert result.multiplier == Decimal("1.0")

    def test_support_explanation(self):
        result = calculate_adaptive_difficulty(100, 0.5, "sales", _metrics(4, 1))

        assert result.multiplier == Decimal("0.9")
        assert result.explanation == "Extra support in this category to help you improve."

    def test_neutral_explanation(self):
        result = calculate_adaptive_difficulty(100, 0.5, "sales", _metrics())
        assert result.explanation == "Difficulty maintained at current level."

    def test_too_few_attempts_for_support_keeps_neutral_explanation(self):
        result = calculate_adaptive_difficulty(100, 0.5, "sales", _metrics(2, 0))

        assert result.multiplier == Decimal("1.0")
        assert result.category_success_rate == 0.0
        assert result.explanation == "Difficulty maintained at current level."

    @pytest.mark.parametrize("score", [0.0, 0.2, 0.45, 0.7, 0.95, 1.0])
    @pytest.mark.parametrize("attempts, completions", [(0, 0), (3, 0), (10, 10), (6, 3)])
    def test_multiplier_bounds(self, score, attempts, completions):
        result = calculate_adaptive_difficulty(40, score, "sales", _metrics(attempts, completions))

        assert Decimal("0.7") <= result.multiplier <= Decimal("1.5")
        assert 28 <= result.adjusted_points <= 60


class TestMasteryMultiplier:
    def test_no_item(self):
        assert calculate_mastery_multiplier(None) == (1.0, "No review data available.")

    @pytest.mark.parametrize(
        "fields, multiplier",
        [
            ({"interval": 400}, 1.3),
            ({"interval": 31, "repetitions": 3}, 1.3),
            ({"interval": 20, "repetitions": 5, "ease_factor": 2.4}, 1.15),
            ({"interval": 6, "repetitions": 1, "ease_factor": 2.5}, 0.8),
            ({"interval": 6, "repetitions": 3, "ease_factor": 1.5}, 0.8),
            ({"interval": 6, "repetitions": 3, "ease_factor": 2.0, "quality_history": [2, 3],
              "average_quality": 2.5}, 0.85),
            ({"interval": 6, "repetitions": 3, "ease_factor": 2.0, "quality_history": [4],
              "average_quality": 4.0}, 1.0),
        ],
    )
    def test_rules(self, fields, multiplier):
        item = ReviewItem(task_id=1, category="sales", skill="s", **fields)
        assert calculate_mastery_multiplier(item)[0] == multiplier


class TestMasteryOverlay:
    def _result(self, points, level):
        return DifficultyResult(
            adjusted_points=points,
            difficulty_level=level,
            multiplier=Decimal(points) / 100,
            explanation="Difficulty maintained at current level.",
            category_success_rate=0.5,
        )

    def test_mastered_skill_promotes_hard_to_expert(self):
        item = ReviewItem(task_id=1, category="sales", skill="s", interval=400)

        adjustment = apply_mastery_overlay(100, self._result(115, DifficultyLevel.HARD), item)

        assert adjustment.adjusted_points == 150
        assert adjustment.difficulty_level == DifficultyLevel.EXPERT
        assert adjustment.explanation.endswith("Review interval: 400 days.")

    def test_struggling_skill_steps_down(self):
        item = ReviewItem(task_id=1, category="sales", skill="s", repetitions=1)

        adjustment = apply_mastery_overlay(100, self._result(115, DifficultyLevel.EXPERT), item)

        assert adjustment.adjusted_points == 92
        assert adjustment.difficulty_level == DifficultyLevel.HARD

    def test_points_stay_within_half_and_double_base(self):
        item = ReviewItem(task_id=1, category="sales", skill="s", repetitions=1)

        adjustment = apply_mastery_overlay(100, self._result(40, DifficultyLevel.EASY), item)

        assert adjustment.adjusted_points == 50

    def test_no_item_keeps_points(self):
        adjustment = apply_mastery_overlay(100, self._result(85, DifficultyLevel.EASY), None)

        assert adjustment.adjusted_points == 85
        assert adjustment.mastery_multiplier == 1.0
        assert "No review data available" in adjustment.explanation
