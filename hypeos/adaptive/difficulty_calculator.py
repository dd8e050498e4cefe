"""
Adaptive Difficulty Calculator.

Turns a performance profile into a point multiplier and difficulty tier:

    performance_score = success_rate * streak_ratio * (trend + 1) / 2

    score > 0.80  -> x1.15 hard
    score > 0.65  -> x1.05 medium
    score < 0.40  -> x0.85 easy
    otherwise     -> x1.00 medium

A category overlay then rewards (x1.1) or supports (x0.9) the category, and
the multiplier is clamped to [0.7, 1.5]. Multipliers are Decimal so that
the documented products (1.15 * 1.1 = 1.265) are exact before rounding.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from loguru import logger

from hypeos.core.models import (
    DifficultyLevel,
    PerformanceMetrics,
    ReviewItem,
    StreakData,
    UserPerformanceProfile,
)
from hypeos.core.numeric import clamp, clamp_decimal, round_half_away_from_zero

MIN_MULTIPLIER = Decimal("0.7")
MAX_MULTIPLIER = Decimal("1.5")

CATEGORY_BONUS = Decimal("1.1")
CATEGORY_SUPPORT = Decimal("0.9")

# (exclusive lower bound, multiplier, tier); checked top to bottom
PERFORMANCE_BANDS: tuple[tuple[float, Decimal, DifficultyLevel], ...] = (
    (0.8, Decimal("1.15"), DifficultyLevel.HARD),
    (0.65, Decimal("1.05"), DifficultyLevel.MEDIUM),
)
STRUGGLING_SCORE = 0.4
STRUGGLING_MULTIPLIER = Decimal("0.85")


@dataclass
class DifficultyResult:
    """Output of the adaptive difficulty stage."""

    adjusted_points: int
    difficulty_level: DifficultyLevel
    multiplier: Decimal
    explanation: str
    category_success_rate: float


@dataclass
class MasteryAdjustment:
    """Review-history overlay on top of a DifficultyResult."""

    adjusted_points: int
    difficulty_level: DifficultyLevel
    mastery_multiplier: float
    explanation: str


def calculate_performance_score(profile: UserPerformanceProfile, streak: StreakData) -> float:
    """
    Overall performance in [0, 1].

    Args:
        profile: User performance profile
        streak: Streak lengths from the streak calculator

    Returns:
        success_rate * streak ratio * normalized weekly trend
    """
    success_rate = clamp(profile.overall_success_rate, 0.0, 1.0)
    consistency = clamp(streak.current_streak / max(streak.longest_streak, 1), 0.0, 1.0)
    normalized_trend = (clamp(profile.weekly_trend, -1.0, 1.0) + 1) / 2
    return success_rate * consistency * normalized_trend


def calculate_adaptive_difficulty(
    base_points: int,
    performance_score: float,
    category: str,
    category_metrics: PerformanceMetrics,
) -> DifficultyResult:
    """
    Scale a task's base points by the user's performance.

    Args:
        base_points: Catalog points for the task
        performance_score: From calculate_performance_score()
        category: Task category (for logging)
        category_metrics: The user's metrics in that category

    Returns:
        DifficultyResult with clamped multiplier and rounded points
    """
    multiplier = Decimal("1.0")
    level = DifficultyLevel.MEDIUM

    for threshold, band_multiplier, band_level in PERFORMANCE_BANDS:
        if performance_score > threshold:
            multiplier, level = band_multiplier, band_level
            break
    else:
        if performance_score < STRUGGLING_SCORE:
            multiplier, level = STRUGGLING_MULTIPLIER, DifficultyLevel.EASY

    category_rate = category_metrics.completions / max(category_metrics.attempts, 1)
    bonus_applied = category_rate > 0.9 and category_metrics.attempts >= 5
    support_applied = category_rate < 0.3 and category_metrics.attempts >= 3
    if bonus_applied:
        multiplier *= CATEGORY_BONUS
        level = DifficultyLevel.EXPERT if level == DifficultyLevel.HARD else DifficultyLevel.HARD
    elif support_applied:
        multiplier *= CATEGORY_SUPPORT
        level = DifficultyLevel.EASY

    multiplier = clamp_decimal(multiplier, MIN_MULTIPLIER, MAX_MULTIPLIER)
    adjusted = round_half_away_from_zero(Decimal(base_points) * multiplier)

    logger.debug(
        f"Difficulty for {category}: score={performance_score:.3f} "
        f"category_rate={category_rate:.2f} -> x{multiplier} {level.value} ({adjusted} pts)"
    )

    return DifficultyResult(
        adjusted_points=adjusted,
        difficulty_level=level,
        multiplier=multiplier,
        explanation=_difficulty_explanation(multiplier, bonus_applied, support_applied),
        category_success_rate=category_rate,
    )


def _difficulty_explanation(
    multiplier: Decimal, bonus_applied: bool, support_applied: bool
) -> str:
    if multiplier > Decimal("1.1"):
        return "Difficulty increased - You're performing excellently!"
    if multiplier < Decimal("0.9"):
        return "Difficulty decreased - Let's build confidence with achievable goals."
    if bonus_applied:
        return "Category mastery bonus applied!"
    if support_applied:
        return "Extra support in this category to help you improve."
    return "Difficulty maintained at current level."


def calculate_mastery_multiplier(review_item: ReviewItem | None) -> tuple[float, str]:
    """
    Mastery factor from a skill's review history.

    Mastered or long-interval skills get harder, struggling skills easier.

    Returns:
        (multiplier, explanation)
    """
    if review_item is None:
        return 1.0, "No review data available."
    if review_item.mastered or review_item.interval > 30:
        return 1.3, "Mastered skill - difficulty increased to maintain challenge."
    if review_item.ease_factor >= 2.3 and review_item.repetitions >= 5:
        return 1.15, "Strong performance - slightly increasing difficulty."
    if review_item.ease_factor < 1.8 or review_item.repetitions < 2:
        return 0.8, "Building confidence - difficulty reduced for this skill."
    if review_item.quality_history and review_item.average_quality < 3.0:
        return 0.85, "Extra support - difficulty reduced based on review history."
    return 1.0, ""


def apply_mastery_overlay(
    base_points: int,
    difficulty: DifficultyResult,
    review_item: ReviewItem | None,
) -> MasteryAdjustment:
    """
    Scale difficulty-stage points by the mastery multiplier.

    Points stay within 50%-200% of the base points; the tier moves up for
    strongly mastered skills and down for struggling ones.
    """
    mastery_multiplier, mastery_note = calculate_mastery_multiplier(review_item)
    if review_item is None:
        return MasteryAdjustment(
            adjusted_points=difficulty.adjusted_points,
            difficulty_level=difficulty.difficulty_level,
            mastery_multiplier=mastery_multiplier,
            explanation=f"{difficulty.explanation} ({mastery_note.rstrip('.')})",
        )

    scaled = round_half_away_from_zero(
        Decimal(difficulty.adjusted_points) * Decimal(str(mastery_multiplier))
    )
    floor_points = round_half_away_from_zero(Decimal(base_points) * Decimal("0.5"))
    ceiling_points = round_half_away_from_zero(Decimal(base_points) * Decimal("2.0"))
    points = max(floor_points, min(scaled, ceiling_points))

    level = difficulty.difficulty_level
    if mastery_multiplier > 1.2 and level == DifficultyLevel.HARD:
        level = DifficultyLevel.EXPERT
    elif mastery_multiplier < 0.9 and level != DifficultyLevel.EASY:
        level = DifficultyLevel.HARD if level == DifficultyLevel.EXPERT else DifficultyLevel.MEDIUM

    explanation = (
        f"{difficulty.explanation} {mastery_note} Review interval: {review_item.interval} days."
    )
    return MasteryAdjustment(
        adjusted_points=points,
        difficulty_level=level,
        mastery_multiplier=mastery_multiplier,
        explanation=" ".join(explanation.split()),
    )
