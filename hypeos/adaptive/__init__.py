"""
Adaptive Module - Performance tracking and difficulty scaling.

Components:
- performance_tracker: per-category attempt statistics and trend signals
- difficulty_calculator: performance score, point multiplier and tier
"""

from hypeos.adaptive.difficulty_calculator import (
    DifficultyResult,
    apply_mastery_overlay,
    calculate_adaptive_difficulty,
    calculate_mastery_multiplier,
    calculate_performance_score,
)
from hypeos.adaptive.performance_tracker import (
    PerformanceSummary,
    TrendConfig,
    get_performance_summary,
    initialize_performance_profile,
    update_performance_metrics,
)

__all__ = [
    # Tracking
    "initialize_performance_profile",
    "update_performance_metrics",
    "get_performance_summary",
    "PerformanceSummary",
    "TrendConfig",
    # Difficulty
    "calculate_performance_score",
    "calculate_adaptive_difficulty",
    "calculate_mastery_multiplier",
    "apply_mastery_overlay",
    "DifficultyResult",
]
