"""
Core Module - Shared domain models and helpers.

Components:
- models: Task, StreakData, performance state, ReviewItem and enums
- numeric: rounding and clamping rules used by the scoring pipeline
- exceptions: engine error hierarchy
- logging: loguru sink configuration
"""

from hypeos.core.exceptions import CatalogError, HypeOSError, StaleStateError, StateStoreError
from hypeos.core.models import (
    AttemptRecord,
    DifficultyLevel,
    ImpactTier,
    MasteryLevel,
    PerformanceMetrics,
    ReviewItem,
    ReviewType,
    StreakData,
    Task,
    UserPerformanceProfile,
)
from hypeos.core.numeric import clamp, round_half_away_from_zero

__all__ = [
    # Models
    "Task",
    "StreakData",
    "PerformanceMetrics",
    "AttemptRecord",
    "UserPerformanceProfile",
    "ReviewItem",
    # Enums
    "ImpactTier",
    "DifficultyLevel",
    "MasteryLevel",
    "ReviewType",
    # Numeric
    "clamp",
    "round_half_away_from_zero",
    # Errors
    "HypeOSError",
    "StateStoreError",
    "StaleStateError",
    "CatalogError",
]
