# SQLAlchemy models
from .base import Base
from .engine_state import CategoryMetricsRow, PerformanceProfileRow, ReviewItemRow

__all__ = [
    # Base
    "Base",
    # Engine state
    "PerformanceProfileRow",
    "CategoryMetricsRow",
    "ReviewItemRow",
]
