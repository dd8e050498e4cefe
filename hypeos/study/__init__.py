"""
Study Module for gamified tasks.

Provides services for:
- Skill strength and decay
- Unified task difficulty (adaptive points + spaced repetition)
- Daily review queue
- Session management with persistence
"""

from hypeos.study.learning_service import AdaptiveLearningService
from hypeos.study.review_queue import DailyReviewQueue, ReviewQueueBuilder
from hypeos.study.skill_strength import SkillStrength, calculate_skill_strength
from hypeos.study.unified_difficulty import UnifiedDifficultyEngine, UnifiedTaskDifficulty

__all__ = [
    "SkillStrength",
    "calculate_skill_strength",
    "UnifiedDifficultyEngine",
    "UnifiedTaskDifficulty",
    "ReviewQueueBuilder",
    "DailyReviewQueue",
    "AdaptiveLearningService",
]
