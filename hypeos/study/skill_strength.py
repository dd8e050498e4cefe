"""
Skill Strength - retention decay between reviews.

A skill holds full strength (100) until its review interval has elapsed and
then loses a fixed number of points per overdue day:

    strength = max(0, 100 - rate * max(0, days_since - interval))

Mastered skills decay more slowly. Strength below 50 marks the skill as
WEAKENED regardless of its repetition count.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

from loguru import logger

from hypeos.core.models import MasteryLevel, ReviewItem, normalize_category, utc_now
from hypeos.core.numeric import round_half_away_from_zero

FULL_STRENGTH = 100
WEAKENED_THRESHOLD = 50


@dataclass
class DecayConfig:
    """Decay rates and review window."""

    decay_rate_per_day: float = 5.0
    mastered_decay_rate_per_day: float = 2.0
    review_window_days: int = 2  # due within this many days -> needs review


@dataclass
class SkillStrength:
    """Point-in-time retention estimate for one skill."""

    strength: int  # 0-100
    level: MasteryLevel
    days_since_last_review: int
    days_until_decay: int  # negative once overdue
    is_overdue: bool
    needs_review: bool
    decay_rate: float  # fraction of strength lost, 0-1

    @classmethod
    def untracked(cls) -> SkillStrength:
        """Snapshot for a skill that has never been reviewed."""
        return cls(
            strength=0,
            level=MasteryLevel.NEW,
            days_since_last_review=0,
            days_until_decay=0,
            is_overdue=False,
            needs_review=False,
            decay_rate=0.0,
        )


@dataclass
class CategorySkillStrength:
    """Aggregate strength across a category's skills."""

    category: str
    average_strength: int
    skill_count: int
    weakened_count: int
    mastered_count: int
    needs_review_count: int


def calculate_skill_strength(
    item: ReviewItem | None,
    now: datetime | None = None,
    config: DecayConfig | None = None,
) -> SkillStrength:
    """
    Current strength of a skill.

    Args:
        item: Review item, or None for an untracked skill
        now: Clock override
        config: Decay configuration

    Returns:
        SkillStrength snapshot
    """
    if item is None:
        return SkillStrength.untracked()

    now = now or utc_now()
    config = config or DecayConfig()

    days_since = max(0, math.floor((now - item.last_review).total_seconds() / 86400))
    days_overdue = max(0, days_since - item.interval)
    rate = config.mastered_decay_rate_per_day if item.mastered else config.decay_rate_per_day

    strength = round_half_away_from_zero(max(0.0, FULL_STRENGTH - rate * days_overdue))
    strength = min(FULL_STRENGTH, strength)

    if strength < WEAKENED_THRESHOLD:
        level = MasteryLevel.WEAKENED
    elif item.mastered:
        level = MasteryLevel.MASTERED
    else:
        level = MasteryLevel.from_repetitions(item.repetitions)

    days_until_decay = item.interval - days_since
    is_overdue = days_since > item.interval

    return SkillStrength(
        strength=strength,
        level=level,
        days_since_last_review=days_since,
        days_until_decay=days_until_decay,
        is_overdue=is_overdue,
        needs_review=is_overdue or days_until_decay <= config.review_window_days,
        decay_rate=(FULL_STRENGTH - strength) / FULL_STRENGTH,
    )


def get_skills_needing_review(
    items: list[ReviewItem],
    now: datetime | None = None,
    max_days_overdue: int = 30,
    config: DecayConfig | None = None,
) -> list[tuple[ReviewItem, SkillStrength]]:
    """
    Skills that need review, overdue first then weakest.

    Skills untouched for more than max_days_overdue days that have decayed
    to zero are treated as abandoned and left out.
    """
    now = now or utc_now()
    results: list[tuple[ReviewItem, SkillStrength]] = []
    for item in items:
        strength = calculate_skill_strength(item, now, config)
        if not strength.needs_review:
            continue
        if strength.days_since_last_review > max_days_overdue and strength.strength == 0:
            continue
        results.append((item, strength))

    results.sort(key=lambda pair: (not pair[1].is_overdue, pair[1].strength))
    logger.debug(f"{len(results)} of {len(items)} skills need review")
    return results


def get_category_skill_strength(
    items: list[ReviewItem],
    category: str,
    now: datetime | None = None,
    config: DecayConfig | None = None,
) -> CategorySkillStrength:
    """Average strength plus level and needs-review counts for one category."""
    category = normalize_category(category)
    strengths = [
        calculate_skill_strength(item, now, config) for item in items if item.category == category
    ]
    if not strengths:
        return CategorySkillStrength(category, 0, 0, 0, 0, 0)

    return CategorySkillStrength(
        category=category,
        average_strength=round_half_away_from_zero(
            sum(s.strength for s in strengths) / len(strengths)
        ),
        skill_count=len(strengths),
        weakened_count=sum(1 for s in strengths if s.level == MasteryLevel.WEAKENED),
        mastered_count=sum(1 for s in strengths if s.level == MasteryLevel.MASTERED),
        needs_review_count=sum(1 for s in strengths if s.needs_review),
    )
