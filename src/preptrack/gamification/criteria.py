"""Badge criteria as a closed set of variants.

Each badge row is turned into exactly one criterion object, which is then
measured against a snapshot of the user's live stats.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Union

from preptrack.db.models import BadgeDefinition


@dataclass(frozen=True)
class SolveCount:
    threshold: int


@dataclass(frozen=True)
class StreakDays:
    threshold: int


@dataclass(frozen=True)
class TopicMastery:
    threshold: int
    topic_id: int | None


@dataclass(frozen=True)
class Accuracy:
    threshold: int


@dataclass(frozen=True)
class TimeBased:
    """Counts every practice log; time of day is not inspected."""

    threshold: int


Criterion = Union[SolveCount, StreakDays, TopicMastery, Accuracy, TimeBased]

CRITERIA_TYPES: dict[str, type] = {
    "solve_count": SolveCount,
    "streak_days": StreakDays,
    "accuracy": Accuracy,
    "time_based": TimeBased,
}


@dataclass
class UserStats:
    """Live numbers a criterion is measured against."""

    total_solved: int = 0
    total_logs: int = 0
    current_streak: int = 0
    topic_accuracy: dict[int, int] = field(default_factory=dict)

    @property
    def mean_accuracy(self) -> float | None:
        if not self.topic_accuracy:
            return None
        return sum(self.topic_accuracy.values()) / len(self.topic_accuracy)


def criterion_from_badge(badge: BadgeDefinition) -> Criterion:
    """Build the criterion for a catalog row. Unknown types raise ValueError."""
    if badge.criteria_type == "topic_mastery":
        return TopicMastery(badge.criteria_value, badge.criteria_topic_id)
    cls = CRITERIA_TYPES.get(badge.criteria_type)
    if cls is None:
        msg = f"unknown badge criteria type: {badge.criteria_type}"
        raise ValueError(msg)
    return cls(badge.criteria_value)


def current_value(criterion: Criterion, stats: UserStats) -> float | None:
    """The user's value for the criterion's metric, or None when it has no data."""
    match criterion:
        case SolveCount():
            return stats.total_solved
        case StreakDays():
            return stats.current_streak
        case TopicMastery(topic_id=topic_id):
            if topic_id is None:
                return None
            return stats.topic_accuracy.get(topic_id)
        case Accuracy():
            return stats.mean_accuracy
        case TimeBased():
            return stats.total_logs
    msg = f"unhandled criterion: {criterion!r}"
    raise TypeError(msg)


def is_met(criterion: Criterion, stats: UserStats) -> bool:
    value = current_value(criterion, stats)
    return value is not None and value >= criterion.threshold


def progress_percent(criterion: Criterion, stats: UserStats) -> int:
    """min(100, floor(current / threshold * 100)); 0 when there is no data."""
    value = current_value(criterion, stats)
    if value is None or value <= 0:
        return 0
    if criterion.threshold <= 0:
        return 100
    return min(100, math.floor(value / criterion.threshold * 100))
