"""Progress scoring: pure functions turning a practice-log history into summary metrics.

Weighting of the strength score:
  40% accuracy, 30% completion, 20% consistency, 10% difficulty bonus.

All rounding is half-up (2.5 -> 3).
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Protocol

DIFFICULTIES: tuple[str, ...] = ("Easy", "Medium", "Hard")
DIFFICULTY_POINTS: dict[str, int] = {"Easy": 1, "Medium": 2, "Hard": 3}

STRENGTH_WEIGHTS: dict[str, float] = {
    "accuracy": 0.4,
    "completion": 0.3,
    "consistency": 0.2,
    "difficulty": 0.1,
}


class ScoredLog(Protocol):
    difficulty: str
    solved: bool
    time_spent_minutes: int
    practiced_at: datetime


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for non-negatives."""
    return int(math.floor(value + 0.5))


def empty_breakdown() -> dict[str, dict[str, int]]:
    return {d.lower(): {"attempted": 0, "solved": 0} for d in DIFFICULTIES}


def accuracy(solved: int, attempted: int) -> int:
    if attempted == 0:
        return 0
    return round_half_up(solved / attempted * 100)


def completion(attempted: int, recommended_questions: int) -> int:
    """Attempted vs. the topic's recommended target. Uncapped: can exceed 100."""
    if recommended_questions <= 0:
        return 0
    return round_half_up(attempted / recommended_questions * 100)


def difficulty_breakdown(logs: Iterable[ScoredLog]) -> dict[str, dict[str, int]]:
    breakdown = empty_breakdown()
    for log in logs:
        bucket = breakdown.get(log.difficulty.lower())
        if bucket is None:
            continue
        bucket["attempted"] += 1
        if log.solved:
            bucket["solved"] += 1
    return breakdown


def consistency_score(
    practiced_ats: Iterable[datetime],
    now: datetime,
    window_days: int = 7,
) -> int:
    """Share of the trailing ``window_days`` UTC calendar days (today included) with practice."""
    today = now.astimezone(timezone.utc).date()
    first_day = today - timedelta(days=window_days - 1)
    practiced_days = (ts.astimezone(timezone.utc).date() for ts in practiced_ats)
    days = {day for day in practiced_days if first_day <= day <= today}
    if not days:
        return 0
    return round_half_up(len(days) / window_days * 100)


def difficulty_bonus(breakdown: dict[str, dict[str, int]]) -> int:
    """Average solve weight (Easy=1, Medium=2, Hard=3) scaled so all-Hard is 100."""
    total_solved = sum(breakdown[d.lower()]["solved"] for d in DIFFICULTIES)
    if total_solved == 0:
        return 0
    points = sum(breakdown[d.lower()]["solved"] * DIFFICULTY_POINTS[d] for d in DIFFICULTIES)
    return round_half_up(points / total_solved / 3 * 100)


def strength_score(acc: int, comp: int, consistency: int, bonus: int) -> int:
    """Weighted composite, clamped to 0..100 (completion itself is uncapped)."""
    score = (
        STRENGTH_WEIGHTS["accuracy"] * min(acc, 100)
        + STRENGTH_WEIGHTS["completion"] * min(comp, 100)
        + STRENGTH_WEIGHTS["consistency"] * min(consistency, 100)
        + STRENGTH_WEIGHTS["difficulty"] * min(bonus, 100)
    )
    return max(0, min(100, round_half_up(score)))


@dataclass
class ProgressMetrics:
    """Everything stored on a topic_progress row."""

    total_questions_attempted: int
    questions_solved: int
    accuracy_percentage: int
    total_time_minutes: int
    avg_time_per_question: int
    recommended_questions: int
    completion_percentage: int
    consistency_score: int
    difficulty_bonus: int
    strength_score: int
    last_practiced_at: datetime | None
    difficulty_breakdown: dict[str, dict[str, int]] = field(default_factory=empty_breakdown)

    def as_row(self) -> dict:
        """Column values for topic_progress (difficulty_bonus is derived, not stored)."""
        return {
            "total_questions_attempted": self.total_questions_attempted,
            "questions_solved": self.questions_solved,
            "accuracy_percentage": self.accuracy_percentage,
            "total_time_minutes": self.total_time_minutes,
            "avg_time_per_question": self.avg_time_per_question,
            "recommended_questions": self.recommended_questions,
            "completion_percentage": self.completion_percentage,
            "strength_score": self.strength_score,
            "consistency_score": self.consistency_score,
            "difficulty_breakdown": self.difficulty_breakdown,
            "last_practiced_at": self.last_practiced_at,
        }


def summarize(
    logs: Sequence[ScoredLog],
    recommended_questions: int,
    now: datetime,
    window_days: int = 7,
) -> ProgressMetrics:
    """Compute the full summary for one (user, topic) from its logs in practiced_at order.

    Raises ValueError for an empty history: a topic with no logs has no summary row.
    """
    if not logs:
        msg = "cannot summarize an empty practice history"
        raise ValueError(msg)

    attempted = len(logs)
    solved = sum(1 for log in logs if log.solved)
    total_minutes = sum(log.time_spent_minutes for log in logs)
    breakdown = difficulty_breakdown(logs)

    acc = accuracy(solved, attempted)
    comp = completion(attempted, recommended_questions)
    consistency = consistency_score((log.practiced_at for log in logs), now, window_days)
    bonus = difficulty_bonus(breakdown)

    return ProgressMetrics(
        total_questions_attempted=attempted,
        questions_solved=solved,
        accuracy_percentage=acc,
        total_time_minutes=total_minutes,
        avg_time_per_question=round_half_up(total_minutes / attempted),
        recommended_questions=recommended_questions,
        completion_percentage=comp,
        consistency_score=consistency,
        difficulty_bonus=bonus,
        strength_score=strength_score(acc, comp, consistency, bonus),
        last_practiced_at=logs[-1].practiced_at,
        difficulty_breakdown=breakdown,
    )
