"""Fixtures for service-level tests that write rows directly."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

import pytest

from preptrack.db.models import PracticeLog, TopicProgress, UserGamification

NOW = datetime(2026, 3, 11, 15, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def add_log(db_session) -> Callable[..., Awaitable[PracticeLog]]:
    """Insert and commit a practice log without running the side effects."""

    async def _add(
        user_id: int,
        topic_id: int,
        difficulty: str = "Easy",
        solved: bool = True,
        minutes: int = 15,
        practiced_at: datetime = NOW,
    ) -> PracticeLog:
        log = PracticeLog(
            user_id=user_id,
            topic_id=topic_id,
            question_title="Two Sum",
            difficulty=difficulty,
            time_spent_minutes=minutes,
            solved=solved,
            practiced_at=practiced_at,
            created_at=practiced_at,
        )
        db_session.add(log)
        await db_session.commit()
        return log

    return _add


@pytest.fixture
def add_progress(db_session) -> Callable[..., Awaitable[TopicProgress]]:
    """Insert a topic_progress row with the given scores."""

    async def _add(
        user_id: int,
        topic_id: int,
        strength: int = 50,
        solved: int = 0,
        accuracy: int = 80,
        consistency: int = 100,
    ) -> TopicProgress:
        row = TopicProgress(
            user_id=user_id,
            topic_id=topic_id,
            strength_score=strength,
            questions_solved=solved,
            total_questions_attempted=solved,
            accuracy_percentage=accuracy,
            consistency_score=consistency,
            difficulty_breakdown={},
            updated_at=NOW,
        )
        db_session.add(row)
        await db_session.commit()
        return row

    return _add


@pytest.fixture
def set_points(db_session) -> Callable[..., Awaitable[UserGamification]]:
    async def _set(user_id: int, points: int, streak: int = 0, badges: int = 0) -> UserGamification:
        gam = UserGamification(
            user_id=user_id,
            total_points=points,
            level=points // 100 + 1,
            current_streak=streak,
            longest_streak=streak,
            badges_earned=badges,
            updated_at=NOW,
        )
        db_session.add(gam)
        await db_session.commit()
        return gam

    return _set
