"""Integration tests for log_practice and its post-log side effects."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from preptrack.db.models import PointsLedger, PracticeLog, UserBadge, UserGamification
from preptrack.errors import NotFoundError
from preptrack.practice.schemas import LogPracticeRequest
from preptrack.practice.service import get_practice_history, get_practice_stats, log_practice
from preptrack.progress.service import get_topic_progress, recalculate


def _request(**overrides) -> LogPracticeRequest:
    data = {
        "topic_id": 1,
        "question_title": "Two Sum",
        "difficulty": "Easy",
        "time_spent_minutes": 15,
        "solved": True,
    }
    data.update(overrides)
    return LogPracticeRequest(**data)


@pytest_asyncio.fixture
async def user(make_user):
    return await make_user("ada")


async def _gamification(db, user_id: int) -> UserGamification:
    result = await db.execute(
        select(UserGamification)
        .where(UserGamification.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


class TestLogPractice:
    @pytest.mark.asyncio
    async def test_first_solved_log_runs_every_side_effect(self, db_session, user, mock_redis, now):
        payload = await log_practice(db_session, mock_redis, user.id, _request(), now=now)

        assert payload["topic_name"] == "Arrays"
        assert payload["practiced_at"] == now

        progress = await get_topic_progress(db_session, user.id, 1)
        assert progress["strength_score"] == 47

        gam = await _gamification(db_session, user.id)
        assert gam.current_streak == 1
        assert gam.longest_streak == 1
        assert gam.last_practice_date == now.date()
        # 10 for the Easy solve, plus first_blood 10, perfectionist 100,
        # sharpshooter 75, early_bird 25 and night_owl 25
        assert gam.badges_earned == 5
        assert gam.total_points == 245
        assert gam.level == 3

        channels = {call.args[0] for call in mock_redis.publish.await_args_list}
        assert "pubsub:badge_earned" in channels
        assert "pubsub:level_up" in channels

    @pytest.mark.asyncio
    async def test_second_log_same_day(self, db_session, user, mock_redis, now):
        await log_practice(db_session, mock_redis, user.id, _request(), now=now)
        await log_practice(
            db_session, mock_redis, user.id,
            _request(question_title="Three Sum", difficulty="Medium", solved=False),
            now=now + timedelta(hours=1),
        )

        gam = await _gamification(db_session, user.id)
        assert gam.current_streak == 1
        assert gam.total_points == 245
        badges = await db_session.execute(
            select(func.count()).select_from(UserBadge).where(UserBadge.user_id == user.id)
        )
        assert badges.scalar_one() == 5

    @pytest.mark.asyncio
    async def test_streak_across_days(self, db_session, user, mock_redis, now):
        await log_practice(db_session, mock_redis, user.id, _request(), now=now)
        await log_practice(db_session, mock_redis, user.id, _request(), now=now + timedelta(days=1))
        gam = await _gamification(db_session, user.id)
        assert (gam.current_streak, gam.longest_streak) == (2, 2)

        await log_practice(db_session, mock_redis, user.id, _request(), now=now + timedelta(days=4))
        gam = await _gamification(db_session, user.id)
        assert (gam.current_streak, gam.longest_streak) == (1, 2)

    @pytest.mark.asyncio
    async def test_backdated_log_leaves_streak_alone(self, db_session, user, mock_redis, now):
        await log_practice(
            db_session, mock_redis, user.id,
            _request(practiced_at=now - timedelta(days=3)),
            now=now,
        )

        gam = await _gamification(db_session, user.id)
        assert gam.current_streak == 0
        assert gam.last_practice_date is None
        progress = await get_topic_progress(db_session, user.id, 1)
        assert progress["total_questions_attempted"] == 1
        assert progress["consistency_score"] == 14

    @pytest.mark.asyncio
    async def test_points_are_credited_once_per_log(self, db_session, user, mock_redis, now):
        payload = await log_practice(
            db_session, mock_redis, user.id, _request(difficulty="Hard"), now=now,
        )
        ledger = await db_session.execute(
            select(PointsLedger).where(PointsLedger.idempotency_key == f"practice:{payload['id']}")
        )
        entry = ledger.scalar_one()
        assert entry.amount == 30
        assert entry.source == "practice"

    @pytest.mark.asyncio
    async def test_unknown_topic_writes_nothing(self, db_session, user, mock_redis, now):
        with pytest.raises(NotFoundError):
            await log_practice(db_session, mock_redis, user.id, _request(topic_id=999), now=now)

        count = await db_session.execute(select(func.count()).select_from(PracticeLog))
        assert count.scalar_one() == 0

    @pytest.mark.asyncio
    async def test_side_effect_failure_keeps_the_log(self, db_session, user, mock_redis, now, monkeypatch):
        async def broken_streak(*args, **kwargs):
            raise RuntimeError("streak store unavailable")

        monkeypatch.setattr("preptrack.practice.service.update_streak", broken_streak)

        await log_practice(db_session, mock_redis, user.id, _request(), now=now)

        count = await db_session.execute(select(func.count()).select_from(PracticeLog))
        assert count.scalar_one() == 1
        assert (await get_topic_progress(db_session, user.id, 1))["strength_score"] == 47
        gam = await _gamification(db_session, user.id)
        assert gam.current_streak == 0
        assert gam.badges_earned == 5

    @pytest.mark.asyncio
    async def test_works_without_redis(self, db_session, user, now):
        await log_practice(db_session, None, user.id, _request(), now=now)
        assert (await _gamification(db_session, user.id)).total_points == 245

    @pytest.mark.asyncio
    async def test_offset_practiced_at_matches_later_recalculation(
        self, db_session, session_factory, user, mock_redis,
    ):
        now = datetime(2026, 10, 18, 0, 30, tzinfo=timezone.utc)
        # 21:00 UTC on 10-11: one day before the 10-12..10-18 window
        practiced_at = datetime(2026, 10, 12, 2, 0, tzinfo=timezone(timedelta(hours=5)))

        payload = await log_practice(
            db_session, mock_redis, user.id, _request(practiced_at=practiced_at), now=now,
        )
        assert payload["practiced_at"] == datetime(2026, 10, 11, 21, 0, tzinfo=timezone.utc)
        at_log_time = await get_topic_progress(db_session, user.id, 1)
        assert at_log_time["consistency_score"] == 0
        await db_session.commit()

        async with session_factory() as fresh:
            await recalculate(fresh, user.id, 1, now=now)
            await fresh.commit()
            recomputed = await get_topic_progress(fresh, user.id, 1)

        for key in ("consistency_score", "strength_score", "last_practiced_at"):
            assert at_log_time[key] == recomputed[key]


class TestReadPaths:
    @pytest.mark.asyncio
    async def test_history_newest_first(self, db_session, user, add_log, now):
        await add_log(user.id, 1, practiced_at=now - timedelta(days=1))
        await add_log(user.id, 2, practiced_at=now)
        await add_log(user.id, 1, practiced_at=now - timedelta(days=2))

        history = await get_practice_history(db_session, user.id)
        assert [h["practiced_at"] for h in history] == [
            now, now - timedelta(days=1), now - timedelta(days=2),
        ]
        assert history[0]["topic_name"] == "Strings"

    @pytest.mark.asyncio
    async def test_history_filter_and_paging(self, db_session, user, add_log, now):
        for day in range(5):
            await add_log(user.id, 1, practiced_at=now - timedelta(days=day))
        await add_log(user.id, 2)

        page = await get_practice_history(db_session, user.id, topic_id=1, limit=2, skip=1)
        assert len(page) == 2
        assert all(h["topic_id"] == 1 for h in page)
        assert page[0]["practiced_at"] == now - timedelta(days=1)

    @pytest.mark.asyncio
    async def test_topic_stats(self, db_session, user, add_log):
        await add_log(user.id, 1, "Easy", True, 10)
        await add_log(user.id, 1, "Hard", False, 25)

        stats = await get_practice_stats(db_session, user.id, topic_id=1)
        assert stats["total_questions"] == 2
        assert stats["questions_solved"] == 1
        assert stats["accuracy_percentage"] == 50
        assert stats["average_time_per_question"] == 18
        assert stats["difficulty_breakdown"]["hard"] == {"attempted": 1, "solved": 0}

    @pytest.mark.asyncio
    async def test_overall_stats(self, db_session, user, add_log):
        await add_log(user.id, 1, "Easy", True, 10)
        await add_log(user.id, 3, "Medium", True, 20)

        stats = await get_practice_stats(db_session, user.id)
        assert stats["total_topics"] == 15
        assert stats["topics_started"] == 2
        assert stats["overall_accuracy"] == 100
        assert {s["topic_id"] for s in stats["topic_stats"]} == {1, 3}
