"""Integration tests for progress recalculation and the progress read paths."""

from __future__ import annotations

from datetime import timedelta

import pytest
import pytest_asyncio
from sqlalchemy import delete, func, select

from preptrack.db.models import PracticeLog, TopicProgress
from preptrack.errors import NotFoundError
from preptrack.progress.service import (
    get_progress_overview,
    get_strengths_weaknesses,
    get_topic_progress,
    recalculate,
    recalculate_many,
)


@pytest_asyncio.fixture
async def user(make_user):
    return await make_user("ada")


class TestRecalculate:
    @pytest.mark.asyncio
    async def test_single_solved_easy_question(self, db_session, user, add_log, now):
        await add_log(user.id, topic_id=1, difficulty="Easy", solved=True, minutes=15)

        metrics = await recalculate(db_session, user.id, 1, now=now)
        await db_session.commit()

        assert metrics is not None
        assert metrics.strength_score == 47
        progress = await get_topic_progress(db_session, user.id, 1)
        assert progress["topic_name"] == "Arrays"
        assert progress["accuracy_percentage"] == 100
        assert progress["completion_percentage"] == 2
        assert progress["consistency_score"] == 14
        assert progress["strength_score"] == 47
        assert progress["difficulty_breakdown"]["easy"] == {"attempted": 1, "solved": 1}

    @pytest.mark.asyncio
    async def test_is_idempotent(self, db_session, user, add_log, now):
        await add_log(user.id, 1, "Medium", True, 20)
        await add_log(user.id, 1, "Hard", False, 45, practiced_at=now - timedelta(days=2))

        await recalculate(db_session, user.id, 1, now=now)
        await db_session.commit()
        first = await get_topic_progress(db_session, user.id, 1)

        await recalculate(db_session, user.id, 1, now=now)
        await db_session.commit()
        second = await get_topic_progress(db_session, user.id, 1)

        assert first == second
        count = await db_session.execute(select(func.count()).select_from(TopicProgress))
        assert count.scalar_one() == 1

    @pytest.mark.asyncio
    async def test_overwrites_previous_summary(self, db_session, user, add_log, now):
        await add_log(user.id, 1, "Easy", True)
        await recalculate(db_session, user.id, 1, now=now)
        await db_session.commit()

        await add_log(user.id, 1, "Easy", False)
        await recalculate(db_session, user.id, 1, now=now)
        await db_session.commit()

        progress = await get_topic_progress(db_session, user.id, 1)
        assert progress["total_questions_attempted"] == 2
        assert progress["accuracy_percentage"] == 50

    @pytest.mark.asyncio
    async def test_zero_logs_deletes_summary(self, db_session, user, add_log, now):
        await add_log(user.id, 2, "Easy", True)
        await recalculate(db_session, user.id, 2, now=now)
        await db_session.commit()

        await db_session.execute(delete(PracticeLog).where(PracticeLog.user_id == user.id))
        await db_session.commit()

        assert await recalculate(db_session, user.id, 2, now=now) is None
        await db_session.commit()
        rows = await db_session.execute(select(TopicProgress).where(TopicProgress.user_id == user.id))
        assert rows.scalars().all() == []

    @pytest.mark.asyncio
    async def test_unknown_topic(self, db_session, user, now):
        with pytest.raises(NotFoundError):
            await recalculate(db_session, user.id, 999, now=now)

    @pytest.mark.asyncio
    async def test_recalculate_many_defaults_to_started_topics(self, db_session, user, add_log, now):
        for topic_id in (1, 3, 5):
            await add_log(user.id, topic_id, "Easy", True)
            await recalculate(db_session, user.id, topic_id, now=now)
        await db_session.commit()

        result = await recalculate_many(db_session, user.id, now=now)
        assert result["topics_recalculated"] == 3

    @pytest.mark.asyncio
    async def test_recalculate_many_explicit_topics(self, db_session, user, add_log, now):
        await add_log(user.id, 4, "Hard", True)
        result = await recalculate_many(db_session, user.id, topic_ids=[4, 4, 6], now=now)

        assert result["topics_recalculated"] == 2
        assert (await get_topic_progress(db_session, user.id, 4))["questions_solved"] == 1
        assert (await get_topic_progress(db_session, user.id, 6))["questions_solved"] == 0


class TestReadPaths:
    @pytest.mark.asyncio
    async def test_unstarted_topic_is_zeroed(self, db_session, user):
        progress = await get_topic_progress(db_session, user.id, 9)
        assert progress["topic_name"] == "Hashing"
        assert progress["strength_score"] == 0
        assert progress["recommended_questions"] == 20
        assert progress["last_practiced_at"] is None

    @pytest.mark.asyncio
    async def test_overview(self, db_session, user, add_progress):
        await add_progress(user.id, 1, strength=30, solved=4)
        await add_progress(user.id, 2, strength=70, solved=6)

        overview = await get_progress_overview(db_session, user.id)

        assert overview["total_topics"] == 15
        assert overview["topics_started"] == 2
        assert overview["topics_not_started"] == 13
        assert overview["average_strength_score"] == 50
        assert overview["total_questions_solved"] == 10
        assert [p["topic_id"] for p in overview["topic_progress"]] == [2, 1]

    @pytest.mark.asyncio
    async def test_overview_for_new_user(self, db_session, user):
        overview = await get_progress_overview(db_session, user.id)
        assert overview["topics_started"] == 0
        assert overview["average_strength_score"] == 0
        assert overview["overall_accuracy_percentage"] == 0

    @pytest.mark.asyncio
    async def test_strengths_and_weaknesses_disjoint(self, db_session, user, add_progress):
        for topic_id in range(1, 11):
            await add_progress(user.id, topic_id, strength=topic_id * 9)

        result = await get_strengths_weaknesses(db_session, user.id)

        strengths = [p["topic_id"] for p in result["strengths"]]
        weaknesses = [p["topic_id"] for p in result["weaknesses"]]
        assert strengths == [10, 9, 8, 7, 6]
        assert weaknesses == [1, 2, 3, 4, 5]
        assert not set(strengths) & set(weaknesses)

    @pytest.mark.asyncio
    async def test_strengths_and_weaknesses_empty(self, db_session, user):
        assert await get_strengths_weaknesses(db_session, user.id) == {"strengths": [], "weaknesses": []}
