"""Integration tests for recommendation generation and caching."""

from __future__ import annotations

from datetime import timedelta

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from preptrack.db.models import Recommendation
from preptrack.recommendations import service


@pytest_asyncio.fixture
async def user(make_user):
    return await make_user("ada")


class TestGenerate:
    @pytest.mark.asyncio
    async def test_new_user(self, db_session, user, now):
        rec = await service.generate(db_session, user.id, now=now)

        assert rec["weak_area_focus"] == []
        assert rec["confidence_score"] == 50
        assert rec["practice_patterns"]["average_session_minutes"] == 30
        # the only pick is the first unstarted topic by name
        assert [(r["topic_name"], r["priority"]) for r in rec["recommended_topics"]] == [("Arrays", "low")]
        assert len(rec["study_plan"]) == 7
        assert rec["expires_at"] == now + timedelta(days=7)

    @pytest.mark.asyncio
    async def test_weak_and_inconsistent_topics(self, db_session, user, add_progress, add_log, now):
        await add_progress(user.id, 6, accuracy=40)
        await add_progress(user.id, 7, accuracy=80, consistency=14)
        await add_log(user.id, 6, "Hard", False, 40, practiced_at=now - timedelta(days=1))
        await add_log(user.id, 7, "Hard", True, 20, practiced_at=now - timedelta(days=2))

        rec = await service.generate(db_session, user.id, now=now)

        assert rec["weak_area_focus"][0]["topic_id"] == 6
        assert rec["weak_area_focus"][0]["suggested_practice_count"] == 70
        priorities = {r["topic_id"]: r["priority"] for r in rec["recommended_topics"]}
        assert priorities[6] == "high"
        assert priorities[7] == "medium"
        assert rec["practice_patterns"]["preferred_difficulty"] == "Hard"
        assert rec["practice_patterns"]["average_session_minutes"] == 30
        assert rec["confidence_score"] == 70
        assert rec["study_plan"][0] == {
            "day": "Monday",
            "topic_ids": [6],
            "topic_names": ["Graphs"],
            "duration_minutes": 30,
            "focus": "Weak areas",
        }

    @pytest.mark.asyncio
    async def test_old_logs_are_ignored(self, db_session, user, add_log, now):
        await add_log(user.id, 1, "Hard", True, 60, practiced_at=now - timedelta(days=45))
        rec = await service.generate(db_session, user.id, now=now)
        assert rec["practice_patterns"]["sessions_per_week"] == 0.0


class TestGet:
    @pytest.mark.asyncio
    async def test_reuses_active_recommendation(self, db_session, user, now):
        first = await service.get(db_session, user.id, now=now)
        second = await service.get(db_session, user.id, now=now + timedelta(days=3))
        assert first["id"] == second["id"]

    @pytest.mark.asyncio
    async def test_regenerates_after_expiry(self, db_session, user, now):
        first = await service.get(db_session, user.id, now=now)
        later = await service.get(db_session, user.id, now=now + timedelta(days=8))
        assert later["id"] != first["id"]

        active = await db_session.execute(
            select(func.count()).select_from(Recommendation).where(
                Recommendation.user_id == user.id, Recommendation.is_active.is_(True),
            )
        )
        assert active.scalar_one() == 1

    @pytest.mark.asyncio
    async def test_refresh_deactivates_previous(self, db_session, user, now):
        first = await service.generate(db_session, user.id, now=now)
        second = await service.generate(db_session, user.id, now=now)

        rows = await db_session.execute(
            select(Recommendation.id, Recommendation.is_active)
            .where(Recommendation.user_id == user.id)
            .order_by(Recommendation.id)
        )
        assert rows.all() == [(first["id"], False), (second["id"], True)]
