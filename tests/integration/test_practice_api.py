"""API tests for topics and practice logging."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from preptrack.db.models import User
from preptrack.practice.seed import TOPIC_SEED_DATA

LOG = {
    "topic_id": 1,
    "question_title": "  Two Sum  ",
    "question_url": "https://leetcode.com/problems/two-sum/",
    "difficulty": "Easy",
    "time_spent_minutes": 15,
    "solved": True,
}


class TestTopicsEndpoints:
    @pytest.mark.asyncio
    async def test_topics_grouped_by_category(self, client: AsyncClient):
        response = await client.get("/api/v1/topics")
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == len(TOPIC_SEED_DATA)
        assert set(data["categories"]) == {"DSA", "System Design", "Aptitude"}
        assert len(data["categories"]["System Design"]) == 2

    @pytest.mark.asyncio
    async def test_topic_detail(self, client: AsyncClient):
        response = await client.get("/api/v1/topics/1")
        assert response.status_code == 200
        assert response.json()["name"] == "Arrays"

    @pytest.mark.asyncio
    async def test_topic_not_found(self, client: AsyncClient):
        response = await client.get("/api/v1/topics/999")
        assert response.status_code == 404
        assert response.json() == {"detail": "Topic not found"}


class TestLogPractice:
    @pytest.mark.asyncio
    async def test_requires_auth(self, client: AsyncClient):
        response = await client.post("/api/v1/practice", json=LOG)
        assert response.status_code in (401, 403)

    @pytest.mark.asyncio
    async def test_rejects_bad_token(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/practice", json=LOG, headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_rejects_token_for_unknown_user(self, client: AsyncClient, auth_headers):
        ghost = User(id=4242, email="ghost@example.com", full_name="Ghost")
        response = await client.post("/api/v1/practice", json=LOG, headers=auth_headers(ghost))
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_log_practice(self, authed_client: AsyncClient, current_user):
        response = await authed_client.post("/api/v1/practice", json=LOG)
        assert response.status_code == 201
        data = response.json()
        assert data["user_id"] == current_user.id
        assert data["topic_name"] == "Arrays"
        assert data["question_title"] == "Two Sum"

        progress = await authed_client.get("/api/v1/progress/topic/1")
        assert progress.json()["strength_score"] == 47

        summary = await authed_client.get("/api/v1/users/me/gamification")
        assert summary.json()["streak"]["current_streak"] == 1
        assert summary.json()["points"]["total_points"] == 245

    @pytest.mark.asyncio
    async def test_unknown_topic(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/practice", json={**LOG, "topic_id": 999})
        assert response.status_code == 404

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides",
        [
            {"difficulty": "Impossible"},
            {"time_spent_minutes": 0},
            {"time_spent_minutes": 301},
            {"question_title": "   "},
            {"question_url": "ftp://example.com/q"},
            {"notes": "x" * 501},
        ],
    )
    async def test_validation(self, authed_client: AsyncClient, overrides):
        response = await authed_client.post("/api/v1/practice", json={**LOG, **overrides})
        assert response.status_code == 422
        body = response.json()
        assert body["detail"] == "Validation error"
        assert body["errors"]

    @pytest.mark.asyncio
    async def test_empty_url_is_accepted(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/practice", json={**LOG, "question_url": ""})
        assert response.status_code == 201
        assert response.json()["question_url"] is None


class TestHistoryAndStats:
    @pytest.mark.asyncio
    async def test_history(self, authed_client: AsyncClient):
        for topic_id in (1, 2, 1):
            await authed_client.post("/api/v1/practice", json={**LOG, "topic_id": topic_id})

        response = await authed_client.get("/api/v1/practice/history", params={"topic_id": 1, "limit": 5})
        assert response.status_code == 200
        data = response.json()
        assert data["limit"] == 5
        assert len(data["logs"]) == 2
        assert all(log["topic_id"] == 1 for log in data["logs"])

    @pytest.mark.asyncio
    async def test_history_limit_bounds(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/practice/history", params={"limit": 0})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_overall_stats(self, authed_client: AsyncClient):
        await authed_client.post("/api/v1/practice", json=LOG)
        await authed_client.post("/api/v1/practice", json={**LOG, "solved": False, "topic_id": 3})

        response = await authed_client.get("/api/v1/practice/stats")
        data = response.json()
        assert data["topics_started"] == 2
        assert data["overall_accuracy"] == 50

    @pytest.mark.asyncio
    async def test_topic_stats(self, authed_client: AsyncClient):
        await authed_client.post("/api/v1/practice", json=LOG)

        response = await authed_client.get("/api/v1/practice/stats", params={"topic_id": 1})
        data = response.json()
        assert data["topic_name"] == "Arrays"
        assert data["difficulty_breakdown"]["easy"] == {"attempted": 1, "solved": 1}
