"""Tests for request ids, rate limiting, CORS and error handling."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError


def _redis_counting(count: int) -> MagicMock:
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[count, True])
    redis = MagicMock()
    redis.pipeline.return_value = pipe
    return redis


class TestRequestId:
    @pytest.mark.asyncio
    async def test_generated(self, client: AsyncClient) -> None:
        response = await client.get("/health")
        assert len(response.headers["X-Request-Id"]) == 32

    @pytest.mark.asyncio
    async def test_echoed(self, client: AsyncClient) -> None:
        response = await client.get("/health", headers={"X-Request-Id": "trace-123"})
        assert response.headers["X-Request-Id"] == "trace-123"


class TestRateLimit:
    @pytest.mark.asyncio
    async def test_passes_through_without_redis(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/topics")
        assert response.status_code == 200
        assert "X-RateLimit-Limit" not in response.headers

    @pytest.mark.asyncio
    async def test_headers_under_limit(self, client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("preptrack.middleware.rate_limit.get_redis_optional", lambda: _redis_counting(3))

        response = await client.get("/api/v1/topics")
        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == "100"
        assert response.headers["X-RateLimit-Remaining"] == "97"

    @pytest.mark.asyncio
    async def test_over_limit(self, client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("preptrack.middleware.rate_limit.get_redis_optional", lambda: _redis_counting(101))

        response = await client.get("/api/v1/topics")
        assert response.status_code == 429
        assert response.headers["Retry-After"] == "60"
        assert response.headers["X-RateLimit-Remaining"] == "0"

    @pytest.mark.asyncio
    async def test_probes_exempt(self, client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("preptrack.middleware.rate_limit.get_redis_optional", lambda: _redis_counting(500))

        response = await client.get("/health")
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_redis_error_fails_open(self, client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
        redis = _redis_counting(0)
        redis.pipeline.return_value.execute = AsyncMock(side_effect=RedisConnectionError("down"))
        monkeypatch.setattr("preptrack.middleware.rate_limit.get_redis_optional", lambda: redis)

        response = await client.get("/api/v1/topics")
        assert response.status_code == 200


class TestCors:
    @pytest.mark.asyncio
    async def test_preflight(self, client: AsyncClient) -> None:
        response = await client.options(
            "/api/v1/practice",
            headers={
                "Origin": "http://localhost:3000",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Authorization, Content-Type",
            },
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


class TestErrorHandlers:
    @pytest.mark.asyncio
    async def test_unknown_route(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/nope")
        assert response.status_code == 404
        assert response.json() == {"detail": "Not Found"}

    @pytest.mark.asyncio
    async def test_not_found_error(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/topics/12345")
        assert response.status_code == 404
        assert response.json() == {"detail": "Topic not found"}

    @pytest.mark.asyncio
    async def test_validation_error_shape(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/leaderboard/global", params={"limit": "many"})
        assert response.status_code == 422
        body = response.json()
        assert body["detail"] == "Validation error"
        assert body["errors"][0]["loc"] == ["query", "limit"]
