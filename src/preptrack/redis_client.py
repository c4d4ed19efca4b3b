"""Optional Redis client.

Redis carries pub/sub notifications and rate-limit counters only. Nothing
here is required for correctness: with no client every caller degrades
to a no-op.
"""

import logging

import redis.asyncio as redis

logger = logging.getLogger(__name__)

_client: redis.Redis | None = None


async def init_redis(url: str, max_connections: int = 50) -> redis.Redis | None:
    """Create the shared client. An empty URL leaves Redis disabled."""
    global _client  # noqa: PLW0603
    if not url:
        logger.info("Redis disabled: no URL configured")
        _client = None
        return None
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=max_connections,
    )
    return _client


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis_optional() -> redis.Redis | None:
    """The shared client, or None when Redis is disabled or not yet initialised."""
    return _client
