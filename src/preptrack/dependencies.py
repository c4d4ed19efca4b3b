"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

from preptrack.redis_client import get_redis_optional


async def get_redis_dep() -> AsyncGenerator[object, None]:
    """Yield the Redis client for pub/sub, or None when Redis is not running.

    Gamification notifications are best-effort, so routes that publish
    them still work without Redis.
    """
    yield get_redis_optional()
