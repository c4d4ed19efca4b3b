"""Scheduled arq jobs: daily challenges, leaderboard refresh, retention.

Each job opens its own session from the factory initialised in ``startup``
and commits its own work.
"""

from __future__ import annotations

import logging

from preptrack.challenges.service import generate_for_all_active_users, purge_old_challenges
from preptrack.config import get_settings
from preptrack.database import close_db, get_session_factory, init_db
from preptrack.leaderboard.service import purge_expired_snapshots, refresh_all
from preptrack.redis_client import close_redis, init_redis

logger = logging.getLogger(__name__)


async def startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize the database engine and Redis pool on worker startup."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url, settings.redis_max_connections)
    ctx["session_factory"] = get_session_factory()
    logger.info("Scheduler worker started (environment=%s)", settings.environment)


async def shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    await close_db()
    await close_redis()
    logger.info("Scheduler worker shut down")


async def generate_daily_challenges(ctx: dict) -> int:  # type: ignore[type-arg]
    """Midnight UTC: create today's challenge for every recently active user."""
    async with ctx["session_factory"]() as db:
        return await generate_for_all_active_users(db)


async def refresh_leaderboards(ctx: dict) -> int:  # type: ignore[type-arg]
    """Rebuild the global and per-topic leaderboard snapshots."""
    async with ctx["session_factory"]() as db:
        return await refresh_all(db)


async def purge_expired(ctx: dict) -> dict[str, int]:  # type: ignore[type-arg]
    """Daily retention: old challenges and expired leaderboard snapshots."""
    async with ctx["session_factory"]() as db:
        challenges_deleted = await purge_old_challenges(db)
        snapshots_deleted = await purge_expired_snapshots(db)
        await db.commit()

    if challenges_deleted or snapshots_deleted:
        logger.info(
            "Purged %d challenges and %d leaderboard snapshots",
            challenges_deleted,
            snapshots_deleted,
        )
    return {"challenges": challenges_deleted, "snapshots": snapshots_deleted}
