"""Leaderboards cached as expiring snapshots.

Reads serve a non-expired snapshot when one exists and otherwise recompute
it synchronously. A per-scope asyncio.Lock keeps concurrent cache misses in
one process from recomputing the same scope twice.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from preptrack.config import get_settings
from preptrack.db.base import dialect_insert
from preptrack.db.models import LeaderboardSnapshot, Topic, TopicProgress, User, UserGamification
from preptrack.progress.service import get_topic_or_404

logger = logging.getLogger(__name__)

GLOBAL_SCOPE_KEY = "global"

_locks: dict[str, asyncio.Lock] = {}


def topic_scope_key(topic_id: int) -> str:
    return f"topic:{topic_id}"


def _lock_for(scope_key: str) -> asyncio.Lock:
    lock = _locks.get(scope_key)
    if lock is None:
        lock = _locks[scope_key] = asyncio.Lock()
    return lock


def _assign_ranks(entries: list[dict]) -> list[dict]:
    for index, entry in enumerate(entries):
        entry["rank"] = index + 1
    return entries


async def compute_global_rankings(db: AsyncSession) -> list[dict]:
    """Every user by total points desc, then questions solved desc, then user id."""
    solved = (
        select(
            TopicProgress.user_id.label("user_id"),
            func.sum(TopicProgress.questions_solved).label("solved"),
        )
        .group_by(TopicProgress.user_id)
        .subquery()
    )
    result = await db.execute(
        select(
            User.id,
            User.full_name,
            UserGamification.total_points,
            UserGamification.current_streak,
            UserGamification.badges_earned,
            solved.c.solved,
        )
        .outerjoin(UserGamification, UserGamification.user_id == User.id)
        .outerjoin(solved, solved.c.user_id == User.id)
    )

    entries = [
        {
            "user_id": user_id,
            "user_name": full_name,
            "rank": 0,
            "score": points or 0,
            "questions_solved": int(total_solved or 0),
            "streak": streak or 0,
            "badges": badges or 0,
        }
        for user_id, full_name, points, streak, badges, total_solved in result.all()
    ]
    entries.sort(key=lambda e: (-e["score"], -e["questions_solved"], e["user_id"]))
    return _assign_ranks(entries)


async def compute_topic_rankings(db: AsyncSession, topic_id: int) -> list[dict]:
    """Users with progress in the topic by strength desc, then solved desc, then user id."""
    result = await db.execute(
        select(
            User.id,
            User.full_name,
            TopicProgress.strength_score,
            TopicProgress.questions_solved,
            UserGamification.current_streak,
            UserGamification.badges_earned,
        )
        .join(User, User.id == TopicProgress.user_id)
        .outerjoin(UserGamification, UserGamification.user_id == User.id)
        .where(TopicProgress.topic_id == topic_id)
    )

    entries = [
        {
            "user_id": user_id,
            "user_name": full_name,
            "rank": 0,
            "score": strength,
            "questions_solved": questions_solved,
            "streak": streak or 0,
            "badges": badges or 0,
        }
        for user_id, full_name, strength, questions_solved, streak, badges in result.all()
    ]
    entries.sort(key=lambda e: (-e["score"], -e["questions_solved"], e["user_id"]))
    return _assign_ranks(entries)


async def _fresh_snapshot(
    db: AsyncSession, scope_key: str, now: datetime,
) -> LeaderboardSnapshot | None:
    result = await db.execute(
        select(LeaderboardSnapshot)
        .where(
            LeaderboardSnapshot.scope_key == scope_key,
            LeaderboardSnapshot.expires_at > now,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _store_snapshot(
    db: AsyncSession,
    scope_key: str,
    scope: str,
    topic_id: int | None,
    rankings: list[dict],
    now: datetime,
) -> LeaderboardSnapshot:
    settings = get_settings()
    values = {
        "scope": scope,
        "topic_id": topic_id,
        "rankings": rankings,
        "last_updated": now,
        "expires_at": now + timedelta(minutes=settings.leaderboard_cache_ttl_minutes),
    }
    stmt = dialect_insert(db, LeaderboardSnapshot).values(scope_key=scope_key, **values)
    stmt = stmt.on_conflict_do_update(index_elements=["scope_key"], set_=values)
    await db.execute(stmt)
    await db.commit()

    result = await db.execute(
        select(LeaderboardSnapshot)
        .where(LeaderboardSnapshot.scope_key == scope_key)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def _get_or_build(
    db: AsyncSession,
    scope_key: str,
    scope: str,
    topic_id: int | None,
    compute: Callable[[], Awaitable[list[dict]]],
    now: datetime,
) -> LeaderboardSnapshot:
    snapshot = await _fresh_snapshot(db, scope_key, now)
    if snapshot is not None:
        return snapshot

    async with _lock_for(scope_key):
        # Another request may have rebuilt it while we waited
        snapshot = await _fresh_snapshot(db, scope_key, now)
        if snapshot is not None:
            return snapshot
        rankings = await compute()
        logger.debug("Rebuilt leaderboard %s (%d entries)", scope_key, len(rankings))
        return await _store_snapshot(db, scope_key, scope, topic_id, rankings, now)


async def get_global(
    db: AsyncSession, limit: int = 50, skip: int = 0, now: datetime | None = None,
) -> dict:
    """A page of the global leaderboard."""
    if now is None:
        now = datetime.now(timezone.utc)
    snapshot = await _get_or_build(
        db, GLOBAL_SCOPE_KEY, "global", None,
        lambda: compute_global_rankings(db), now,
    )
    return {
        "type": "global",
        "topic_id": None,
        "topic_name": None,
        "rankings": snapshot.rankings[skip:skip + limit],
        "last_updated": snapshot.last_updated,
    }


async def get_topic(
    db: AsyncSession, topic_id: int, limit: int = 50, now: datetime | None = None,
) -> dict:
    """The top ``limit`` entries of one topic's leaderboard."""
    if now is None:
        now = datetime.now(timezone.utc)
    topic = await get_topic_or_404(db, topic_id)
    snapshot = await _get_or_build(
        db, topic_scope_key(topic_id), "topic", topic_id,
        lambda: compute_topic_rankings(db, topic_id), now,
    )
    return {
        "type": "topic",
        "topic_id": topic.id,
        "topic_name": topic.name,
        "rankings": snapshot.rankings[:limit],
        "last_updated": snapshot.last_updated,
    }


async def get_user_rank(
    db: AsyncSession,
    user_id: int,
    topic_id: int | None = None,
    now: datetime | None = None,
) -> dict | None:
    """The user's entry in the topic leaderboard, or the global one when no topic is given."""
    if now is None:
        now = datetime.now(timezone.utc)

    if topic_id is None:
        snapshot = await _get_or_build(
            db, GLOBAL_SCOPE_KEY, "global", None,
            lambda: compute_global_rankings(db), now,
        )
    else:
        await get_topic_or_404(db, topic_id)
        snapshot = await _get_or_build(
            db, topic_scope_key(topic_id), "topic", topic_id,
            lambda: compute_topic_rankings(db, topic_id), now,
        )

    return next((e for e in snapshot.rankings if e["user_id"] == user_id), None)


async def refresh_all(db: AsyncSession, now: datetime | None = None) -> int:
    """Recompute and store the global and every topic leaderboard. Returns snapshots written."""
    if now is None:
        now = datetime.now(timezone.utc)

    refreshed = 0
    try:
        async with _lock_for(GLOBAL_SCOPE_KEY):
            rankings = await compute_global_rankings(db)
            await _store_snapshot(db, GLOBAL_SCOPE_KEY, "global", None, rankings, now)
        refreshed += 1
    except Exception:
        logger.exception("Failed to refresh leaderboard %s", GLOBAL_SCOPE_KEY)
        await db.rollback()

    topic_ids = (await db.execute(select(Topic.id).order_by(Topic.id))).scalars().all()
    for topic_id in topic_ids:
        scope_key = topic_scope_key(topic_id)
        try:
            async with _lock_for(scope_key):
                rankings = await compute_topic_rankings(db, topic_id)
                await _store_snapshot(db, scope_key, "topic", topic_id, rankings, now)
            refreshed += 1
        except Exception:
            logger.exception("Failed to refresh leaderboard %s", scope_key)
            await db.rollback()

    logger.info("Refreshed %d leaderboards", refreshed)
    return refreshed


async def purge_expired_snapshots(db: AsyncSession, now: datetime | None = None) -> int:
    if now is None:
        now = datetime.now(timezone.utc)
    result = await db.execute(delete(LeaderboardSnapshot).where(LeaderboardSnapshot.expires_at <= now))
    return result.rowcount or 0
