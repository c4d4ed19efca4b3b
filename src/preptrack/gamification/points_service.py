"""Points grant service with idempotency and level-up detection."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from preptrack.db.base import dialect_insert
from preptrack.db.models import PointsLedger, UserGamification
from preptrack.gamification.levels import POINTS_PER_LEVEL
from preptrack.notifications import CHANNEL_LEVEL_UP, publish_event

logger = logging.getLogger(__name__)

# Points for a solved practice question, by question difficulty
PRACTICE_POINTS: dict[str, int] = {"Easy": 10, "Medium": 20, "Hard": 30}


async def get_or_create_gamification(db: AsyncSession, user_id: int) -> UserGamification:
    """Get or create the denormalized gamification row for a user."""
    stmt = (
        dialect_insert(db, UserGamification)
        .values(user_id=user_id, updated_at=datetime.now(timezone.utc))
        .on_conflict_do_nothing(index_elements=["user_id"])
    )
    await db.execute(stmt)
    result = await db.execute(
        select(UserGamification)
        .where(UserGamification.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def grant_points(
    db: AsyncSession,
    redis: object,
    user_id: int,
    amount: int,
    source: str,
    source_id: str,
    description: str,
    idempotency_key: str,
) -> bool:
    """Credit points to a user. Returns True if granted, False if duplicate.

    1. Insert into points_ledger (UNIQUE idempotency_key; a duplicate is a no-op)
    2. Atomically increment user_gamification.total_points
    3. Recompute level = total_points // 100 + 1 in the same UPDATE
    4. If the level changed, publish a level_up event
    """
    now = datetime.now(timezone.utc)

    inserted = await db.execute(
        dialect_insert(db, PointsLedger)
        .values(
            user_id=user_id,
            amount=amount,
            source=source,
            source_id=source_id,
            description=description,
            idempotency_key=idempotency_key,
            created_at=now,
        )
        .on_conflict_do_nothing(index_elements=["idempotency_key"])
        .returning(PointsLedger.id)
    )
    if inserted.scalar_one_or_none() is None:
        return False

    gam = await get_or_create_gamification(db, user_id)
    old_level = gam.level

    new_total = UserGamification.total_points + amount
    await db.execute(
        update(UserGamification)
        .where(UserGamification.user_id == user_id)
        .values(
            total_points=new_total,
            level=new_total // POINTS_PER_LEVEL + 1,
            updated_at=now,
        )
        .execution_options(synchronize_session="fetch")
    )
    await db.flush()
    await db.refresh(gam)

    if gam.level > old_level:
        await publish_event(redis, CHANNEL_LEVEL_UP, {
            "user_id": user_id,
            "old_level": old_level,
            "new_level": gam.level,
            "total_points": gam.total_points,
        })

    return True


async def award_practice_points(
    db: AsyncSession,
    redis: object,
    user_id: int,
    log_id: int,
    difficulty: str,
    solved: bool,
) -> int:
    """Credit the per-question reward for a solved practice log. Returns points granted."""
    points = PRACTICE_POINTS.get(difficulty, 0) if solved else 0
    if points == 0:
        return 0

    granted = await grant_points(
        db,
        redis,
        user_id,
        points,
        "practice",
        str(log_id),
        f"Solved a {difficulty} question",
        f"practice:{log_id}",
    )
    return points if granted else 0
