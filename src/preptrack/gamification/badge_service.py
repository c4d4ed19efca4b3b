"""Badge evaluation and award service with duplicate prevention and notification."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from preptrack.db.base import dialect_insert
from preptrack.db.models import BadgeDefinition, PracticeLog, TopicProgress, UserBadge, UserGamification
from preptrack.errors import NotFoundError
from preptrack.gamification.criteria import UserStats, criterion_from_badge, is_met, progress_percent
from preptrack.gamification.points_service import get_or_create_gamification, grant_points
from preptrack.notifications import CHANNEL_BADGE_EARNED, publish_event

logger = logging.getLogger(__name__)

RARITY_ORDER: dict[str, int] = {"common": 0, "rare": 1, "epic": 2, "legendary": 3}


async def get_badge_by_slug(db: AsyncSession, slug: str) -> BadgeDefinition:
    """Fetch a badge definition by slug or raise NotFoundError."""
    result = await db.execute(
        select(BadgeDefinition).where(BadgeDefinition.slug == slug)
    )
    badge = result.scalar_one_or_none()
    if badge is None:
        raise NotFoundError("Badge", slug)
    return badge


async def load_user_stats(db: AsyncSession, user_id: int) -> UserStats:
    """Snapshot of the live numbers badge criteria are measured against."""
    counts = await db.execute(
        select(
            func.count(PracticeLog.id),
            func.coalesce(func.sum(case((PracticeLog.solved.is_(True), 1), else_=0)), 0),
        ).where(PracticeLog.user_id == user_id)
    )
    total_logs, total_solved = counts.one()

    accuracy_rows = await db.execute(
        select(TopicProgress.topic_id, TopicProgress.accuracy_percentage)
        .where(TopicProgress.user_id == user_id)
    )

    gam = await get_or_create_gamification(db, user_id)
    return UserStats(
        total_solved=total_solved or 0,
        total_logs=total_logs or 0,
        current_streak=gam.current_streak,
        topic_accuracy={topic_id: acc for topic_id, acc in accuracy_rows.all()},
    )


async def _earned_badge_ids(db: AsyncSession, user_id: int) -> set[int]:
    result = await db.execute(
        select(UserBadge.badge_id).where(UserBadge.user_id == user_id)
    )
    return set(result.scalars().all())


async def award_badge(
    db: AsyncSession,
    redis: object,
    user_id: int,
    badge: BadgeDefinition,
) -> bool:
    """Award a badge to a user.

    Returns True if awarded, False if already earned.
    Handles:
    1. Insert into user_badges (UNIQUE(user_id, badge_id); losers of a race insert nothing)
    2. Increment user_gamification.badges_earned
    3. Grant badge points (idempotent via idempotency_key)
    4. Publish badge_earned
    """
    now = datetime.now(timezone.utc)

    inserted = await db.execute(
        dialect_insert(db, UserBadge)
        .values(user_id=user_id, badge_id=badge.id, earned_at=now, progress=100)
        .on_conflict_do_nothing(index_elements=["user_id", "badge_id"])
        .returning(UserBadge.id)
    )
    if inserted.scalar_one_or_none() is None:
        return False

    await get_or_create_gamification(db, user_id)
    await db.execute(
        update(UserGamification)
        .where(UserGamification.user_id == user_id)
        .values(badges_earned=UserGamification.badges_earned + 1, updated_at=now)
        .execution_options(synchronize_session="fetch")
    )

    await grant_points(
        db=db,
        redis=redis,
        user_id=user_id,
        amount=badge.points,
        source="badge",
        source_id=badge.slug,
        description=f'Earned badge: "{badge.name}"',
        idempotency_key=f"badge:{badge.slug}:{user_id}",
    )

    await publish_event(redis, CHANNEL_BADGE_EARNED, {
        "user_id": user_id,
        "badge_slug": badge.slug,
        "badge_name": badge.name,
        "rarity": badge.rarity,
        "points": badge.points,
    })
    return True


async def check_and_award(db: AsyncSession, redis: object, user_id: int) -> list[str]:
    """Evaluate every unearned badge and award the ones whose criterion is met.

    Returns the slugs awarded. Flushes, does not commit.
    """
    result = await db.execute(
        select(BadgeDefinition).order_by(BadgeDefinition.sort_order, BadgeDefinition.id)
    )
    badges = result.scalars().all()
    earned = await _earned_badge_ids(db, user_id)
    candidates = [b for b in badges if b.id not in earned]
    if not candidates:
        return []

    stats = await load_user_stats(db, user_id)
    awarded: list[str] = []
    for badge in candidates:
        try:
            criterion = criterion_from_badge(badge)
        except ValueError:
            logger.warning("Skipping badge %s with unknown criteria", badge.slug)
            continue
        if is_met(criterion, stats) and await award_badge(db, redis, user_id, badge):
            awarded.append(badge.slug)

    await db.flush()
    if awarded:
        logger.info("User %d earned badges: %s", user_id, ", ".join(awarded))
    return awarded


async def get_badge_progress(db: AsyncSession, user_id: int, slug: str) -> dict:
    """Percent progress toward one badge; 100 once earned."""
    badge = await get_badge_by_slug(db, slug)
    stats = await load_user_stats(db, user_id)
    earned = badge.id in await _earned_badge_ids(db, user_id)
    return {
        "badge_slug": badge.slug,
        "badge_name": badge.name,
        "criteria_type": badge.criteria_type,
        "threshold": badge.criteria_value,
        "earned": earned,
        "progress": 100 if earned else progress_percent(criterion_from_badge(badge), stats),
    }


async def list_badges(db: AsyncSession, user_id: int | None = None) -> list[dict]:
    """Badge catalog ordered by rarity then points, with earned flags for ``user_id``."""
    result = await db.execute(select(BadgeDefinition))
    badges = sorted(
        result.scalars().all(),
        key=lambda b: (RARITY_ORDER.get(b.rarity, len(RARITY_ORDER)), b.points, b.sort_order),
    )

    earned_at: dict[int, datetime] = {}
    if user_id is not None:
        rows = await db.execute(
            select(UserBadge.badge_id, UserBadge.earned_at).where(UserBadge.user_id == user_id)
        )
        earned_at = dict(rows.all())

    return [
        {
            "slug": b.slug,
            "name": b.name,
            "description": b.description,
            "category": b.category,
            "criteria_type": b.criteria_type,
            "criteria_value": b.criteria_value,
            "icon_url": b.icon_url,
            "rarity": b.rarity,
            "points": b.points,
            "earned": b.id in earned_at,
            "earned_at": earned_at.get(b.id),
        }
        for b in badges
    ]


async def get_user_badges(db: AsyncSession, user_id: int) -> list[UserBadge]:
    """Badges the user holds, newest first."""
    result = await db.execute(
        select(UserBadge)
        .where(UserBadge.user_id == user_id)
        .order_by(UserBadge.earned_at.desc(), UserBadge.id.desc())
    )
    return list(result.scalars().unique().all())
