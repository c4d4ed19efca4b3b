"""Gamification API endpoints: badges, points, level and streak."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from preptrack.auth.dependencies import get_current_user, get_optional_user
from preptrack.database import get_session
from preptrack.db.models import BadgeDefinition, User
from preptrack.gamification.badge_service import (
    get_badge_progress,
    get_user_badges,
    list_badges,
    load_user_stats,
)
from preptrack.gamification.levels import compute_level
from preptrack.gamification.points_service import get_or_create_gamification
from preptrack.gamification.schemas import (
    AllBadgesResponse,
    BadgeProgressResponse,
    BadgeResponse,
    EarnedBadgeResponse,
    GamificationSummaryResponse,
    LevelResponse,
    StreakResponse,
    UserBadgesResponse,
)

router = APIRouter(prefix="/api/v1", tags=["Gamification"])


@router.get("/badges", response_model=AllBadgesResponse)
async def get_badges(
    user: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
):
    """Badge catalog; earned flags are filled in for authenticated callers."""
    badges = await list_badges(db, user.id if user else None)
    return AllBadgesResponse(
        badges=[BadgeResponse(**b) for b in badges],
        total=len(badges),
    )


@router.get("/badges/my", response_model=UserBadgesResponse)
async def get_my_badges(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Current user's earned badges, newest first."""
    earned = await get_user_badges(db, user.id)
    total_available = await db.execute(select(func.count()).select_from(BadgeDefinition))

    return UserBadgesResponse(
        earned=[
            EarnedBadgeResponse(
                slug=ub.badge.slug,
                name=ub.badge.name,
                description=ub.badge.description,
                category=ub.badge.category,
                icon_url=ub.badge.icon_url,
                rarity=ub.badge.rarity,
                points=ub.badge.points,
                earned_at=ub.earned_at,
                progress=ub.progress,
            )
            for ub in earned
        ],
        total_available=total_available.scalar_one(),
        total_earned=len(earned),
    )


@router.get("/badges/{slug}/progress", response_model=BadgeProgressResponse)
async def get_my_badge_progress(
    slug: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Progress toward one badge (0-100)."""
    return BadgeProgressResponse(**await get_badge_progress(db, user.id, slug))


@router.get("/users/me/gamification", response_model=GamificationSummaryResponse)
async def get_my_gamification(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Points, level, streak, badge and question counts in one call."""
    gam = await get_or_create_gamification(db, user.id)
    await db.commit()
    total_badges = await db.execute(select(func.count()).select_from(BadgeDefinition))
    stats = await load_user_stats(db, user.id)

    return GamificationSummaryResponse(
        points=LevelResponse(total_points=gam.total_points, **compute_level(gam.total_points)),
        streak=StreakResponse(
            current_streak=gam.current_streak,
            longest_streak=gam.longest_streak,
            last_practice_date=gam.last_practice_date,
        ),
        badges={"earned": gam.badges_earned, "total": total_badges.scalar_one()},
        questions={"attempted": stats.total_logs, "solved": stats.total_solved},
    )
