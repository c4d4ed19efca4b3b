"""Leaderboard API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from preptrack.auth.dependencies import get_current_user
from preptrack.database import get_session
from preptrack.db.models import User
from preptrack.leaderboard.schemas import LeaderboardResponse, MyRankResponse
from preptrack.leaderboard.service import get_global, get_topic, get_user_rank

router = APIRouter(prefix="/api/v1/leaderboard", tags=["Leaderboard"])


@router.get("/global", response_model=LeaderboardResponse)
async def global_leaderboard(
    limit: int = Query(50, ge=1, le=100),
    skip: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_session),
):
    return await get_global(db, limit=limit, skip=skip)


@router.get("/topic/{topic_id}", response_model=LeaderboardResponse)
async def topic_leaderboard(
    topic_id: int,
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
):
    return await get_topic(db, topic_id, limit=limit)


@router.get("/my-rank", response_model=MyRankResponse)
async def my_rank(
    topic_id: int | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """The caller's topic entry when topic_id is given, otherwise the global one."""
    entry = await get_user_rank(db, user.id, topic_id=topic_id)
    return MyRankResponse(
        type="topic" if topic_id is not None else "global",
        topic_id=topic_id,
        entry=entry,
    )
