"""Daily challenge API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from preptrack.auth.dependencies import get_current_user
from preptrack.challenges.schemas import DailyChallengeResponse
from preptrack.challenges.service import complete_challenge, get_challenge_history, get_today_challenge
from preptrack.database import get_session
from preptrack.db.models import User
from preptrack.dependencies import get_redis_dep

router = APIRouter(prefix="/api/v1/challenges", tags=["Challenges"])


@router.get("/today", response_model=DailyChallengeResponse)
async def today(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Today's challenge, generated on first request."""
    challenge = await get_today_challenge(db, user.id)
    if challenge is None:
        raise HTTPException(status_code=404, detail="No topics available for a challenge")
    return challenge


@router.post("/today/complete", response_model=DailyChallengeResponse)
async def complete_today(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Mark today's challenge complete if every task is done; the reward is credited once."""
    return await complete_challenge(db, redis, user.id)


@router.get("/history", response_model=list[DailyChallengeResponse])
async def history(
    limit: int = Query(7, ge=1, le=30),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return await get_challenge_history(db, user.id, limit=limit)
