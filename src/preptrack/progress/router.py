"""Progress endpoints: per-topic summaries, overview, strengths and recalculation."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from preptrack.auth.dependencies import get_current_user
from preptrack.database import get_session
from preptrack.db.models import User
from preptrack.progress.schemas import (
    ProgressOverviewResponse,
    RecalculateRequest,
    RecalculateResponse,
    StrengthsWeaknessesResponse,
    TopicProgressResponse,
)
from preptrack.progress.service import (
    get_progress_overview,
    get_strengths_weaknesses,
    get_topic_progress,
    recalculate_many,
)

router = APIRouter(prefix="/api/v1/progress", tags=["Progress"])


@router.get("/overview", response_model=ProgressOverviewResponse)
async def overview(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return await get_progress_overview(db, user.id)


@router.get("/topic/{topic_id}", response_model=TopicProgressResponse)
async def topic_progress(
    topic_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Progress for one topic; zeroed when the topic is not started yet."""
    return await get_topic_progress(db, user.id, topic_id)


@router.get("/strengths-weaknesses", response_model=StrengthsWeaknessesResponse)
async def strengths_weaknesses(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return await get_strengths_weaknesses(db, user.id)


@router.post("/recalculate", response_model=RecalculateResponse)
async def recalculate(
    body: RecalculateRequest | None = Body(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Recalculate the listed topics, or every started topic."""
    topic_ids = body.topic_ids if body else None
    return await recalculate_many(db, user.id, topic_ids=topic_ids)
