"""Topic catalog and practice logging endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from preptrack.auth.dependencies import get_current_user
from preptrack.database import get_session
from preptrack.db.models import User
from preptrack.dependencies import get_redis_dep
from preptrack.practice.schemas import (
    LogPracticeRequest,
    OverallStatsResponse,
    PracticeHistoryResponse,
    PracticeLogResponse,
    TopicResponse,
    TopicsByCategoryResponse,
    TopicStatsResponse,
)
from preptrack.practice.service import (
    get_practice_history,
    get_practice_stats,
    get_topic,
    list_topics,
    log_practice,
)

router = APIRouter(prefix="/api/v1", tags=["Practice"])


@router.get("/topics", response_model=TopicsByCategoryResponse)
async def get_topics(db: AsyncSession = Depends(get_session)):
    """All topics grouped by category."""
    return await list_topics(db)


@router.get("/topics/{topic_id}", response_model=TopicResponse)
async def get_topic_detail(topic_id: int, db: AsyncSession = Depends(get_session)):
    return await get_topic(db, topic_id)


@router.post("/practice", response_model=PracticeLogResponse, status_code=201)
async def create_practice_log(
    body: LogPracticeRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Log a practice attempt and update progress, streak, points, badges and challenge."""
    return await log_practice(db, redis, user.id, body)


@router.get("/practice/history", response_model=PracticeHistoryResponse)
async def get_history(
    topic_id: int | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    skip: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Practice logs, newest first."""
    logs = await get_practice_history(db, user.id, topic_id=topic_id, limit=limit, skip=skip)
    return PracticeHistoryResponse(logs=logs, limit=limit, skip=skip)


@router.get("/practice/stats", response_model=TopicStatsResponse | OverallStatsResponse)
async def get_stats(
    topic_id: int | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Per-topic stats when topic_id is given, otherwise totals across all topics."""
    return await get_practice_stats(db, user.id, topic_id=topic_id)
