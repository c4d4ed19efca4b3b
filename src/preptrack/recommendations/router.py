"""Recommendation API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from preptrack.auth.dependencies import get_current_user
from preptrack.database import get_session
from preptrack.db.models import User
from preptrack.recommendations import service
from preptrack.recommendations.schemas import RecommendationResponse

router = APIRouter(prefix="/api/v1/recommendations", tags=["Recommendations"])


@router.get("", response_model=RecommendationResponse)
async def get_recommendations(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Active recommendation, generated on first request or after expiry."""
    return await service.get(db, user.id)


@router.post("/refresh", response_model=RecommendationResponse)
async def refresh_recommendations(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return await service.generate(db, user.id)
