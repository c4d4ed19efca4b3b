"""Liveness, readiness and version probes."""

from fastapi import APIRouter, Depends
from redis.exceptions import RedisError
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from preptrack.config import get_settings
from preptrack.database import get_session
from preptrack.db.models import BadgeDefinition, Topic
from preptrack.redis_client import get_redis_optional

router = APIRouter()

# Check values that still count as ready
_READY_VALUES = frozenset({"ok", "disabled"})


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


async def _check_catalog(db: AsyncSession) -> str:
    topics = (await db.execute(select(func.count()).select_from(Topic))).scalar_one()
    badges = (await db.execute(select(func.count()).select_from(BadgeDefinition))).scalar_one()
    return "ok" if topics and badges else "not seeded"


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Ready once the database answers and the topic and badge catalogs are seeded.

    Redis is reported but optional: "disabled" does not make the service degraded.
    """
    checks: dict[str, str] = {}

    try:
        checks["catalog"] = await _check_catalog(db)
        checks["database"] = "ok"
    except SQLAlchemyError as exc:
        checks["database"] = f"error: {exc}"

    redis = get_redis_optional()
    if redis is None:
        checks["redis"] = "disabled"
    else:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except RedisError as exc:
            checks["redis"] = f"error: {exc}"

    ready = all(value in _READY_VALUES for value in checks.values())
    return {"status": "ready" if ready else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {"version": settings.app_version, "environment": settings.environment}
