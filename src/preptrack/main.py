"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from preptrack.challenges.router import router as challenges_router
from preptrack.config import get_settings
from preptrack.database import close_db, get_session_factory, init_db
from preptrack.gamification.router import router as gamification_router
from preptrack.gamification.seed import seed_badges
from preptrack.health.router import router as health_router
from preptrack.leaderboard.router import router as leaderboard_router
from preptrack.middleware import setup_middleware
from preptrack.practice.router import router as practice_router
from preptrack.practice.seed import seed_topics
from preptrack.progress.router import router as progress_router
from preptrack.recommendations.router import router as recommendations_router
from preptrack.redis_client import close_redis, init_redis

logger = logging.getLogger(__name__)


async def seed_catalog() -> None:
    """Insert the topic and badge catalogs (idempotent)."""
    async with get_session_factory()() as db:
        await seed_topics(db)
        await seed_badges(db)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url, settings.redis_max_connections)

    try:
        await seed_catalog()
    except SQLAlchemyError:
        logger.warning("Catalog seeding failed (tables may not exist yet)", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="PrepTrack API",
        description="Coding-interview practice tracking: progress scoring, badges, streaks, leaderboards",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(practice_router)
    app.include_router(progress_router)
    app.include_router(gamification_router)
    app.include_router(leaderboard_router)
    app.include_router(recommendations_router)
    app.include_router(challenges_router)

    return app


app = create_app()
