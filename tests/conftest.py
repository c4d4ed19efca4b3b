"""Shared test fixtures.

Every test gets a fresh in-memory SQLite database with the topic and badge
catalogs seeded. The app under test shares that engine, so API tests must not
hold an open transaction on ``db_session`` while a request is in flight; use
``session_factory`` for setup and assertions around API calls.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from unittest.mock import AsyncMock, MagicMock

os.environ["PREPTRACK_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["PREPTRACK_LOG_FORMAT"] = "console"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

from preptrack.auth.jwt import create_access_token  # noqa: E402
from preptrack.config import get_settings  # noqa: E402
from preptrack.database import close_db, get_engine, get_session_factory, init_db  # noqa: E402
from preptrack.db.models import Base, User  # noqa: E402
from preptrack.gamification.seed import seed_badges  # noqa: E402
from preptrack.leaderboard import service as leaderboard_service  # noqa: E402
from preptrack.practice.seed import seed_topics  # noqa: E402


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh schema plus seeded catalogs; yields the session factory the app also uses."""
    get_settings.cache_clear()
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = get_session_factory()
    async with factory() as session:
        await seed_topics(session)
        await seed_badges(session)

    leaderboard_service._locks.clear()
    yield factory
    await close_db()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for service-level tests."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def make_user(session_factory) -> Callable[..., Awaitable[User]]:
    """Factory creating committed users: ``await make_user("ada")``."""
    counter = {"n": 0}

    async def _make(name: str | None = None) -> User:
        counter["n"] += 1
        name = name or f"user{counter['n']}"
        async with session_factory() as session:
            user = User(email=f"{name}@example.com", full_name=name.title())
            session.add(user)
            await session.commit()
            return user

    return _make


@pytest.fixture
def mock_redis() -> MagicMock:
    """Stand-in Redis client recording publishes."""
    redis = MagicMock()
    redis.publish = AsyncMock(return_value=1)
    return redis


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client over the app, without the lifespan (the test engine is already initialised)."""
    from preptrack.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}

    return _headers


@pytest_asyncio.fixture
async def current_user(make_user) -> User:
    return await make_user("ada")


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient, current_user: User, auth_headers) -> AsyncClient:
    """Client authenticated as ``current_user`` with a real HS256 token."""
    client.headers.update(auth_headers(current_user))
    return client
