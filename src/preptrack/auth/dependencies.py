"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from preptrack.auth.jwt import verify_access_token
from preptrack.database import get_session
from preptrack.db.models import User

_bearer = HTTPBearer()
_optional_bearer = HTTPBearer(auto_error=False)


async def _resolve_user(token: str, db: AsyncSession) -> User:
    try:
        claims = verify_access_token(token)
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e) or "Invalid token") from e

    user = await db.get(User, claims.user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User:
    """The user behind the bearer token; 401 on a bad token or an unknown user."""
    return await _resolve_user(credentials.credentials, db)


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_optional_bearer),
    db: AsyncSession = Depends(get_session),
) -> User | None:
    """Like get_current_user, but anonymous requests get None instead of a 401.

    A token that is present but invalid is still rejected.
    """
    if credentials is None:
        return None
    return await _resolve_user(credentials.credentials, db)
