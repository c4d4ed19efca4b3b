"""
HS256 JWT access tokens.

Tokens are issued by the account service with a shared secret; this service
only verifies them. ``create_access_token`` mints identical tokens for local
tooling and tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from preptrack.config import get_settings

TOKEN_TYPE_ACCESS = "access"


@dataclass(frozen=True)
class AccessClaims:
    """The claims the API relies on."""

    user_id: int
    email: str | None
    expires_at: datetime


def create_access_token(user_id: int, email: str | None = None) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_access_token_expire_minutes),
        "iss": settings.jwt_issuer,
        "type": TOKEN_TYPE_ACCESS,
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_access_token(token: str) -> AccessClaims:
    """
    Decode and validate an access token.

    Checks the signature, expiry, issuer and ``type`` claim, and that ``sub``
    is a numeric user id.

    Raises:
        jwt.InvalidTokenError: With a client-safe message for any failure.
    """
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            options={"require": ["sub", "exp", "iss"]},
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if payload.get("type") != TOKEN_TYPE_ACCESS:
        msg = "Not an access token"
        raise jwt.InvalidTokenError(msg)

    try:
        user_id = int(payload["sub"])
    except ValueError:
        msg = "Malformed subject claim"
        raise jwt.InvalidTokenError(msg) from None

    return AccessClaims(
        user_id=user_id,
        email=payload.get("email"),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )
