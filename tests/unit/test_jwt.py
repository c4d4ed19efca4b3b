"""Tests for access token minting and verification."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from preptrack.auth.jwt import create_access_token, verify_access_token
from preptrack.config import get_settings


def _encode(**overrides) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": "7",
        "iat": now,
        "exp": now + timedelta(minutes=5),
        "iss": settings.jwt_issuer,
        "type": "access",
        **overrides,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


class TestAccessTokens:
    def test_round_trip_claims(self) -> None:
        claims = verify_access_token(create_access_token(7, "ada@example.com"))
        assert claims.user_id == 7
        assert claims.email == "ada@example.com"
        assert claims.expires_at > datetime.now(timezone.utc)

    def test_expired(self) -> None:
        token = _encode(exp=datetime.now(timezone.utc) - timedelta(seconds=1))
        with pytest.raises(jwt.InvalidTokenError, match="expired"):
            verify_access_token(token)

    def test_wrong_type(self) -> None:
        with pytest.raises(jwt.InvalidTokenError, match="Not an access token"):
            verify_access_token(_encode(type="refresh"))

    def test_wrong_issuer(self) -> None:
        with pytest.raises(jwt.InvalidTokenError):
            verify_access_token(_encode(iss="someone-else"))

    def test_non_numeric_subject(self) -> None:
        with pytest.raises(jwt.InvalidTokenError, match="subject"):
            verify_access_token(_encode(sub="ada"))

    def test_wrong_secret(self) -> None:
        token = jwt.encode({"sub": "7", "type": "access"}, "another-secret-of-decent-length", algorithm="HS256")
        with pytest.raises(jwt.InvalidTokenError):
            verify_access_token(token)
