# =============================================================================
# tests/test_auth.py - Authentication Tests
# =============================================================================
# Bearer token verification and the 401 message for each failure class.
# Tokens are signed locally with the HS256 test secret.
# =============================================================================

import time
from unittest.mock import patch
from uuid import uuid4

import pytest
from fastapi.security import HTTPAuthorizationCredentials
from fastapi.testclient import TestClient
from jose import jwt

from app.auth.dependencies import (
    MSG_EXPIRED,
    MSG_FAILED,
    MSG_INVALID_SESSION,
    MSG_INVALID_TOKEN,
    MSG_MISSING_CREDENTIALS,
    decode_token,
    get_current_user_optional,
)
from app.config import settings
from app.main import create_app
from lib.supabase_client import SupabaseClient, SupabaseClientError


def make_token(secret: str | None = None, **overrides) -> str:
    now = int(time.time())
    claims = {
        "sub": str(uuid4()),
        "email": "ada@example.com",
        "aud": "authenticated",
        "iat": now,
        "exp": now + 3600,
        "user_metadata": {"name": "Ada"},
    }
    claims.update(overrides)
    claims = {k: v for k, v in claims.items() if v is not None}
    return jwt.encode(claims, secret or settings.SUPABASE_JWT_SECRET, algorithm="HS256")


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client():
    return TestClient(create_app())


@pytest.fixture
def no_database():
    with patch.object(
        SupabaseClient,
        "get_client",
        side_effect=SupabaseClientError("offline", code="CLIENT_INIT_FAILED"),
    ):
        yield


# =============================================================================
# Token Decoding
# =============================================================================

class TestDecodeToken:
    """Claims to AuthUser."""

    def test_valid_token(self):
        user_id = uuid4()

        user = decode_token(make_token(sub=str(user_id)))

        assert user.id == user_id
        assert user.email == "ada@example.com"
        assert user.name == "Ada"

    def test_name_is_optional(self):
        user = decode_token(make_token(user_metadata=None))

        assert user.name is None


# =============================================================================
# Failure Classification
# =============================================================================

class TestVerifyEndpoint:
    """401 message per failure class."""

    def _assert_unauthorized(self, response, message: str):
        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["message"] == message
        assert body["code"] == "UNAUTHORIZED"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_valid_token(self, client):
        user_id = str(uuid4())

        response = client.get("/api/v1/auth/verify", headers=bearer(make_token(sub=user_id)))

        assert response.status_code == 200
        assert response.json() == {
            "valid": True,
            "user_id": user_id,
            "email": "ada@example.com",
        }

    def test_missing_credentials(self, client):
        response = client.get("/api/v1/auth/verify")

        self._assert_unauthorized(response, MSG_MISSING_CREDENTIALS)

    def test_expired_token(self, client):
        now = int(time.time())
        token = make_token(iat=now - 7200, exp=now - 3600)

        response = client.get("/api/v1/auth/verify", headers=bearer(token))

        self._assert_unauthorized(response, MSG_EXPIRED)

    def test_bad_signature(self, client):
        token = make_token(secret="some-other-secret-entirely")

        response = client.get("/api/v1/auth/verify", headers=bearer(token))

        self._assert_unauthorized(response, MSG_INVALID_TOKEN)

    def test_garbage_token(self, client):
        response = client.get("/api/v1/auth/verify", headers=bearer("not-a-jwt"))

        self._assert_unauthorized(response, MSG_INVALID_TOKEN)

    def test_wrong_audience(self, client):
        response = client.get(
            "/api/v1/auth/verify", headers=bearer(make_token(aud="anon"))
        )

        self._assert_unauthorized(response, MSG_INVALID_TOKEN)

    def test_missing_subject(self, client):
        response = client.get("/api/v1/auth/verify", headers=bearer(make_token(sub=None)))

        self._assert_unauthorized(response, MSG_INVALID_SESSION)

    def test_malformed_subject(self, client):
        response = client.get(
            "/api/v1/auth/verify", headers=bearer(make_token(sub="user-42"))
        )

        self._assert_unauthorized(response, MSG_INVALID_SESSION)

    def test_unexpected_failure(self, client):
        with patch("app.auth.dependencies.decode_token", side_effect=KeyError("boom")):
            response = client.get("/api/v1/auth/verify", headers=bearer(make_token()))

        self._assert_unauthorized(response, MSG_FAILED)


class TestOptionalUser:
    """get_current_user_optional never raises."""

    @pytest.mark.asyncio
    async def test_no_credentials(self):
        assert await get_current_user_optional(None) is None

    @pytest.mark.asyncio
    async def test_invalid_token(self):
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials="junk")

        assert await get_current_user_optional(credentials) is None

    @pytest.mark.asyncio
    async def test_valid_token(self):
        credentials = HTTPAuthorizationCredentials(
            scheme="Bearer", credentials=make_token()
        )

        user = await get_current_user_optional(credentials)

        assert user is not None
        assert user.email == "ada@example.com"


# =============================================================================
# Profile
# =============================================================================

class TestMe:
    """GET /auth/me"""

    def test_falls_back_to_token_claims(self, client, no_database):
        user_id = str(uuid4())

        response = client.get("/api/v1/auth/me", headers=bearer(make_token(sub=user_id)))

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == user_id
        assert body["email"] == "ada@example.com"
        assert body["name"] == "Ada"

    def test_requires_authentication(self, client):
        response = client.get("/api/v1/auth/me")

        assert response.status_code == 401
