# =============================================================================
# app/auth/dependencies.py - FastAPI Auth Dependencies
# =============================================================================
# Provides dependency injection for authentication.
#
# Token verification is delegated to python-jose. Supports both:
# - ES256/RS256 (Supabase JWT signing keys) via JWKS
# - HS256 (legacy Supabase JWT secret) as fallback
#
# This module only decides which 401 message a failure maps to.
#
# Usage:
#   from app.auth import get_current_user, AuthUser
#
#   @router.get("/protected")
#   async def protected(user: AuthUser = Depends(get_current_user)):
#       return {"user_id": user.id}
# =============================================================================

import logging
import time
from typing import Any, Optional
from uuid import UUID

import httpx
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError, ExpiredSignatureError

from app.config import settings
from app.auth.models import AuthUser

logger = logging.getLogger(__name__)

# HTTP Bearer token extractor; missing credentials are reported by us
security = HTTPBearer(auto_error=False)

# Cache for JWKS keys
_jwks_cache: dict = {}
_jwks_cache_time: float = 0
JWKS_CACHE_TTL = 3600  # 1 hour

TOKEN_AUDIENCE = "authenticated"

# 401 messages, one per failure class
MSG_MISSING_CREDENTIALS = "Authentication required. Please provide valid credentials."
MSG_EXPIRED = "Your session has expired. Please sign in again."
MSG_INVALID_TOKEN = "Invalid authentication token. Please sign in again."
MSG_INVALID_SESSION = "Session is invalid. Please sign in again."
MSG_FAILED = "Authentication failed. Please try signing in again."


class InvalidSessionError(Exception):
    """Token verified but does not identify a user."""


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _get_jwks_url() -> str:
    """Get the JWKS URL from Supabase URL."""
    # Format: https://<project-ref>.supabase.co
    supabase_url = settings.SUPABASE_URL.rstrip('/')
    return f"{supabase_url}/auth/v1/.well-known/jwks.json"


def _fetch_jwks() -> dict:
    """Fetch JWKS from Supabase with caching."""
    global _jwks_cache, _jwks_cache_time

    current_time = time.time()

    # Return cached if valid
    if _jwks_cache and (current_time - _jwks_cache_time) < JWKS_CACHE_TTL:
        return _jwks_cache

    try:
        jwks_url = _get_jwks_url()
        response = httpx.get(jwks_url, timeout=10)
        response.raise_for_status()
        _jwks_cache = response.json()
        _jwks_cache_time = current_time
        logger.debug(f"Fetched JWKS from {jwks_url}")
        return _jwks_cache
    except (httpx.HTTPError, ValueError) as e:
        logger.warning(f"Failed to fetch JWKS: {e}")
        # Return cached even if expired, as fallback
        if _jwks_cache:
            return _jwks_cache
        return {"keys": []}


def _get_signing_key(token: str) -> tuple[Any, str]:
    """
    Get the appropriate signing key for a token.

    Returns:
        Tuple of (key, algorithm) to use for verification
    """
    # Decode header without verification to get algorithm and key ID
    unverified_header = jwt.get_unverified_header(token)

    alg = unverified_header.get("alg", "HS256")
    kid = unverified_header.get("kid")

    if alg == "HS256":
        return settings.SUPABASE_JWT_SECRET, "HS256"

    if kid:
        for key in _fetch_jwks().get("keys", []):
            if key.get("kid") == kid:
                return key, alg

    logger.warning(f"Could not find key for alg={alg}, kid={kid}, falling back to HS256")
    return settings.SUPABASE_JWT_SECRET, "HS256"


def decode_token(token: str) -> AuthUser:
    """
    Verify a token and build the AuthUser it identifies.

    Raises:
        ExpiredSignatureError: Token signature has expired
        JWTError: Token is malformed or its signature does not verify
        InvalidSessionError: Token has no usable user id
    """
    signing_key, algorithm = _get_signing_key(token)

    payload = jwt.decode(
        token,
        signing_key,
        algorithms=[algorithm],
        audience=TOKEN_AUDIENCE,
    )

    user_id = payload.get("sub")
    if not user_id:
        raise InvalidSessionError("token missing 'sub' claim")

    try:
        user_uuid = UUID(str(user_id))
    except ValueError:
        raise InvalidSessionError(f"malformed user id: {user_id}")

    return AuthUser(
        id=user_uuid,
        email=payload.get("email"),
        name=(payload.get("user_metadata") or {}).get("name"),
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> AuthUser:
    """
    Extract and validate user from the bearer token.

    Args:
        credentials: Bearer token from Authorization header

    Returns:
        AuthUser: The authenticated user

    Raises:
        HTTPException: 401 with a message matching the failure class
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized(MSG_MISSING_CREDENTIALS)

    try:
        user = decode_token(credentials.credentials)
    except ExpiredSignatureError:
        logger.warning("JWT token has expired")
        raise _unauthorized(MSG_EXPIRED)
    except JWTError as e:
        logger.warning(f"JWT validation failed: {e}")
        raise _unauthorized(MSG_INVALID_TOKEN)
    except InvalidSessionError as e:
        logger.warning(f"Invalid session: {e}")
        raise _unauthorized(MSG_INVALID_SESSION)
    except Exception:
        logger.exception("Unexpected error while authenticating")
        raise _unauthorized(MSG_FAILED)

    logger.debug(f"Authenticated user: {user.id}")
    return user


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[AuthUser]:
    """
    Optionally get the current user from JWT token.

    Returns None if no token is provided or it doesn't verify, instead of
    raising. Useful for endpoints that work with or without authentication.
    """
    if credentials is None:
        return None

    try:
        return await get_current_user(credentials)
    except HTTPException:
        return None
