# =============================================================================
# app/auth/models.py - Authentication Models
# =============================================================================
# Pydantic models for authentication data.
# =============================================================================

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class AuthUser(BaseModel):
    """
    Authenticated user extracted from the access token.

    This is the minimal user info available from the token itself,
    without querying the database.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID
    email: Optional[str] = None
    name: Optional[str] = None


class UserResponse(BaseModel):
    """
    Full user response for API endpoints.

    Includes additional profile data from the public.users table.
    """
    id: UUID
    email: Optional[str] = None
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class VerifyResponse(BaseModel):
    """Result of a token check."""
    valid: bool
    user_id: str
    email: Optional[str] = None
