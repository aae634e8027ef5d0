# =============================================================================
# app/auth/routes.py - Authentication Routes
# =============================================================================
# API endpoints for authentication-related operations.
#
# Note: Sign-up, sign-in, OAuth and two-factor flows are handled by Supabase
# Auth client-side. These routes are for getting user info afterwards.
# =============================================================================

import logging

from fastapi import APIRouter, Depends

from app.auth.dependencies import get_current_user
from app.auth.models import AuthUser, UserResponse, VerifyResponse
from lib.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    user: AuthUser = Depends(get_current_user)
) -> UserResponse:
    """
    Get the current authenticated user's profile.

    Returns:
        UserResponse: User profile with id, email, name, etc.

    Raises:
        401: If not authenticated
    """
    try:
        client = SupabaseClient.get_client()
        response = (
            client.table("users")
            .select("*")
            .eq("id", str(user.id))
            .single()
            .execute()
        )

        if response.data:
            return UserResponse(**response.data)

    except Exception as e:
        logger.warning(f"Could not fetch user profile: {e}")

    # User exists in auth but not yet in public.users
    return UserResponse(id=user.id, email=user.email, name=user.name)


@router.get("/verify", response_model=VerifyResponse)
async def verify_token(
    user: AuthUser = Depends(get_current_user)
) -> VerifyResponse:
    """
    Verify that the current token is valid.

    Raises:
        401: If token is invalid or expired
    """
    return VerifyResponse(valid=True, user_id=str(user.id), email=user.email)
