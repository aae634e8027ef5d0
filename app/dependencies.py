# =============================================================================
# app/dependencies.py - Shared Dependencies
# =============================================================================
# FastAPI dependency injection for shared resources.
# These are injected into route handlers using Depends().
# =============================================================================

from typing import Annotated, Optional

from fastapi import Depends, Request

from core.lifecycle import ShutdownCoordinator
from lib.supabase_client import SupabaseClient


def get_supabase_client() -> type[SupabaseClient]:
    """
    Get Supabase client wrapper.

    Returns the singleton client wrapper class.
    """
    return SupabaseClient


def get_shutdown_coordinator(request: Request) -> Optional[ShutdownCoordinator]:
    """
    Get the process shutdown coordinator.

    The server bootstrap stores it on app.state; None when the app runs
    without it (tests, `uvicorn app.main:app`).
    """
    return getattr(request.app.state, "shutdown", None)


# Type aliases for dependency injection
SupabaseDep = Annotated[type[SupabaseClient], Depends(get_supabase_client)]
ShutdownDep = Annotated[Optional[ShutdownCoordinator], Depends(get_shutdown_coordinator)]
