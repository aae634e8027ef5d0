# =============================================================================
# lib/supabase_client.py - Supabase Client Wrapper
# =============================================================================
# Owns the process-wide Supabase client:
# - get_client(): lazy singleton using the service_role key
# - ping(): cheap round trip used by the health probes
# - disconnect(): releases the HTTP session during graceful shutdown
#
# The class itself is the storage handle passed to the shutdown coordinator.
#
# Usage:
#   from lib.supabase_client import SupabaseClient
#   client = SupabaseClient.get_client()
#   client.table("users").select("*").execute()
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from supabase import create_client, Client

from app.config import settings
from lib.utils import ApplicationError

# Set up logging for this module
logger = logging.getLogger(__name__)

HEALTH_CHECK_TIMEOUT_SECONDS = 5


class SupabaseClientError(ApplicationError):
    """Error during Supabase operations."""

    def __init__(
        self,
        message: str,
        code: str = "SUPABASE_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code=code, suggestion=suggestion, details=details)


class SupabaseClient:
    """
    Singleton wrapper around the Supabase client.

    All methods are class methods so the class can be handed around as a
    handle without instantiation.

    Example:
        client = SupabaseClient.get_client()
        await SupabaseClient.disconnect()
    """

    _instance: Client | None = None

    @classmethod
    def get_client(cls) -> Client:
        """
        Get or create the singleton Supabase client.

        Uses service_role key which bypasses Row Level Security (RLS).
        This is appropriate for server-side operations.

        Returns:
            Client: Supabase client instance

        Raises:
            SupabaseClientError: If client creation fails
        """
        if cls._instance is None:
            try:
                cls._instance = create_client(
                    settings.SUPABASE_URL,
                    settings.SUPABASE_SERVICE_KEY
                )
                logger.info("Supabase client initialized successfully")
            except Exception as e:
                raise SupabaseClientError(
                    message=f"Failed to create Supabase client: {e}",
                    code="CLIENT_INIT_FAILED",
                    suggestion="Check SUPABASE_URL and SUPABASE_SERVICE_KEY in your .env file"
                ) from e
        return cls._instance

    @classmethod
    def is_connected(cls) -> bool:
        return cls._instance is not None

    @classmethod
    def ping(cls) -> None:
        """
        Run a minimal request to confirm the database answers.

        Reads one row from SUPABASE_HEALTH_CHECK_TABLE when it is set.
        Otherwise asks the PostgREST root, which needs no table.

        Raises:
            SupabaseClientError: If the request fails
        """
        client = cls.get_client()
        table = settings.SUPABASE_HEALTH_CHECK_TABLE
        try:
            if table:
                client.table(table).select("*").limit(1).execute()
            else:
                response = httpx.get(
                    f"{settings.SUPABASE_URL.rstrip('/')}/rest/v1/",
                    headers={
                        "apikey": settings.SUPABASE_SERVICE_KEY,
                        "Authorization": f"Bearer {settings.SUPABASE_SERVICE_KEY}",
                    },
                    timeout=HEALTH_CHECK_TIMEOUT_SECONDS,
                )
                response.raise_for_status()
        except Exception as e:
            raise SupabaseClientError(
                message=f"Database ping failed: {e}",
                code="PING_FAILED",
                suggestion="Check that the database is reachable and SUPABASE_HEALTH_CHECK_TABLE exists",
            ) from e

    @classmethod
    async def disconnect(cls) -> None:
        """
        Close the client's HTTP session and drop the singleton.

        No-op if the client was never created. The blocking close runs in a
        worker thread so it does not stall the event loop.

        Raises:
            SupabaseClientError: If closing the session fails
        """
        client = cls._instance
        if client is None:
            return
        cls._instance = None

        try:
            await asyncio.to_thread(client.postgrest.session.close)
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to close Supabase session: {e}",
                code="DISCONNECT_FAILED",
            ) from e
        logger.info("Supabase client disconnected")
