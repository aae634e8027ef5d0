# =============================================================================
# app/server.py - Process Bootstrap
# =============================================================================
# Runs the API under uvicorn with graceful shutdown:
# 1. Connect storage (fail fast with exit status 1)
# 2. Start uvicorn with its own signal handling disabled
# 3. Hand signals, uncaught exceptions and unobserved task errors to the
#    ShutdownCoordinator, which drains, disconnects and exits
#
# Usage:
#   starter-api
#   python -m app.server
# =============================================================================

import asyncio
import logging
import sys

import uvicorn

from app.config import settings
from app.main import app as api
from core.lifecycle import ManagedServer, ShutdownCoordinator, UvicornListener
from lib.supabase_client import SupabaseClient, SupabaseClientError

logger = logging.getLogger(__name__)


def build_server() -> ManagedServer:
    """Create the uvicorn server from settings."""
    config = uvicorn.Config(
        api,
        host=settings.API_HOST,
        port=settings.API_PORT,
        # Keep the logging configured in app.main; requests are logged by
        # RequestContextMiddleware
        log_config=None,
        access_log=False,
        proxy_headers=settings.is_production,
        timeout_graceful_shutdown=settings.DRAIN_TIMEOUT_SECONDS,
    )
    return ManagedServer(config)


async def serve() -> int:
    """
    Serve until the shutdown coordinator exits the process.

    Returns:
        Exit status, for the cases where the process was not already
        terminated by the coordinator
    """
    logger.info("Starting server...")

    try:
        SupabaseClient.get_client()
    except SupabaseClientError as e:
        logger.error(f"Failed to start server: {e}")
        return 1

    listener = UvicornListener(build_server())
    coordinator = ShutdownCoordinator(
        storage=SupabaseClient,
        grace_period=settings.SHUTDOWN_GRACE_PERIOD_SECONDS,
    )
    api.state.shutdown = coordinator
    coordinator.install(listener)

    serve_task = listener.start()
    coordinator.watch(serve_task)
    logger.info(
        f"Server listening on http://{settings.API_HOST}:{settings.API_PORT} "
        f"({settings.ENVIRONMENT})"
    )

    exit_waiter = asyncio.create_task(coordinator.wait())
    done, _ = await asyncio.wait(
        {serve_task, exit_waiter}, return_when=asyncio.FIRST_COMPLETED
    )
    if exit_waiter in done:
        return exit_waiter.result()

    crashed = not serve_task.cancelled() and serve_task.exception() is not None
    if crashed or coordinator.is_shutting_down:
        # The coordinator owns the exit from here
        return await exit_waiter

    # uvicorn returns on its own when startup fails (e.g. port in use)
    logger.error("Server stopped before a shutdown was requested")
    exit_waiter.cancel()
    coordinator.uninstall()
    await SupabaseClient.disconnect()
    return 1


def main() -> None:
    sys.exit(asyncio.run(serve()))


if __name__ == "__main__":
    main()
