# =============================================================================
# core/lifecycle/listener.py - uvicorn Listener Adapter
# =============================================================================
# Adapts a uvicorn.Server to the Listener interface used by the shutdown
# coordinator:
#   start()           -> runs server.serve() as a task
#   stop_accepting()  -> stops accepting, drains in-flight requests
#
# uvicorn installs its own SIGINT/SIGTERM handlers while serving.
# ManagedServer turns that off so the coordinator is the only owner of
# process signals.
# =============================================================================

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Iterator

import uvicorn

logger = logging.getLogger(__name__)


class ManagedServer(uvicorn.Server):
    """uvicorn.Server that leaves signal handling to the caller."""

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield

    def install_signal_handlers(self) -> None:
        # Older uvicorn releases call this instead of capture_signals()
        return None


class UvicornListener:
    """
    Listener handle backed by a uvicorn server.

    Draining is delegated to uvicorn: once should_exit is set the server
    closes its sockets, waits for open connections and background tasks
    (bounded by config.timeout_graceful_shutdown) and runs the ASGI
    lifespan shutdown.
    """

    def __init__(self, server: uvicorn.Server):
        self.server = server
        self._task: asyncio.Task | None = None

    @property
    def task(self) -> asyncio.Task | None:
        return self._task

    def start(self) -> asyncio.Task:
        """Start serving in a background task and return it."""
        if self._task is not None:
            raise RuntimeError("Listener already started")
        self._task = asyncio.create_task(self.server.serve(), name="http-server")
        return self._task

    async def stop_accepting(self) -> None:
        """Ask the server to stop and wait for it to finish draining."""
        self.server.should_exit = True

        if self._task is None:
            return

        logger.info("Stopping HTTP server, waiting for in-flight requests")
        # Shielded so a cancelled waiter does not abort uvicorn's own shutdown
        await asyncio.shield(self._task)
