# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up mock environment variables before any imports
# - Provides fake collaborators for the shutdown coordinator
# =============================================================================

import asyncio
import os

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-with-enough-length")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

import pytest

from core.lifecycle import ShutdownCoordinator
from lib.supabase_client import SupabaseClient


# =============================================================================
# Fake Collaborators
# =============================================================================

class FakeListener:
    """Listener whose drain takes `delay` seconds, hangs, or fails."""

    def __init__(self, delay: float = 0.0, hang: bool = False, error: Exception | None = None):
        self.delay = delay
        self.hang = hang
        self.error = error
        self.calls = 0
        self.cancelled = False
        self.phases: list = []
        self.coordinator: ShutdownCoordinator | None = None

    async def stop_accepting(self) -> None:
        self.calls += 1
        if self.coordinator is not None:
            self.phases.append(self.coordinator.phase)
        try:
            if self.hang:
                await asyncio.Event().wait()
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.error is not None:
            raise self.error


class FakeStorage:
    """Storage handle whose disconnect takes `delay` seconds or fails."""

    def __init__(self, delay: float = 0.0, error: Exception | None = None):
        self.delay = delay
        self.error = error
        self.calls = 0
        self.phases: list = []
        self.coordinator: ShutdownCoordinator | None = None

    async def disconnect(self) -> None:
        self.calls += 1
        if self.coordinator is not None:
            self.phases.append(self.coordinator.phase)
        await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def exit_calls():
    """Exit codes recorded instead of terminating the test process."""
    return []


@pytest.fixture
def make_coordinator(exit_calls):
    """
    Factory for coordinators that record their exit code.

    Every coordinator built here is uninstalled after the test so signal
    handlers and hooks never leak between tests.
    """
    created: list[ShutdownCoordinator] = []

    def _make(storage=None, grace_period: float = 10.0) -> ShutdownCoordinator:
        coordinator = ShutdownCoordinator(
            storage=storage,
            grace_period=grace_period,
            exit_func=exit_calls.append,
        )
        created.append(coordinator)
        return coordinator

    yield _make

    for coordinator in created:
        coordinator.uninstall()


@pytest.fixture(autouse=True)
def reset_supabase_singleton():
    """Make sure no test sees a client created by another test."""
    SupabaseClient._instance = None
    yield
    SupabaseClient._instance = None
