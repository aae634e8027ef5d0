# =============================================================================
# tests/test_listener.py - uvicorn Listener Adapter Tests
# =============================================================================

import asyncio
import os
import signal

import pytest
import uvicorn
from fastapi import FastAPI

from core.lifecycle import ManagedServer, UvicornListener


class FakeServer:
    """Stands in for uvicorn.Server: serves until should_exit is set."""

    def __init__(self, fail: bool = False):
        self.should_exit = False
        self.fail = fail
        self.served = False

    async def serve(self):
        self.served = True
        while not self.should_exit:
            await asyncio.sleep(0.01)
        if self.fail:
            raise RuntimeError("shutdown failed")


# =============================================================================
# UvicornListener
# =============================================================================

class TestUvicornListener:
    """Start and drain behaviour."""

    @pytest.mark.asyncio
    async def test_start_runs_serve_in_background(self):
        server = FakeServer()
        listener = UvicornListener(server)

        task = listener.start()
        await asyncio.sleep(0.02)

        assert listener.task is task
        assert server.served is True
        assert not task.done()

        await listener.stop_accepting()

    @pytest.mark.asyncio
    async def test_stop_accepting_waits_for_server(self):
        server = FakeServer()
        listener = UvicornListener(server)
        task = listener.start()

        await listener.stop_accepting()

        assert server.should_exit is True
        assert task.done()

    @pytest.mark.asyncio
    async def test_stop_before_start_returns_immediately(self):
        server = FakeServer()
        listener = UvicornListener(server)

        await asyncio.wait_for(listener.stop_accepting(), timeout=0.5)

        assert server.should_exit is True
        assert server.served is False

    @pytest.mark.asyncio
    async def test_start_twice_raises(self):
        listener = UvicornListener(FakeServer())
        listener.start()

        with pytest.raises(RuntimeError):
            listener.start()

        await listener.stop_accepting()

    @pytest.mark.asyncio
    async def test_server_error_propagates(self):
        listener = UvicornListener(FakeServer(fail=True))
        listener.start()

        with pytest.raises(RuntimeError, match="shutdown failed"):
            await listener.stop_accepting()


# =============================================================================
# ManagedServer
# =============================================================================

class TestManagedServer:
    """uvicorn server without its own signal handling."""

    def _server(self) -> ManagedServer:
        config = uvicorn.Config(
            FastAPI(),
            host="127.0.0.1",
            port=0,
            log_config=None,
            lifespan="off",
        )
        return ManagedServer(config)

    def test_capture_signals_leaves_handlers_alone(self):
        server = self._server()
        before = signal.getsignal(signal.SIGTERM)

        with server.capture_signals():
            assert signal.getsignal(signal.SIGTERM) is before

        assert signal.getsignal(signal.SIGTERM) is before

    def test_install_signal_handlers_is_noop(self):
        server = self._server()
        before = signal.getsignal(signal.SIGINT)

        server.install_signal_handlers()

        assert signal.getsignal(signal.SIGINT) is before

    @pytest.mark.asyncio
    async def test_sigterm_drains_real_server(self, make_coordinator, exit_calls):
        server = self._server()
        listener = UvicornListener(server)
        coordinator = make_coordinator()
        coordinator.install(listener)
        task = listener.start()

        for _ in range(200):
            if server.started:
                break
            await asyncio.sleep(0.01)
        assert server.started

        os.kill(os.getpid(), signal.SIGTERM)
        code = await asyncio.wait_for(coordinator.wait(), timeout=5)

        assert code == 0
        assert exit_calls == [0]
        assert task.done()
