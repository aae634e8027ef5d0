# =============================================================================
# core/lifecycle/coordinator.py - Graceful Shutdown Coordinator
# =============================================================================
# Moves the process from "serving" to "terminated" exactly once, when it is
# told to stop (SIGTERM/SIGINT) or detected to be broken (an exception that
# escaped all handling, or a failed task nobody awaited).
#
# Sequence:
#   IDLE -> DRAINING -> CLEANING_UP -> EXITED
#
# A deadline timer is armed when the sequence starts. If cleanup has not
# reached EXITED within the grace period, the timer forces exit status 1.
#
# Usage:
#   coordinator = ShutdownCoordinator(storage=SupabaseClient)
#   coordinator.install(listener)
#   coordinator.watch(serve_task)
#   await coordinator.wait()
# =============================================================================

from __future__ import annotations

import asyncio
import logging
import os
import signal
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

# Seconds cleanup may take before the process is forced to exit
DEFAULT_GRACE_PERIOD = 10.0

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


# =============================================================================
# Collaborator Interfaces
# =============================================================================

class Listener(Protocol):
    """Network listener that can stop accepting work and drain."""

    async def stop_accepting(self) -> None:
        """Stop accepting connections; return once in-flight requests finish."""
        ...


class StorageHandle(Protocol):
    """Persistent storage connection owned by the application."""

    async def disconnect(self) -> None:
        ...


# =============================================================================
# State Types
# =============================================================================

class ShutdownPhase(str, Enum):
    """
    Lifecycle phases of the coordinator.

    EXITED is terminal: the process no longer serves once it is reached.
    """
    IDLE = "idle"
    DRAINING = "draining"
    CLEANING_UP = "cleaning_up"
    EXITED = "exited"


class ShutdownTrigger(str, Enum):
    """Trigger classes the coordinator subscribes to."""
    SIGTERM = "SIGTERM"
    SIGINT = "SIGINT"
    UNCAUGHT_EXCEPTION = "UNCAUGHT_EXCEPTION"
    UNHANDLED_TASK_ERROR = "UNHANDLED_TASK_ERROR"

    @property
    def is_fatal(self) -> bool:
        return self in (
            ShutdownTrigger.UNCAUGHT_EXCEPTION,
            ShutdownTrigger.UNHANDLED_TASK_ERROR,
        )


@dataclass(frozen=True)
class ShutdownReason:
    """Why the shutdown sequence started."""
    trigger: ShutdownTrigger
    error: BaseException | None = None

    def __str__(self) -> str:
        if self.error is not None:
            return f"{self.trigger.value}: {self.error!r}"
        return self.trigger.value


class Subscription:
    """
    One-shot subscription to a trigger source.

    The first notification is forwarded to the coordinator; later ones are
    logged and dropped. unsubscribe() detaches the handler from its source
    and restores whatever was there before.
    """

    def __init__(
        self,
        trigger: ShutdownTrigger,
        on_fire: Callable[[ShutdownReason], None],
        detach: Callable[[], None],
    ):
        self.trigger = trigger
        self._on_fire = on_fire
        self._detach = detach
        self.fired = False
        self.active = True

    def notify(self, error: BaseException | None = None) -> bool:
        """
        Deliver the trigger.

        Returns:
            True if this call fired the subscription, False if it was
            already used or detached.
        """
        if not self.active:
            return False
        if self.fired:
            logger.debug(f"{self.trigger.value} received again, ignoring")
            return False
        self.fired = True
        self._on_fire(ShutdownReason(self.trigger, error))
        return True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._detach()

    def __repr__(self) -> str:
        return (
            f"Subscription(trigger={self.trigger.value}, "
            f"fired={self.fired}, active={self.active})"
        )


def hard_exit(code: int) -> None:
    """Flush log handlers and terminate the process without unwinding."""
    logging.shutdown()
    os._exit(code)


# =============================================================================
# Coordinator
# =============================================================================

class ShutdownCoordinator:
    """
    Coordinates an idempotent, timeout-bounded shutdown of the process.

    One instance is built by the process bootstrap and passed to whatever
    needs to query shutdown state (e.g. the readiness probe). The
    coordinator never raises into its callers: cleanup errors are logged and
    the process always reaches exit, either through the cleanup path or
    through the deadline.

    Attributes:
        registered: Trigger handlers have been attached (never resets)
        in_progress: A shutdown sequence has started (never resets)
        phase: Current ShutdownPhase
        reason: The ShutdownReason that started the sequence
        exit_code: Status passed to the exit function, once exited
    """

    def __init__(
        self,
        storage: StorageHandle | None = None,
        *,
        grace_period: float = DEFAULT_GRACE_PERIOD,
        exit_func: Callable[[int], Any] = hard_exit,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        """
        Args:
            storage: Storage handle released after the listener drains
            grace_period: Seconds before cleanup is abandoned with status 1
            exit_func: Called with the final status code
            loop: Event loop to attach to (defaults to the running loop)
        """
        if grace_period <= 0:
            raise ValueError("grace_period must be positive")

        self.storage = storage
        self.grace_period = grace_period
        self._exit_func = exit_func
        self._loop = loop

        self.registered = False
        self.in_progress = False
        self.phase = ShutdownPhase.IDLE
        self.reason: ShutdownReason | None = None
        self.exit_code: int | None = None

        self._listener: Listener | None = None
        self._subscriptions: dict[ShutdownTrigger, Subscription] = {}
        self._deadline: asyncio.TimerHandle | None = None
        self._cleanup_task: asyncio.Task | None = None
        self._exited = asyncio.Event()

    @property
    def is_shutting_down(self) -> bool:
        return self.in_progress

    @property
    def subscriptions(self) -> list[Subscription]:
        return list(self._subscriptions.values())

    # -------------------------------------------------------------------------
    # Installation
    # -------------------------------------------------------------------------

    def install(self, listener: Listener) -> list[Subscription]:
        """
        Attach one-shot handlers for every trigger class.

        Calling install again has no additional effect; the subscriptions
        from the first call are returned. This covers bootstrap code that
        runs twice in one OS process (e.g. a module reload).

        Args:
            listener: Handle of the active network listener

        Returns:
            One Subscription per trigger class
        """
        if self.registered:
            logger.debug("Shutdown handlers already registered, skipping")
            return self.subscriptions

        loop = self._loop or asyncio.get_running_loop()
        self._loop = loop
        self._listener = listener
        self.registered = True

        for sig, trigger in (
            (signal.SIGTERM, ShutdownTrigger.SIGTERM),
            (signal.SIGINT, ShutdownTrigger.SIGINT),
        ):
            self._subscriptions[trigger] = self._subscribe_signal(loop, sig, trigger)

        self._subscriptions[ShutdownTrigger.UNCAUGHT_EXCEPTION] = (
            self._subscribe_thread_errors(loop)
        )
        self._subscriptions[ShutdownTrigger.UNHANDLED_TASK_ERROR] = (
            self._subscribe_loop_errors(loop)
        )

        logger.info("Graceful shutdown handlers registered")
        return self.subscriptions

    def uninstall(self) -> None:
        """Detach every handler. `registered` stays True."""
        for subscription in self._subscriptions.values():
            subscription.unsubscribe()

    def watch(self, task: asyncio.Task) -> None:
        """
        Treat an exception escaping `task` as an uncaught exception.

        This is the outermost boundary of the process: the bootstrap puts
        its serving task under watch so a crash becomes a shutdown reason
        instead of propagating further.
        """
        def _on_done(done: asyncio.Task) -> None:
            if done.cancelled():
                return
            error = done.exception()
            if error is None:
                return
            logger.error("Uncaught exception", exc_info=error)
            self._notify(ShutdownTrigger.UNCAUGHT_EXCEPTION, error)

        task.add_done_callback(_on_done)

    def _notify(self, trigger: ShutdownTrigger, error: BaseException | None = None) -> None:
        subscription = self._subscriptions.get(trigger)
        if subscription is None:
            logger.warning(f"{trigger.value} received before handlers were installed")
            return
        subscription.notify(error)

    def _subscribe_signal(
        self,
        loop: asyncio.AbstractEventLoop,
        sig: signal.Signals,
        trigger: ShutdownTrigger,
    ) -> Subscription:
        subscription: Subscription

        def _handler() -> None:
            subscription.notify()

        try:
            loop.add_signal_handler(sig, _handler)

            def _detach() -> None:
                loop.remove_signal_handler(sig)

        except NotImplementedError:
            # Windows event loops have no add_signal_handler
            previous = signal.signal(
                sig, lambda signum, frame: loop.call_soon_threadsafe(_handler)
            )

            def _detach() -> None:
                signal.signal(sig, previous)

        subscription = Subscription(trigger, self._shutdown, _detach)
        return subscription

    def _subscribe_thread_errors(self, loop: asyncio.AbstractEventLoop) -> Subscription:
        previous_hook = threading.excepthook
        subscription: Subscription

        def _hook(args: threading.ExceptHookArgs) -> None:
            if args.exc_type is SystemExit:
                return
            logger.error(
                f"Uncaught exception in thread "
                f"{args.thread.name if args.thread else '<unknown>'}",
                exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
            )
            loop.call_soon_threadsafe(subscription.notify, args.exc_value)

        def _detach() -> None:
            if threading.excepthook is _hook:
                threading.excepthook = previous_hook

        threading.excepthook = _hook
        subscription = Subscription(
            ShutdownTrigger.UNCAUGHT_EXCEPTION, self._shutdown, _detach
        )
        return subscription

    def _subscribe_loop_errors(self, loop: asyncio.AbstractEventLoop) -> Subscription:
        previous_handler = loop.get_exception_handler()
        subscription: Subscription

        def _handler(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
            error = context.get("exception")
            if error is None or subscription.fired or not subscription.active:
                # Not a failure (or already handled): keep default reporting
                if previous_handler is not None:
                    previous_handler(loop, context)
                else:
                    loop.default_exception_handler(context)
                return
            logger.error(
                f"Unhandled task error: {context.get('message', 'no message')}",
                exc_info=error,
            )
            subscription.notify(error)

        def _detach() -> None:
            loop.set_exception_handler(previous_handler)

        loop.set_exception_handler(_handler)
        subscription = Subscription(
            ShutdownTrigger.UNHANDLED_TASK_ERROR, self._shutdown, _detach
        )
        return subscription

    # -------------------------------------------------------------------------
    # Shutdown Sequence
    # -------------------------------------------------------------------------

    def _shutdown(self, reason: ShutdownReason) -> None:
        if self.in_progress:
            logger.debug(f"Shutdown already in progress, ignoring {reason.trigger.value}")
            return

        self.in_progress = True
        self.reason = reason

        if reason.trigger.is_fatal:
            logger.error(f"{reason} - starting graceful shutdown")
        else:
            logger.warning(f"{reason.trigger.value} received - starting graceful shutdown")

        loop = self._loop or asyncio.get_running_loop()

        if self._deadline is not None:
            self._deadline.cancel()
        self._deadline = loop.call_later(self.grace_period, self._force_exit)

        self.phase = ShutdownPhase.DRAINING
        self._cleanup_task = loop.create_task(self._cleanup())

    async def _cleanup(self) -> None:
        exit_code = EXIT_SUCCESS

        try:
            if self._listener is not None:
                await self._listener.stop_accepting()
                logger.info("HTTP server closed")
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Error closing HTTP server")
            exit_code = EXIT_FAILURE

        # Storage is released whether or not the drain succeeded
        self.phase = ShutdownPhase.CLEANING_UP
        await self._disconnect_storage()

        if exit_code == EXIT_SUCCESS:
            logger.info("All connections closed, exiting")

        self._cancel_deadline()
        self._exit(exit_code)

    async def _disconnect_storage(self) -> None:
        if self.storage is None:
            return
        try:
            await self.storage.disconnect()
            logger.info("Storage disconnected")
        except Exception:
            logger.exception("Error disconnecting storage")

    def _cancel_deadline(self) -> None:
        if self._deadline is not None:
            self._deadline.cancel()
            self._deadline = None

    def _force_exit(self) -> None:
        self._deadline = None
        if self.phase is ShutdownPhase.EXITED:
            return

        logger.error(
            f"Forced shutdown: cleanup did not finish within {self.grace_period:g}s"
        )
        if self._cleanup_task is not None and not self._cleanup_task.done():
            self._cleanup_task.cancel()
        self._exit(EXIT_FAILURE)

    def _exit(self, code: int) -> None:
        if self.phase is ShutdownPhase.EXITED:
            return
        self.phase = ShutdownPhase.EXITED
        self.exit_code = code
        self._exited.set()
        self._exit_func(code)

    async def wait(self) -> int:
        """
        Wait until the coordinator has exited.

        With the default exit function the process terminates first, so
        this only returns when a non-terminating exit_func was injected.

        Returns:
            The exit status
        """
        await self._exited.wait()
        # _exit always records a code before setting the event
        return self.exit_code if self.exit_code is not None else EXIT_FAILURE
