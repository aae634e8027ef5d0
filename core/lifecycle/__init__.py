# =============================================================================
# core/lifecycle/ - Process Lifecycle
# =============================================================================
# Graceful shutdown of the API process:
# - coordinator.py: ShutdownCoordinator and its trigger subscriptions
# - listener.py: uvicorn adapter implementing the Listener interface
# =============================================================================

from .coordinator import (
    DEFAULT_GRACE_PERIOD,
    Listener,
    ShutdownCoordinator,
    ShutdownPhase,
    ShutdownReason,
    ShutdownTrigger,
    StorageHandle,
    Subscription,
    hard_exit,
)
from .listener import ManagedServer, UvicornListener

__all__ = [
    "DEFAULT_GRACE_PERIOD",
    "Listener",
    "ManagedServer",
    "ShutdownCoordinator",
    "ShutdownPhase",
    "ShutdownReason",
    "ShutdownTrigger",
    "StorageHandle",
    "Subscription",
    "UvicornListener",
    "hard_exit",
]
