# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - health.py: Health, liveness and readiness probes
#
# Each router is mounted in main.py with a URL prefix. Add resource routers
# here as the API grows.
# =============================================================================

from . import health

__all__ = [
    "health",
]
