# =============================================================================
# app/routers/health.py - Health Check Endpoints
# =============================================================================
# Provides health check endpoints for monitoring and load balancers.
# Readiness turns 503 as soon as a graceful shutdown starts, so load
# balancers stop routing new traffic to a draining process.
# =============================================================================

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.config import settings
from app.dependencies import ShutdownDep, SupabaseDep

logger = logging.getLogger(__name__)

router = APIRouter()

# Process start, for uptime reporting
STARTED_AT = time.monotonic()

API_VERSION = "1.0.0"


# =============================================================================
# Response Models
# =============================================================================

class ServicesStatus(BaseModel):
    """Status of backing services."""
    database: str


class HealthResponse(BaseModel):
    """Basic health check response."""
    uptime: float
    message: str
    timestamp: str
    environment: str
    version: str
    services: ServicesStatus


class ReadinessResponse(BaseModel):
    """Readiness check response."""
    status: str
    reason: str | None = None


class LivenessResponse(BaseModel):
    """Liveness check response."""
    status: str


# =============================================================================
# Helpers
# =============================================================================

async def _database_connected(supabase: SupabaseDep) -> bool:
    try:
        await run_in_threadpool(supabase.ping)
        return True
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        return False


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/health", response_model=HealthResponse)
async def health_check(supabase: SupabaseDep):
    """
    Health check endpoint.

    Returns process uptime and database connectivity.
    Responds 503 when the database does not answer.
    """
    connected = await _database_connected(supabase)

    health = HealthResponse(
        uptime=round(time.monotonic() - STARTED_AT, 3),
        message="OK" if connected else "Error checking services",
        timestamp=datetime.now(timezone.utc).isoformat(),
        environment=settings.ENVIRONMENT,
        version=API_VERSION,
        services=ServicesStatus(database="connected" if connected else "disconnected"),
    )
    return JSONResponse(
        status_code=200 if connected else 503,
        content=health.model_dump(),
    )


@router.get("/health/live", response_model=LivenessResponse)
async def liveness_check():
    """
    Liveness check endpoint.

    Returns whether the service process is alive.
    Used by Kubernetes/Docker for restart decisions.
    """
    return LivenessResponse(status="alive")


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(supabase: SupabaseDep, shutdown: ShutdownDep):
    """
    Readiness check endpoint.

    Returns whether the service should receive traffic: the database must
    answer and no graceful shutdown may be in progress.
    """
    if shutdown is not None and shutdown.is_shutting_down:
        body = ReadinessResponse(status="not ready", reason="shutting down")
        return JSONResponse(status_code=503, content=body.model_dump())

    if not await _database_connected(supabase):
        body = ReadinessResponse(status="not ready", reason="database not connected")
        return JSONResponse(status_code=503, content=body.model_dump())

    return ReadinessResponse(status="ready")
