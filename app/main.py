# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# Builds the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   starter-api                            # app/server.py, graceful shutdown
#   uvicorn app.main:app --reload          # development only
# =============================================================================

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from app.auth import routes as auth_routes
from app.config import settings
from app.exceptions import register_exception_handlers
from app.middleware import (
    RateLimitMiddleware,
    RequestContextMiddleware,
    SecurityHeadersMiddleware,
)
from app.routers import health
from app.routers.health import API_VERSION

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    The process-level shutdown sequence (signals, draining, storage
    disconnect) lives in app/server.py; this only covers the ASGI app.
    """
    logger.info(f"Starting Starter API in {settings.ENVIRONMENT} mode")
    logger.info(f"CORS origins: {settings.cors_origins_list}")

    yield

    logger.info("Shutting down Starter API")


def create_app() -> FastAPI:
    """Build a configured FastAPI application."""
    app = FastAPI(
        title="Starter API",
        description="Boilerplate for CRUD-style HTTP APIs on FastAPI and Supabase.",
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        openapi_tags=[
            {
                "name": "Auth",
                "description": "Endpoints for the authenticated user",
            },
            {
                "name": "Health",
                "description": "API health, liveness and readiness checks",
            },
        ],
    )

    # =========================================================================
    # Middleware
    # =========================================================================
    # add_middleware wraps, so the last one added runs first

    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(SecurityHeadersMiddleware, enable_hsts=settings.is_production)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.add_middleware(RequestContextMiddleware)

    # =========================================================================
    # Exception Handlers
    # =========================================================================

    register_exception_handlers(app)

    # =========================================================================
    # Routers
    # =========================================================================

    app.include_router(
        auth_routes.router,
        prefix="/api/v1/auth",
        tags=["Auth"]
    )

    app.include_router(
        health.router,
        prefix="/api/v1",
        tags=["Health"]
    )

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint - returns API info."""
        return {
            "message": "Starter API",
            "version": API_VERSION,
            "environment": settings.ENVIRONMENT,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


app = create_app()
