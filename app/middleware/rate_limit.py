# =============================================================================
# app/middleware/rate_limit.py - Per-IP Rate Limiting
# =============================================================================
# Fixed-window limiter: each client IP may make `max_requests` requests per
# `window_seconds`. Counters live in process memory, so limits are per worker.
# =============================================================================

import logging
import time
from dataclasses import dataclass
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from app.exceptions import error_body

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


@dataclass
class RateLimitWindow:
    """Request count for one client in the current window."""
    started_at: float
    count: int = 0


class RateLimiter:
    """
    Fixed-window rate limiter keyed by client IP.

    Args:
        max_requests: Requests allowed per window
        window_seconds: Window length in seconds
        clock: Monotonic time source (injectable for tests)
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, RateLimitWindow] = {}

    @staticmethod
    def client_id(request: Request) -> str:
        """
        Client IP of the connection.

        Behind a proxy uvicorn rewrites request.client from X-Forwarded-For,
        but only for addresses in forwarded_allow_ips, so the header itself
        is never read here.
        """
        return request.client.host if request.client else "unknown"

    def hit(self, client_id: str) -> tuple[bool, dict[str, str]]:
        """
        Count one request for a client.

        Returns:
            Tuple of (allowed, rate limit headers)
        """
        now = self._clock()
        window = self._windows.get(client_id)
        if window is None or now - window.started_at >= self.window_seconds:
            window = RateLimitWindow(started_at=now)
            self._windows[client_id] = window
            self._evict_expired(now)

        window.count += 1
        reset_in = max(0.0, window.started_at + self.window_seconds - now)

        headers = {
            "X-RateLimit-Limit": str(self.max_requests),
            "X-RateLimit-Remaining": str(max(0, self.max_requests - window.count)),
            "X-RateLimit-Reset": str(int(reset_in) + 1),
        }

        if window.count <= self.max_requests:
            return True, headers

        headers["Retry-After"] = str(int(reset_in) + 1)
        return False, headers

    def _evict_expired(self, now: float) -> None:
        expired = [
            key for key, window in self._windows.items()
            if now - window.started_at >= self.window_seconds
        ]
        for key in expired:
            del self._windows[key]


class RateLimitMiddleware(BaseHTTPMiddleware):
    """FastAPI middleware for rate limiting."""

    def __init__(
        self,
        app,
        max_requests: int = 400,
        window_seconds: float = 900,
        exclude_paths: list[str] | None = None,
    ):
        super().__init__(app)
        self.limiter = RateLimiter(max_requests, window_seconds)
        self.exclude_paths = exclude_paths or ["/api/v1/health"]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request with rate limiting."""
        if any(request.url.path.startswith(p) for p in self.exclude_paths):
            return await call_next(request)

        client_id = self.limiter.client_id(request)
        allowed, headers = self.limiter.hit(client_id)

        if not allowed:
            logger.warning(f"Rate limit exceeded for {client_id} on {request.url.path}")
            return JSONResponse(
                status_code=429,
                content=error_body(RATE_LIMIT_MESSAGE, 429, "TOO_MANY_REQUESTS"),
                headers=headers,
            )

        response = await call_next(request)
        for key, value in headers.items():
            response.headers[key] = value
        return response
