# =============================================================================
# app/middleware/request_context.py - Request IDs and Access Logging
# =============================================================================
# Gives every request a correlation id and writes one access log line when
# it completes. uvicorn's access log is turned off in favour of this one.
# =============================================================================

import logging
import time
import uuid
from contextvars import ContextVar
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

# Holds the request ID for the duration of a request
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def get_request_id() -> str:
    """Get the current request ID from context."""
    return request_id_var.get()


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Middleware to set up request context with correlation ID.

    - Reuses X-Request-ID / X-Correlation-ID from the client, or generates one
    - Stores it in a context variable for logging
    - Echoes it in the X-Request-ID response header
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = (
            request.headers.get("X-Request-ID")
            or request.headers.get("X-Correlation-ID")
            or str(uuid.uuid4())
        )
        token = request_id_var.set(request_id)
        started = time.perf_counter()
        client = request.client.host if request.client else "unknown"

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                f"{client} {request.method} {request.url.path} failed [{request_id}]"
            )
            raise
        finally:
            request_id_var.reset(token)

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"{client} {request.method} {request.url.path} "
            f"{response.status_code} {elapsed_ms:.1f}ms [{request_id}]"
        )
        response.headers["X-Request-ID"] = request_id
        return response
