# =============================================================================
# app/middleware/ - HTTP Middleware
# =============================================================================
# - rate_limit.py: per-IP fixed window rate limiting
# - security_headers.py: security response headers
# - request_context.py: request ids and access logging
# =============================================================================

from app.middleware.rate_limit import RateLimiter, RateLimitMiddleware
from app.middleware.request_context import RequestContextMiddleware, get_request_id
from app.middleware.security_headers import SecurityHeadersMiddleware

__all__ = [
    "RateLimiter",
    "RateLimitMiddleware",
    "RequestContextMiddleware",
    "SecurityHeadersMiddleware",
    "get_request_id",
]
