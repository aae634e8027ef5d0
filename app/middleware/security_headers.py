# =============================================================================
# app/middleware/security_headers.py - Security Response Headers
# =============================================================================

from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

DEFAULT_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "X-DNS-Prefetch-Control": "off",
    "X-Permitted-Cross-Domain-Policies": "none",
}

HSTS_HEADER = ("Strict-Transport-Security", "max-age=15552000; includeSubDomains")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Adds conservative security headers to every response.

    Headers a route already set are left alone. HSTS is only sent when
    `enable_hsts` is on, since it pins browsers to HTTPS.
    """

    def __init__(self, app, enable_hsts: bool = False):
        super().__init__(app)
        self.headers = dict(DEFAULT_SECURITY_HEADERS)
        if enable_hsts:
            self.headers[HSTS_HEADER[0]] = HSTS_HEADER[1]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for key, value in self.headers.items():
            response.headers.setdefault(key, value)
        return response
