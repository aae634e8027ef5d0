# =============================================================================
# app/exceptions.py - Custom Exception Handlers
# =============================================================================
# Centralized exception handling for the API.
# Every error leaves the API in the same envelope:
#   {"success": false, "message": ..., "statusCode": ..., "code": ...}
# =============================================================================

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def error_body(
    message: str,
    status_code: int,
    code: str,
    suggestion: str | None = None,
    details: Any = None,
) -> dict[str, Any]:
    """Build the JSON body shared by all error responses."""
    body: dict[str, Any] = {
        "success": False,
        "message": message,
        "statusCode": status_code,
        "code": code,
    }
    if suggestion:
        body["suggestion"] = suggestion
    if details:
        body["details"] = details
    return body


class ApiException(Exception):
    """
    Base exception for the API.

    All custom exceptions inherit from this class.
    Provides structured error responses with actionable suggestions.
    """

    def __init__(
        self,
        message: str,
        code: str = "API_ERROR",
        status_code: int = 500,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        return error_body(
            self.message,
            self.status_code,
            self.code,
            suggestion=self.suggestion,
            details=self.details,
        )


class NotFoundError(ApiException):
    """Raised when a requested resource doesn't exist."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            message=f"{resource} not found: {resource_id}",
            code="NOT_FOUND",
            status_code=404,
            suggestion=f"Check that the {resource.lower()} id is correct",
            details={"id": resource_id},
        )


class ServiceUnavailableError(ApiException):
    """Raised when a backing service cannot be reached."""

    def __init__(self, service: str, error: str):
        super().__init__(
            message=f"{service} is unavailable",
            code="SERVICE_UNAVAILABLE",
            status_code=503,
            suggestion="Try again later or contact support if the issue persists",
            details={"service": service, "error": error},
        )


# Machine codes for plain HTTP errors raised by FastAPI/Starlette
HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    429: "TOO_MANY_REQUESTS",
}


# =============================================================================
# Exception Handlers
# =============================================================================

async def api_exception_handler(request: Request, exc: ApiException) -> JSONResponse:
    """Convert ApiException to JSON response."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """
    Wrap HTTPException (including unmatched routes) in the error envelope.

    Headers set on the exception (e.g. WWW-Authenticate) are preserved.
    """
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = "Route not found"
    else:
        message = str(exc.detail)

    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(
            message,
            exc.status_code,
            HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR"),
        ),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Handle Pydantic validation errors.

    Converts validation errors to user-friendly messages.
    """
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg", ""),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content=error_body(
            "Validation error",
            422,
            "VALIDATION_ERROR",
            details={"errors": errors},
        ),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions without leaking internals."""
    logger.exception(f"Unexpected error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content=error_body("An unexpected error occurred", 500, "INTERNAL_ERROR"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach every handler above to the application."""
    app.add_exception_handler(ApiException, api_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
