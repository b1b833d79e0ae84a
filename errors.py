"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors. The global exception handler
converts AppError subclasses to consistent JSON responses.

Server-side failures (AppError with status >= 500 and any non-AppError
exception) are logged with their stack and answered with a generic body;
internal detail never reaches the client.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from shared.logging import get_logger

log = get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details

    def to_dict(self) -> dict:
        payload: dict = {"error": self.message, "code": self.error_code}
        if self.field is not None:
            payload["field"] = self.field
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(AppError):
    status_code = 400
    error_code = "validation_error"


class DuplicateIdentityError(AppError):
    status_code = 400
    error_code = "duplicate_identity"


class NotRegisteredError(AppError):
    status_code = 400
    error_code = "not_registered"


class InvalidOrExpiredCodeError(AppError):
    """Wrong, unknown, consumed and expired codes all surface as this one error."""

    status_code = 400
    error_code = "invalid_or_expired_code"


class LockedOutError(AppError):
    status_code = 400
    error_code = "locked_out"


class AuthenticationError(AppError):
    status_code = 401
    error_code = "authentication_error"


class SessionExpiredError(AuthenticationError):
    """Token is well-formed but predates the subject's last credential change."""

    error_code = "session_expired"


class RateLimitError(AppError):
    status_code = 429
    error_code = "rate_limit_exceeded"


class DeliveryError(AppError):
    """An email/SMS provider failed to deliver a code."""

    status_code = 500
    error_code = "internal_error"


def _internal_error_response() -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"error": INTERNAL_ERROR_MESSAGE, "code": "internal_error"},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            log.error(
                "request_failed",
                path=request.url.path,
                error=exc.message,
                error_type=type(exc).__name__,
                exc_info=exc,
            )
            return _internal_error_response()
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request body", "code": "validation_error"},
        )

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        log.warning("route_rate_limited", path=request.url.path, limit=str(exc.detail))
        return JSONResponse(
            status_code=429,
            content={
                "error": "Too many attempts. Try again later.",
                "code": RateLimitError.error_code,
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        # Sentry integration: if sentry_sdk is initialized it will auto-capture
        # unhandled exceptions before this handler fires.
        log.error(
            "unhandled_exception",
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
            exc_info=exc,
        )
        return _internal_error_response()
