"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors. Services raise the domain
subclasses below; the global exception handlers convert them to the
response envelope ``{status, message, errors?}``:

- 4xx errors → ``status: "fail"`` (client fault)
- 5xx errors → ``status: "error"`` (server fault, generic message unless
  debug mode is on)

Non-AppError exceptions bubble up as 500s (with Sentry reporting in production).
"""

from __future__ import annotations

import math
from datetime import timedelta
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shared.logging import get_logger

log = get_logger(__name__)

GENERIC_SERVER_MESSAGE = "An internal server error occurred."


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
        errors: Optional[dict[str, str]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details
        self.errors = errors

    @property
    def is_server_fault(self) -> bool:
        return self.status_code >= 500

    def to_dict(self, *, debug: bool = False) -> dict:
        message = self.message
        if self.is_server_fault and not debug:
            message = GENERIC_SERVER_MESSAGE
        payload: dict = {
            "status": "error" if self.is_server_fault else "fail",
            "message": message,
            "code": self.error_code,
        }
        if self.field is not None:
            payload["field"] = self.field
        if self.errors is not None:
            payload["errors"] = self.errors
        if self.details is not None and (debug or not self.is_server_fault):
            payload["details"] = self.details
        return payload

    def headers(self) -> Optional[dict[str, str]]:
        return None


class ValidationError(AppError):
    status_code = 400
    error_code = "validation_error"


class AuthenticationError(AppError):
    status_code = 401
    error_code = "authentication_error"


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"


class ConflictError(AppError):
    status_code = 409
    error_code = "conflict"


class RateLimitError(AppError):
    status_code = 429
    error_code = "rate_limit_exceeded"


# ── Domain errors ────────────────────────────────────────────────────────────


class AlreadyInitializedError(ConflictError):
    error_code = "already_initialized"

    def __init__(self, message: str = "Cannot initialize the site more than once.") -> None:
        super().__init__(message)


class AccountNotFoundError(NotFoundError):
    error_code = "account_not_found"

    def __init__(self, message: str = "No site account matches the request.") -> None:
        super().__init__(message)


class AlreadyVerifiedError(ConflictError):
    error_code = "already_verified"

    def __init__(self, message: str = "Email address is already verified.") -> None:
        super().__init__(message)


class TooSoonError(RateLimitError):
    """A new code was requested before the resend backoff elapsed."""

    error_code = "too_soon"

    def __init__(self, remaining: timedelta) -> None:
        self.remaining = remaining
        self.retry_after_seconds = max(1, math.ceil(remaining.total_seconds()))
        super().__init__(
            f"Please wait {self.retry_after_seconds} seconds before requesting a new code.",
            details={"retry_after_seconds": self.retry_after_seconds},
        )

    def headers(self) -> Optional[dict[str, str]]:
        return {"Retry-After": str(self.retry_after_seconds)}


class InvalidOrExpiredCodeError(ValidationError):
    error_code = "invalid_or_expired_code"

    def __init__(self, message: str = "Invalid or expired verification code.") -> None:
        super().__init__(message, field="code")


class InvalidOrExpiredTokenError(ValidationError):
    error_code = "invalid_or_expired_token"

    def __init__(self, message: str = "Password reset token is invalid or has expired.") -> None:
        super().__init__(message, field="token")


class ValidationFailedError(ValidationError):
    """One or more input fields failed validation; ``errors`` maps field → message."""

    error_code = "validation_failed"

    def __init__(self, errors: dict[str, str], message: str = "Validation failed.") -> None:
        super().__init__(message, errors=errors)

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationFailedError":
        return cls({field: message})


class InvalidCredentialsError(AuthenticationError):
    error_code = "invalid_credentials"

    def __init__(self, message: str = "Invalid email or password.") -> None:
        super().__init__(message)


class MissingTokenError(AuthenticationError):
    error_code = "missing_token"

    def __init__(self, message: str = "Token is not provided.") -> None:
        super().__init__(message)


class InvalidTokenError(AuthenticationError):
    error_code = "invalid_token"

    def __init__(self, message: str = "Token is invalid or has expired.") -> None:
        super().__init__(message)


class ConcurrentUpdateError(ConflictError):
    error_code = "concurrent_update"

    def __init__(
        self, message: str = "The site account was modified concurrently. Please retry."
    ) -> None:
        super().__init__(message)


class DeliveryFailedError(AppError):
    status_code = 502
    error_code = "delivery_failed"

    def __init__(self, message: str = "Failed to send email.") -> None:
        super().__init__(message)


class StoreUnavailableError(AppError):
    status_code = 503
    error_code = "store_unavailable"

    def __init__(self, message: str = "Account store is unavailable.") -> None:
        super().__init__(message)


def _validation_errors_to_fields(exc: RequestValidationError) -> dict[str, str]:
    fields: dict[str, str] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        name = ".".join(loc) or "body"
        message = err.get("msg", "Invalid value.")
        # pydantic prefixes custom ValueError messages with "Value error, "
        if message.startswith("Value error, "):
            message = message[len("Value error, ") :]
        fields.setdefault(name, message)
    return fields


def register_error_handlers(app: FastAPI, *, debug: bool = False) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.is_server_fault:
            log.error(
                "request_failed",
                path=request.url.path,
                error_code=exc.error_code,
                error=str(exc),
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(debug=debug),
            headers=exc.headers(),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        error = ValidationFailedError(_validation_errors_to_fields(exc))
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

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
        )
        content: dict = {
            "status": "error",
            "message": GENERIC_SERVER_MESSAGE,
            "code": "internal_error",
        }
        if debug:
            content["details"] = {"error": str(exc), "error_type": type(exc).__name__}
        return JSONResponse(status_code=500, content=content)
