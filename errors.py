"""
Typed errors for the OTP login flow and the handlers that render them.

Services and adapters raise AppError subclasses; register_error_handlers()
turns each into a JSON body of {"error", "code"[, "field", "details"]} with
the class status code.

Authentication failures deliberately share one message per class so the
response never tells a caller *why* an OTP or token was rejected.

Anything else is a server fault: logged, reported to Sentry when enabled,
and answered with a generic 500.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


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


class AuthenticationError(AppError):
    status_code = 401
    error_code = "authentication_error"


class OtpMismatchError(AuthenticationError):
    """Wrong, expired or never-issued OTP. The three causes are not distinguished."""

    error_code = "otp_invalid_or_expired"

    def __init__(self, message: str = "invalid or expired otp") -> None:
        super().__init__(message)


class TokenError(AuthenticationError):
    """Bad signature, expired, malformed, or wrong token class."""

    error_code = "invalid_token"

    def __init__(self, message: str = "invalid token") -> None:
        super().__init__(message)


class MissingTokenError(AuthenticationError):
    error_code = "missing_token"

    def __init__(self, message: str = "missing token") -> None:
        super().__init__(message)


class UnauthorizedError(AppError):
    """Raised by the identity guard. Serialises to an empty body."""

    status_code = 401
    error_code = "unauthorized"

    def __init__(self, message: str = "unauthorized") -> None:
        super().__init__(message)

    def to_dict(self) -> dict:
        return {}


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"


class ConflictError(AppError):
    status_code = 409
    error_code = "conflict"


class RateLimitError(AppError):
    status_code = 429
    error_code = "rate_limit_exceeded"


class DeliveryError(AppError):
    status_code = 502
    error_code = "delivery_failed"


class StoreUnavailableError(AppError):
    """Transport or infrastructure failure talking to Redis or MongoDB."""

    status_code = 503
    error_code = "store_unavailable"


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        err = ValidationError(
            "invalid request", details=jsonable_encoder(exc.errors(), exclude={"ctx", "input"})
        )
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        return JSONResponse(
            status_code=500,
            content={"error": "internal server error", "code": "internal_error"},
        )
