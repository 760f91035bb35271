# =============================================================================
# app/exceptions.py - Error Codes & Exception Handlers
# =============================================================================
# Centralized exception handling for the API.
#
# Services raise AquaBotException subclasses. The handlers below turn them
# into the standard error envelope (see app/responses.py). Every error code
# has exactly one HTTP status, listed in ERROR_STATUS.
# =============================================================================

import logging
from enum import Enum
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.responses import error_response

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Machine-readable error codes returned in error.code."""
    AUTH_REQUIRED = "AUTH_REQUIRED"
    AUTH_EXPIRED = "AUTH_EXPIRED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    TIER_REQUIRED = "TIER_REQUIRED"
    DAILY_LIMIT_REACHED = "DAILY_LIMIT_REACHED"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    INVALID_INPUT = "INVALID_INPUT"
    STRIPE_ERROR = "STRIPE_ERROR"
    AI_UNAVAILABLE = "AI_UNAVAILABLE"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    CONFLICT = "CONFLICT"


ERROR_STATUS: dict[ErrorCode, int] = {
    ErrorCode.AUTH_REQUIRED: 401,
    ErrorCode.AUTH_EXPIRED: 401,
    ErrorCode.PERMISSION_DENIED: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.TIER_REQUIRED: 403,
    ErrorCode.DAILY_LIMIT_REACHED: 429,
    ErrorCode.RATE_LIMIT_EXCEEDED: 429,
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.STRIPE_ERROR: 500,
    ErrorCode.AI_UNAVAILABLE: 503,
    ErrorCode.INTERNAL_SERVER_ERROR: 500,
    ErrorCode.CONFLICT: 409,
}


class AquaBotException(Exception):
    """
    Base exception for the AquaBotAI API.

    All custom exceptions inherit from this class. The status code is
    derived from the error code unless given explicitly.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_SERVER_ERROR,
        status_code: int | None = None,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code or ERROR_STATUS[code]
        self.suggestion = suggestion
        self.details = details or {}
        self.headers = headers

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to the error part of the envelope."""
        result: dict[str, Any] = {
            "code": self.code.value,
            "message": self.message,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Auth Exceptions
# =============================================================================

class AuthRequiredError(AquaBotException):
    """Raised when a request has no valid credentials."""

    def __init__(self, message: str = "You must be logged in"):
        super().__init__(
            message=message,
            code=ErrorCode.AUTH_REQUIRED,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthExpiredError(AquaBotException):
    """Raised when the bearer token has expired."""

    def __init__(self):
        super().__init__(
            message="Your session has expired",
            code=ErrorCode.AUTH_EXPIRED,
            suggestion="Sign in again to get a fresh token",
            headers={"WWW-Authenticate": "Bearer"},
        )


class PermissionDeniedError(AquaBotException):
    """Raised when a user touches a row they don't own."""

    def __init__(self, message: str = "You do not have access to this resource"):
        super().__init__(message=message, code=ErrorCode.PERMISSION_DENIED)


# =============================================================================
# Resource Exceptions
# =============================================================================

class NotFoundError(AquaBotException):
    """Raised when a row doesn't exist (or is soft-deleted)."""

    def __init__(self, resource: str, resource_id: str | None = None):
        details = {"id": resource_id} if resource_id else None
        super().__init__(
            message=f"{resource} not found",
            code=ErrorCode.NOT_FOUND,
            details=details,
        )


class TankNotFoundError(NotFoundError):
    def __init__(self, tank_id: str | None = None):
        super().__init__("Tank", tank_id)


class ConflictError(AquaBotException):
    """Raised when the request conflicts with the current state of a row."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, code=ErrorCode.CONFLICT, details=details)


class InvalidInputError(AquaBotException):
    """Raised for validation failures detected inside services."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, code=ErrorCode.INVALID_INPUT, details=details)


# =============================================================================
# Tier & Limit Exceptions
# =============================================================================

class TierRequiredError(AquaBotException):
    """Raised when the user's plan doesn't include a feature."""

    def __init__(self, message: str, required_tier: str | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.TIER_REQUIRED,
            suggestion="Upgrade your plan from the billing page",
            details={"required_tier": required_tier} if required_tier else None,
        )


class DailyLimitReachedError(AquaBotException):
    """Raised when the daily AI allowance is used up."""

    def __init__(self, message: str):
        super().__init__(message=message, code=ErrorCode.DAILY_LIMIT_REACHED)


class RateLimitExceededError(AquaBotException):
    """Raised when a request-rate limit trips."""

    def __init__(self, message: str, headers: dict[str, str] | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.RATE_LIMIT_EXCEEDED,
            headers=headers,
        )


# =============================================================================
# External Service Exceptions
# =============================================================================

class AIUnavailableError(AquaBotException):
    """Raised when the LLM provider fails after all retries."""

    def __init__(self, message: str = "AI service is temporarily unavailable. Please try again."):
        super().__init__(
            message=message,
            code=ErrorCode.AI_UNAVAILABLE,
            suggestion="Wait a minute and retry - the provider may be overloaded",
        )


class StripeError(AquaBotException):
    """Raised when a Stripe call fails."""

    def __init__(self, message: str = "Payment provider error"):
        super().__init__(message=message, code=ErrorCode.STRIPE_ERROR)


class InternalError(AquaBotException):
    """Raised when a database call fails unexpectedly."""

    def __init__(self, message: str = "An unexpected error occurred", details: dict[str, Any] | None = None):
        super().__init__(message=message, code=ErrorCode.INTERNAL_SERVER_ERROR, details=details)


# =============================================================================
# Exception Handlers
# =============================================================================

def format_validation_errors(errors: list[dict[str, Any]]) -> str:
    """
    Flatten pydantic errors into "field: msg1, msg2; other: msg".

    The "body"/"query"/"path" location prefix is dropped so clients see
    the field name they sent.
    """
    grouped: dict[str, list[str]] = {}
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "general"
        grouped.setdefault(field, []).append(err.get("msg", "Invalid value"))

    return "; ".join(f"{field}: {', '.join(msgs)}" for field, msgs in grouped.items())


async def aquabot_exception_handler(
    request: Request,
    exc: AquaBotException
) -> JSONResponse:
    """Convert AquaBotException to the error envelope."""
    if exc.status_code >= 500:
        logger.error(f"{exc.code.value} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code.value} on {request.url.path}: {exc.message}")

    return error_response(
        code=exc.code.value,
        message=exc.message,
        status_code=exc.status_code,
        request=request,
        suggestion=exc.suggestion,
        details=exc.details,
        headers=exc.headers,
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Convert request validation errors to INVALID_INPUT."""
    message = format_validation_errors(exc.errors()) or "Invalid input"
    return error_response(
        code=ErrorCode.INVALID_INPUT.value,
        message=message,
        status_code=ERROR_STATUS[ErrorCode.INVALID_INPUT],
        request=request,
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """Log unexpected exceptions and hide their details from clients."""
    logger.exception(f"Unexpected error on {request.method} {request.url.path}: {exc}")
    return error_response(
        code=ErrorCode.INTERNAL_SERVER_ERROR.value,
        message="An unexpected error occurred",
        status_code=500,
        request=request,
    )
