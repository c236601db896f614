"""
API exception classes and error handling utilities for ClearLens.
"""

from fastapi.responses import JSONResponse
from fastapi import status
from typing import Optional


GENERIC_FAILURE = "Failed to generate insight"


class ClearLensAPIError(Exception):
    """Base exception for ClearLens API errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[dict] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def headers(self) -> Optional[dict]:
        return None

    def to_response(self) -> JSONResponse:
        """Convert exception to FastAPI JSONResponse."""
        return JSONResponse(
            status_code=self.status_code,
            content={
                "error": self.message,
                "error_code": self.error_code,
                **({"details": self.details} if self.details else {}),
            },
            headers=self.headers(),
        )


class ValidationError(ClearLensAPIError):
    """Raised when the question or user id is missing or invalid."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[dict] = None):
        full_details = details or {}
        if field:
            full_details["field"] = field
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="VALIDATION_ERROR",
            details=full_details,
        )


class RateLimitError(ClearLensAPIError):
    """Raised when rate limit is exceeded."""

    def __init__(self, retry_after: int = 60):
        self.retry_after = retry_after
        super().__init__(
            message=f"Rate limit exceeded. Try again in {retry_after} seconds.",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            error_code="RATE_LIMIT_EXCEEDED",
            details={"retry_after": retry_after},
        )

    def headers(self) -> Optional[dict]:
        return {"Retry-After": str(self.retry_after)}


class ConfigurationError(ClearLensAPIError):
    """Raised when the completion service credentials are missing.

    Operator-fixable; the message is safe to return because it names no secret.
    """

    def __init__(self, missing: str):
        self.missing = missing
        super().__init__(
            message="Server misconfigured: missing completion service credentials",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="CONFIGURATION_ERROR",
        )


class UpstreamError(ClearLensAPIError):
    """Raised when the completion call fails, times out or returns garbage.

    The upstream detail stays on the exception for server-side logging and is
    never rendered into the response body.
    """

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(
            message=GENERIC_FAILURE,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="UPSTREAM_ERROR",
        )


class InternalServerError(ClearLensAPIError):
    """Raised for internal server errors."""

    def __init__(self, message: str = GENERIC_FAILURE):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="INTERNAL_SERVER_ERROR",
        )


class PersistenceError(Exception):
    """Raised by memory stores on read/write failure. Never reaches the client."""

    def __init__(self, operation: str, user_id: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.user_id = user_id
        self.cause = cause
        super().__init__(f"memory {operation} failed for {user_id}: {cause}")
