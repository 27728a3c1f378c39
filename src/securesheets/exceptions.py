"""Exceptions raised by the securesheets client.

Every error derives from SecureSheetsError so callers can catch the whole
family in one place. Retry policy belongs to the caller:
- ConfigurationError, ValidationError: fatal, fix the setup or the input
- RateLimitExceeded: retry after ``resets_at``
- RequestTimeoutError, NetworkError: retryable
- ServerError: depends on the server-provided ``code``
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any


class SecureSheetsError(Exception):
    """Base exception for securesheets errors."""

    code: str | None = None


class ConfigurationError(SecureSheetsError):
    """Raised when the client is missing or has invalid configuration."""


class ValidationError(SecureSheetsError, ValueError):
    """Raised when caller-supplied request parameters are malformed."""


class NonceExhaustionError(SecureSheetsError):
    """Raised when no unique nonce could be generated."""

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"Failed to generate a unique nonce after {attempts} attempts")


class RateLimitExceeded(SecureSheetsError):
    """Raised when the client-side hourly request quota is used up."""

    def __init__(self, resets_at: float, max_requests: int) -> None:
        self.resets_at = resets_at
        self.max_requests = max_requests
        reset_iso = datetime.fromtimestamp(resets_at, UTC).isoformat()
        super().__init__(
            f"Rate limit of {max_requests} requests per hour exceeded. "
            f"Resets at {reset_iso}"
        )


class RequestTimeoutError(SecureSheetsError, TimeoutError):
    """Raised when a request exceeds its deadline."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Request timed out after {timeout:g} seconds")


class NetworkError(SecureSheetsError):
    """Raised on transport failures or unparseable response bodies."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ServerError(SecureSheetsError):
    """Raised when the API returns a structured error response."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        status_code: int | None = None,
        server_response: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.status_code = status_code
        self.server_response = server_response or {}

    @classmethod
    def from_response(
        cls, data: dict[str, Any], status_code: int | None = None
    ) -> ServerError:
        """Build a ServerError from an error body like ``{error, code, details}``."""
        message = str(data.get("error") or data.get("message") or "Unknown server error")
        code = data.get("code")
        if code:
            message += f" (Code: {code})"
        if data.get("details"):
            message += f" - {data['details']}"
        return cls(
            message,
            code=str(code) if code else None,
            status_code=status_code,
            server_response=data,
        )


def format_error(error: BaseException) -> dict[str, Any]:
    """Format an exception as a display-friendly dict.

    Args:
        error: Any exception, typically a SecureSheetsError

    Returns:
        Dict with message, code, details and an ISO 8601 timestamp
    """
    return {
        "message": str(error),
        "code": getattr(error, "code", None) or "UNKNOWN_ERROR",
        "details": getattr(error, "server_response", None) or None,
        "timestamp": datetime.now(UTC).isoformat(),
    }
