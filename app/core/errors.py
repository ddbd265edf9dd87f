"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability.

    Details are logged but never rendered to clients.
    """

    code: str
    message: str
    field: str
    max_length: int
    actual_length: int
    max_bytes: int
    path: str
    operation: str
    errno: int
    retry_after: int
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message shown to the client.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when a form field or the request body is invalid."""


class DuplicateSubmissionAppError(AppError):
    """Raised when the email was already entered."""


class PayloadTooLargeAppError(AppError):
    """Raised when the request body exceeds the configured size."""


@dataclass
class RateLimitAppError(AppError):
    """Raised when a client exceeded its request budget.

    Attributes:
        headers: Optional Retry-After / X-RateLimit-* headers for the response.
    """

    headers: dict[str, str] | None = None


class StorageAppError(AppError):
    """Raised when the data directory or a data file cannot be read or written."""
