"""Application-level exception types.

This module defines the errors raised by the decision engine, the counter
store adapters and the HTTP integration, enabling consistent error handling,
logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    key_hash: str
    store: str
    limit: int
    window_s: int
    error_type: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class RateLimitExceededAppError(AppError):
    """Raised by the default denied handler when a request busts its quota."""


class StoreUnavailableAppError(AppError):
    """Raised by the HTTP integration when the counter store failed.

    The engine itself propagates store exceptions unchanged; this wraps them
    (as ``__cause__``) once a caller has chosen to fail closed.
    """


class NoSuchKeyError(Exception):
    """Signal from a counter store that the key is unknown or was purged.

    Not an application error: the engine handles it by starting a fresh
    window and it is never surfaced to callers.
    """

    def __init__(self, key: str) -> None:
        super().__init__(f"no such key: {key!r}")
        self.key = key
