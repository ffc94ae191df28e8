"""Application-level exception types.

Business outcomes (a denied request, a missing session) are return values,
not exceptions. The types below cover caller mistakes and infrastructure
failures only, so a handler can always tell "deny" from "unavailable".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    operation: str
    backend: str
    timeout_seconds: float


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
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class InvalidIdentityError(ValidationAppError):
    """Raised when the identity key is empty or cannot be resolved.

    Always raised before any store round trip.
    """


class StoreUnavailableError(AppError):
    """Raised when the key-value store cannot be reached or times out."""
