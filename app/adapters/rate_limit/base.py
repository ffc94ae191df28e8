"""Rate limiter interfaces.

The API depends on this abstraction, not on the concrete algorithm.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single admission check.

    A denial is a normal outcome, not an error.

    Attributes:
        allowed: Whether the request may proceed.
        limit: Max requests per window.
        count: Requests seen in the current window, this one included.
        remaining: Requests left in the current window (0 when blocked).
        retry_after_seconds: Seconds until the window resets; only set when blocked.
    """

    allowed: bool
    limit: int
    count: int
    remaining: int
    retry_after_seconds: int | None = None


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    async def admit(self, identity: str, *, timeout: float | None = None) -> RateLimitResult:
        """Record one request for ``identity`` and decide whether to admit it.

        Args:
            identity: Non-empty key such as a client IP or username.
            timeout: Per-store-call bound in seconds (overrides the default).

        Returns:
            RateLimitResult describing whether it was allowed.

        Raises:
            InvalidIdentityError: If identity is empty.
            StoreUnavailableError: If the store is unreachable or times out.
        """
        raise NotImplementedError
