"""Key-value store interface.

Components depend on this abstraction rather than on a concrete client so the
backend (Redis in production, in-memory for tests) can be swapped freely.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import Awaitable, TypeVar

from app.core.errors import StoreUnavailableError

T = TypeVar("T")

# Redis TTL sentinels
TTL_NO_EXPIRY = -1
TTL_MISSING_KEY = -2


class ExpireCondition(str, Enum):
    """Condition under which ``expire`` installs a new TTL.

    Mirrors the Redis EXPIRE flags:
    - ALWAYS: unconditional.
    - GREATER_THAN (GT): only when the new TTL exceeds the current one. A key
      without a TTL counts as infinite, so GT never applies to it.
    - NO_TTL (NX): only when the key has no TTL yet.
    """

    ALWAYS = "always"
    GREATER_THAN = "gt"
    NO_TTL = "nx"


class AbstractKeyValueStore(ABC):
    """Interface for the shared key-value store.

    Every method is a coroutine: implementations may perform a network round
    trip. Infrastructure failures must surface as ``StoreUnavailableError``;
    a command rejected for the data it found (INCR on a non-integer value)
    raises ``ValueError`` in every implementation.
    """

    @abstractmethod
    async def increment(self, key: str) -> int:
        """Atomically increment ``key`` and return the new value.

        A missing key is created with value 1.

        Raises:
            ValueError: If the stored value is not an integer.
        """
        raise NotImplementedError

    @abstractmethod
    async def expire(
        self,
        key: str,
        seconds: int,
        condition: ExpireCondition = ExpireCondition.ALWAYS,
    ) -> bool:
        """Set a TTL on ``key`` without touching its value.

        Returns:
            True when the TTL was applied, False when the key is missing or
            the condition did not hold.
        """
        raise NotImplementedError

    @abstractmethod
    async def get(self, key: str) -> str | None:
        raise NotImplementedError

    @abstractmethod
    async def set_with_ttl(self, key: str, value: str, seconds: int) -> None:
        """Store ``value`` under ``key``, replacing any value and TTL."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> int:
        """Delete ``key`` and return the number of keys removed (0 or 1)."""
        raise NotImplementedError

    @abstractmethod
    async def ttl(self, key: str) -> int:
        """Remaining lifetime in seconds.

        Returns ``TTL_NO_EXPIRY`` (-1) for a key without TTL and
        ``TTL_MISSING_KEY`` (-2) for a missing key.
        """
        raise NotImplementedError

    @abstractmethod
    async def ping(self) -> bool:
        raise NotImplementedError

    async def close(self) -> None:
        """Release underlying connections (no-op by default)."""
        return None


async def with_timeout(awaitable: Awaitable[T], timeout: float | None) -> T:
    """Await a store call, bounding it by ``timeout`` seconds.

    Args:
        awaitable: Pending store operation.
        timeout: Upper bound in seconds; None waits indefinitely.

    Returns:
        The operation result.

    Raises:
        StoreUnavailableError: If the call does not finish in time. The call
            is not retried.
    """

    if timeout is None:
        return await awaitable

    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as exc:
        raise StoreUnavailableError(
            code="store_timeout",
            message="Key-value store did not respond in time",
            details={"timeout_seconds": timeout},
        ) from exc
