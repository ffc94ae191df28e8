"""Fixed-window rate limiter on top of the shared key-value store.

Each identity owns one counter key. The first request of a window creates
the counter (INCR returns 1) and arms its TTL; the store deletes the key when
the window ends and the next request opens a fresh one.

Notes:
- Atomicity comes from the store: INCR linearizes concurrent requests for
  the same identity, so N parallel calls yield exactly ``limit`` admissions.
- The TTL is armed with the NX condition: a late or repeated EXPIRE can
  neither extend nor shorten a window that is already running.
- Window boundaries follow the store clock, not the caller's.
"""

from __future__ import annotations

import logging

from app.adapters.kv_store.base import (
    TTL_NO_EXPIRY,
    AbstractKeyValueStore,
    ExpireCondition,
    with_timeout,
)
from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.core.errors import InvalidIdentityError

logger = logging.getLogger(__name__)


class FixedWindowRateLimiter(AbstractRateLimiter):
    """Allow at most ``limit`` requests per identity per ``window_seconds``."""

    def __init__(
        self,
        store: AbstractKeyValueStore,
        *,
        limit: int,
        window_seconds: int,
        key_prefix: str = "ratelimit:",
        timeout_seconds: float | None = None,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Shared key-value store holding the counters.
            limit: Maximum number of admitted requests per window.
            window_seconds: Size of the fixed window in seconds.
            key_prefix: Namespace prepended to every counter key.
            timeout_seconds: Default bound for each store call.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self._store = store
        self._limit = limit
        self._window_seconds = window_seconds
        self._key_prefix = key_prefix
        self._timeout_seconds = timeout_seconds

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    def _counter_key(self, identity: str) -> str:
        if not identity or not identity.strip():
            raise InvalidIdentityError(
                code="invalid_identity",
                message="Rate limit identity must be a non-empty string",
            )
        return f"{self._key_prefix}{identity}"

    async def admit(self, identity: str, *, timeout: float | None = None) -> RateLimitResult:
        """Count this request against ``identity`` and decide admission.

        Args:
            identity: Client IP, username or other non-empty key.
            timeout: Per-store-call bound; defaults to ``timeout_seconds``.

        Returns:
            RateLimitResult with the admission decision.

        Raises:
            InvalidIdentityError: If identity is empty (no store call is made).
            StoreUnavailableError: If the store fails or times out.
        """
        key = self._counter_key(identity)
        bound = timeout if timeout is not None else self._timeout_seconds

        count = await with_timeout(self._store.increment(key), bound)
        if count == 1:
            await with_timeout(
                self._store.expire(key, self._window_seconds, ExpireCondition.NO_TTL),
                bound,
            )

        if count <= self._limit:
            return RateLimitResult(
                allowed=True,
                limit=self._limit,
                count=count,
                remaining=self._limit - count,
            )

        retry_after = await self._seconds_until_reset(key, bound)
        return RateLimitResult(
            allowed=False,
            limit=self._limit,
            count=count,
            remaining=0,
            retry_after_seconds=retry_after,
        )

    async def _seconds_until_reset(self, key: str, bound: float | None) -> int:
        remaining_ttl = await with_timeout(self._store.ttl(key), bound)
        if remaining_ttl == TTL_NO_EXPIRY:
            # The first caller of this window never armed the TTL
            await with_timeout(
                self._store.expire(key, self._window_seconds, ExpireCondition.NO_TTL),
                bound,
            )
            logger.warning(
                "rate_limit.window_rearmed",
                extra={"window_s": self._window_seconds},
            )
            return self._window_seconds
        return max(0, remaining_ttl)
