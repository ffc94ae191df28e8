"""In-memory key-value store.

Notes:
- Per-process only: running multiple workers gives each worker its own data,
  so limits and sessions are not shared. Use Redis for anything deployed.
- Thread-safe: every operation runs under one lock, which also makes
  ``increment`` atomic for concurrent callers on the same key.
- Expiry is lazy: an expired entry is dropped the next time it is touched.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.kv_store.base import (
    TTL_MISSING_KEY,
    TTL_NO_EXPIRY,
    AbstractKeyValueStore,
    ExpireCondition,
)


@dataclass
class _Entry:
    value: str
    expires_at: float | None = None


class InMemoryKeyValueStore(AbstractKeyValueStore):
    """Dictionary-backed store following Redis semantics for the used subset."""

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize the store.

        Args:
            clock: Time source returning UNIX time in seconds.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, _Entry] = {}

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"InMemoryKeyValueStore(size={len(self._entries)})"

    def _live_entry_locked(self, key: str) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and self._clock() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry

    async def increment(self, key: str) -> int:
        with self._lock:
            entry = self._live_entry_locked(key)
            if entry is None:
                self._entries[key] = _Entry(value="1")
                return 1

            try:
                count = int(entry.value) + 1
            except ValueError as exc:
                raise ValueError(f"value at {key!r} is not an integer") from exc
            # The TTL is left untouched, as with Redis INCR
            entry.value = str(count)
            return count

    async def expire(
        self,
        key: str,
        seconds: int,
        condition: ExpireCondition = ExpireCondition.ALWAYS,
    ) -> bool:
        with self._lock:
            entry = self._live_entry_locked(key)
            if entry is None:
                return False

            new_expires_at = self._clock() + seconds
            if condition is ExpireCondition.NO_TTL and entry.expires_at is not None:
                return False
            if condition is ExpireCondition.GREATER_THAN:
                if entry.expires_at is None or new_expires_at <= entry.expires_at:
                    return False

            entry.expires_at = new_expires_at
            return True

    async def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._live_entry_locked(key)
            return entry.value if entry else None

    async def set_with_ttl(self, key: str, value: str, seconds: int) -> None:
        if seconds < 1:
            raise ValueError("seconds must be >= 1")
        with self._lock:
            self._entries[key] = _Entry(value=value, expires_at=self._clock() + seconds)

    async def delete(self, key: str) -> int:
        with self._lock:
            if self._live_entry_locked(key) is None:
                return 0
            del self._entries[key]
            return 1

    async def ttl(self, key: str) -> int:
        with self._lock:
            entry = self._live_entry_locked(key)
            if entry is None:
                return TTL_MISSING_KEY
            if entry.expires_at is None:
                return TTL_NO_EXPIRY
            return max(0, int(math.ceil(entry.expires_at - self._clock())))

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        with self._lock:
            self._entries.clear()
