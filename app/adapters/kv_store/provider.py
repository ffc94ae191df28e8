"""Process-wide key-value store handle.

The store wraps a connection pool, so the process must hold exactly one.
``KeyValueStoreProvider`` builds it lazily on first use and guards the build
with a lock, so callers racing on a cold start still share a single client.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from app.adapters.kv_store.base import AbstractKeyValueStore
from app.adapters.kv_store.in_memory import InMemoryKeyValueStore
from app.adapters.kv_store.redis_store import RedisKeyValueStore
from app.core.config import RedisSettings, settings

logger = logging.getLogger(__name__)


def create_key_value_store(redis_settings: RedisSettings) -> AbstractKeyValueStore:
    """Instantiate the store selected by ``REDIS_BACKEND``.

    Args:
        redis_settings: Backend selection and connection parameters.

    Returns:
        AbstractKeyValueStore: A new, unshared store instance.
    """

    if redis_settings.backend == "memory":
        logger.warning(
            "kv_store.memory_backend",
            extra={"hint": "in-memory store is per-process; use redis when running several workers"},
        )
        return InMemoryKeyValueStore()

    return RedisKeyValueStore.from_settings(redis_settings)


class KeyValueStoreProvider:
    """Lazy, initialise-once holder for the shared store."""

    def __init__(self, factory: Callable[[], AbstractKeyValueStore]) -> None:
        self._factory = factory
        self._lock = threading.Lock()
        self._store: AbstractKeyValueStore | None = None

    def get(self) -> AbstractKeyValueStore:
        """Return the shared store, creating it on first call."""

        store = self._store
        if store is not None:
            return store

        with self._lock:
            if self._store is None:
                self._store = self._factory()
                logger.info(
                    "kv_store.initialised",
                    extra={"store_type": type(self._store).__name__},
                )
            return self._store

    def reset(self) -> None:
        """Forget the current store without closing it (tests)."""

        with self._lock:
            self._store = None

    async def aclose(self) -> None:
        """Close and forget the current store, if one was created."""

        with self._lock:
            store, self._store = self._store, None
        if store is not None:
            await store.close()


def _default_factory() -> AbstractKeyValueStore:
    # Read settings at call time so overrides made after import are honoured
    return create_key_value_store(settings.redis)


store_provider = KeyValueStoreProvider(_default_factory)


def get_key_value_store() -> AbstractKeyValueStore:
    """FastAPI dependency returning the process-wide store."""

    return store_provider.get()
