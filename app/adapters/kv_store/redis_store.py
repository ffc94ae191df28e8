"""Redis-backed key-value store (redis.asyncio).

INCR is atomic server-side and EXPIRE supports the NX/GT flags, so the
rate limiter and session cache need no client-side locking. Redis owns the
clock: window boundaries and session lifetimes follow the server, not the
calling process.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from redis.asyncio import Redis
from redis.exceptions import (
    ClusterDownError,
    ConnectionError as RedisConnectionError,
    OutOfMemoryError,
    ReadOnlyError,
    RedisError,
    ResponseError,
    TryAgainError,
    TimeoutError as RedisTimeoutError,
)

from app.adapters.kv_store.base import AbstractKeyValueStore, ExpireCondition
from app.core.config import RedisSettings
from app.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


class RedisKeyValueStore(AbstractKeyValueStore):
    """Key-value store backed by a shared ``redis.asyncio.Redis`` client.

    The client owns a connection pool; one instance should be shared by the
    whole process (see ``KeyValueStoreProvider``).
    """

    def __init__(self, client: Redis) -> None:
        self._client = client

    @classmethod
    def from_settings(cls, redis_settings: RedisSettings) -> "RedisKeyValueStore":
        """Build a store from connection settings.

        No connection is opened here; the pool connects on first command.
        """
        client = Redis(
            host=redis_settings.host,
            port=redis_settings.port,
            password=redis_settings.password,
            db=redis_settings.db,
            socket_timeout=redis_settings.socket_timeout_seconds,
            socket_connect_timeout=redis_settings.socket_timeout_seconds,
            decode_responses=True,
        )
        return cls(client)

    @contextmanager
    def _translate_errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except RedisTimeoutError as exc:
            raise StoreUnavailableError(
                code="store_timeout",
                message="Redis did not respond in time",
                details={"operation": operation, "backend": "redis"},
            ) from exc
        except RedisConnectionError as exc:
            raise StoreUnavailableError(
                code="store_unavailable",
                message="Redis is unreachable",
                details={"operation": operation, "backend": "redis"},
            ) from exc
        except (OutOfMemoryError, ReadOnlyError, ClusterDownError, TryAgainError) as exc:
            raise StoreUnavailableError(
                code="store_error",
                message=f"Redis cannot serve commands: {type(exc).__name__}",
                details={"operation": operation, "backend": "redis"},
            ) from exc
        except ResponseError as exc:
            # WRONGTYPE, non-integer INCR: the data is wrong, not the server
            raise ValueError(f"Redis rejected {operation}: {exc}") from exc
        except RedisError as exc:
            raise StoreUnavailableError(
                code="store_error",
                message=f"Redis command failed: {type(exc).__name__}",
                details={"operation": operation, "backend": "redis"},
            ) from exc

    async def increment(self, key: str) -> int:
        with self._translate_errors("incr"):
            return int(await self._client.incr(key))

    async def expire(
        self,
        key: str,
        seconds: int,
        condition: ExpireCondition = ExpireCondition.ALWAYS,
    ) -> bool:
        with self._translate_errors("expire"):
            applied = await self._client.expire(
                key,
                seconds,
                nx=condition is ExpireCondition.NO_TTL,
                gt=condition is ExpireCondition.GREATER_THAN,
            )
        return bool(applied)

    async def get(self, key: str) -> str | None:
        with self._translate_errors("get"):
            return await self._client.get(key)

    async def set_with_ttl(self, key: str, value: str, seconds: int) -> None:
        with self._translate_errors("set"):
            await self._client.set(key, value, ex=seconds)

    async def delete(self, key: str) -> int:
        with self._translate_errors("del"):
            return int(await self._client.delete(key))

    async def ttl(self, key: str) -> int:
        with self._translate_errors("ttl"):
            return int(await self._client.ttl(key))

    async def ping(self) -> bool:
        with self._translate_errors("ping"):
            return bool(await self._client.ping())

    async def close(self) -> None:
        await self._client.aclose()
        logger.debug("kv_store.closed", extra={"backend": "redis"})
