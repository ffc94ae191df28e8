"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before anything imports ``app.core.config`` so
the settings object is built for tests: in-memory store, quiet logging.
"""

import os

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("REDIS_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import fakeredis.aioredis
import pytest

from app.adapters.kv_store.in_memory import InMemoryKeyValueStore
from app.adapters.kv_store.provider import store_provider
from app.adapters.kv_store.redis_store import RedisKeyValueStore


class FakeClock:
    """Deterministic clock used to test window and TTL expiry."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store(clock: FakeClock) -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore(clock=clock)


@pytest.fixture
def fake_redis():
    """fakeredis client emulating Redis commands in memory."""
    return fakeredis.aioredis.FakeRedis(decode_responses=True)


@pytest.fixture
def redis_store(fake_redis) -> RedisKeyValueStore:
    return RedisKeyValueStore(fake_redis)


@pytest.fixture(autouse=True)
def _reset_store_provider():
    """Each test starts without a process-wide store."""
    store_provider.reset()
    yield
    store_provider.reset()
