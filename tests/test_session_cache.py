"""Unit tests for the store-backed SessionCache."""

import asyncio

import pytest

from app.adapters.kv_store.in_memory import InMemoryKeyValueStore
from app.core.errors import InvalidIdentityError, StoreUnavailableError, ValidationAppError
from app.services.session_cache import RevokeOutcome, SessionCache


class SlowStore(InMemoryKeyValueStore):
    async def get(self, key: str) -> str | None:
        await asyncio.sleep(1)
        return await super().get(key)


@pytest.fixture
def sessions(memory_store) -> SessionCache:
    return SessionCache(memory_store, default_ttl_seconds=3600)


@pytest.mark.asyncio
async def test_login_lookup_logout_scenario(sessions) -> None:
    assert await sessions.put("alice", "tok-123", 3600) is True
    assert await sessions.get("alice") == "tok-123"

    assert await sessions.revoke("alice") is RevokeOutcome.REMOVED
    assert await sessions.get("alice") is None


@pytest.mark.asyncio
async def test_revoke_is_idempotent(sessions) -> None:
    await sessions.put("alice", "tok-123")
    await sessions.revoke("alice")

    assert await sessions.revoke("alice") is RevokeOutcome.NOT_FOUND
    assert await sessions.revoke("never-logged-in") is RevokeOutcome.NOT_FOUND


@pytest.mark.asyncio
async def test_put_overwrites_previous_session(sessions) -> None:
    await sessions.put("alice", "tok-1")
    await sessions.put("alice", "tok-2")

    assert await sessions.get("alice") == "tok-2"


@pytest.mark.asyncio
async def test_session_expires_after_ttl(sessions, clock) -> None:
    await sessions.put("alice", "tok-123", 10)

    clock.advance(9.9)
    assert await sessions.get("alice") == "tok-123"

    clock.advance(0.2)
    assert await sessions.get("alice") is None


@pytest.mark.asyncio
async def test_default_ttl_is_used(sessions, memory_store) -> None:
    await sessions.put("alice", "tok-123")

    assert await memory_store.ttl("session:alice") == 3600


@pytest.mark.asyncio
async def test_relogin_refreshes_ttl(sessions, memory_store, clock) -> None:
    await sessions.put("alice", "tok-123", 10)
    clock.advance(8)

    await sessions.put("alice", "tok-123", 10)

    assert await memory_store.ttl("session:alice") == 10


@pytest.mark.asyncio
async def test_sessions_use_their_own_namespace(memory_store) -> None:
    sessions = SessionCache(memory_store, key_prefix="sess:")

    await sessions.put("bob", "tok-b")

    assert await memory_store.get("sess:bob") == "tok-b"
    assert await memory_store.get("bob") is None


@pytest.mark.asyncio
@pytest.mark.parametrize("identity", ["", "  "])
async def test_empty_identity_is_rejected(sessions, identity) -> None:
    with pytest.raises(InvalidIdentityError):
        await sessions.put(identity, "tok")
    with pytest.raises(InvalidIdentityError):
        await sessions.get(identity)
    with pytest.raises(InvalidIdentityError):
        await sessions.revoke(identity)


@pytest.mark.asyncio
async def test_invalid_token_or_ttl_is_rejected(sessions) -> None:
    with pytest.raises(ValidationAppError) as exc_info:
        await sessions.put("alice", "")
    assert exc_info.value.code == "invalid_session_token"

    with pytest.raises(ValidationAppError) as exc_info:
        await sessions.put("alice", "tok", 0)
    assert exc_info.value.code == "invalid_session_ttl"


@pytest.mark.asyncio
async def test_store_timeout_surfaces_as_unavailable() -> None:
    sessions = SessionCache(SlowStore(), timeout_seconds=0.01)

    with pytest.raises(StoreUnavailableError) as exc_info:
        await sessions.get("alice")

    assert exc_info.value.code == "store_timeout"


@pytest.mark.asyncio
async def test_works_against_redis(redis_store) -> None:
    sessions = SessionCache(redis_store)

    await sessions.put("alice", "tok-123", 3600)

    assert await sessions.get("alice") == "tok-123"
    assert await sessions.revoke("alice") is RevokeOutcome.REMOVED
    assert await sessions.get("alice") is None
    assert await sessions.revoke("alice") is RevokeOutcome.NOT_FOUND


def test_rejects_invalid_default_ttl() -> None:
    with pytest.raises(ValueError):
        SessionCache(InMemoryKeyValueStore(), default_ttl_seconds=0)
