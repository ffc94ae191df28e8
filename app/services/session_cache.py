"""Session cache: opaque login tokens with TTL in the shared store.

A session record's existence is the only source of truth for "logged in".
Nothing is cached in-process, so logout on one worker is immediately visible
to every other worker.
"""

from __future__ import annotations

import logging
from enum import Enum

from app.adapters.kv_store.base import AbstractKeyValueStore, with_timeout
from app.core.errors import InvalidIdentityError, ValidationAppError
from app.utils.hashing import hash_identity

logger = logging.getLogger(__name__)


class RevokeOutcome(str, Enum):
    """Result of ``SessionCache.revoke``; NOT_FOUND is not an error."""

    REMOVED = "removed"
    NOT_FOUND = "not_found"


class SessionCache:
    """Store, look up and revoke session tokens keyed by identity.

    ``put`` is last-writer-wins: concurrent logins for the same identity race
    at the store and whichever write lands last is kept.
    """

    def __init__(
        self,
        store: AbstractKeyValueStore,
        *,
        default_ttl_seconds: int = 3600,
        key_prefix: str = "session:",
        timeout_seconds: float | None = None,
    ) -> None:
        if default_ttl_seconds < 1:
            raise ValueError("default_ttl_seconds must be >= 1")

        self._store = store
        self._default_ttl = default_ttl_seconds
        self._key_prefix = key_prefix
        self._timeout_seconds = timeout_seconds

    @property
    def default_ttl_seconds(self) -> int:
        return self._default_ttl

    def _session_key(self, identity: str) -> str:
        if not identity or not identity.strip():
            raise InvalidIdentityError(
                code="invalid_identity",
                message="Session identity must be a non-empty string",
            )
        return f"{self._key_prefix}{identity}"

    def _bound(self, timeout: float | None) -> float | None:
        return timeout if timeout is not None else self._timeout_seconds

    async def put(
        self,
        identity: str,
        token: str,
        ttl_seconds: int | None = None,
        *,
        timeout: float | None = None,
    ) -> bool:
        """Store ``token`` for ``identity``, replacing any existing session.

        Args:
            identity: Username or other non-empty key.
            token: Opaque session token.
            ttl_seconds: Session lifetime; defaults to ``default_ttl_seconds``.
            timeout: Store call bound in seconds.

        Returns:
            True once the store acknowledged the write.

        Raises:
            InvalidIdentityError: If identity is empty.
            ValidationAppError: If token is empty or ttl_seconds < 1.
            StoreUnavailableError: If the store fails or times out.
        """
        key = self._session_key(identity)
        if not token:
            raise ValidationAppError(
                code="invalid_session_token",
                message="Session token must be a non-empty string",
            )
        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds
        if ttl < 1:
            raise ValidationAppError(
                code="invalid_session_ttl",
                message="Session TTL must be at least 1 second",
                details={"hint": f"received ttl_seconds={ttl}"},
            )

        await with_timeout(self._store.set_with_ttl(key, token, ttl), self._bound(timeout))
        logger.info(
            "session.stored",
            extra={"identity_hash": hash_identity(identity), "ttl_s": ttl},
        )
        return True

    async def get(self, identity: str, *, timeout: float | None = None) -> str | None:
        """Return the session token for ``identity`` or None when logged out."""
        key = self._session_key(identity)
        token = await with_timeout(self._store.get(key), self._bound(timeout))
        logger.debug(
            "session.hit" if token is not None else "session.miss",
            extra={"identity_hash": hash_identity(identity)},
        )
        return token

    async def revoke(self, identity: str, *, timeout: float | None = None) -> RevokeOutcome:
        """Delete the session for ``identity``.

        Revoking an absent session is a normal, idempotent outcome.
        """
        key = self._session_key(identity)
        removed = await with_timeout(self._store.delete(key), self._bound(timeout))
        outcome = RevokeOutcome.REMOVED if removed else RevokeOutcome.NOT_FOUND
        logger.info(
            "session.revoked",
            extra={"identity_hash": hash_identity(identity), "outcome": outcome.value},
        )
        return outcome
