"""Rate limiting dependency for FastAPI routes.

This module wires the fixed-window limiter into the HTTP layer.

Rate limiting strategy:
- One fixed-window counter per client address, stored in the shared
  key-value store so every worker enforces the same budget.
- A request without a resolvable client address is rejected (400) rather
  than silently bypassing the limiter.
- Store failures are fail-closed (503) unless APP_RATE_LIMIT_FAIL_OPEN is set.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from app.adapters.kv_store.base import AbstractKeyValueStore
from app.adapters.kv_store.provider import get_key_value_store
from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.rate_limit.fixed_window import FixedWindowRateLimiter
from app.core.config import settings
from app.core.errors import InvalidIdentityError, StoreUnavailableError
from app.utils.hashing import hash_identity

logger = logging.getLogger(__name__)


_limiter: AbstractRateLimiter | None = None
_limiter_config: tuple[int, int, float, int] | None = None


def get_rate_limiter(
    store: Annotated[AbstractKeyValueStore, Depends(get_key_value_store)],
) -> AbstractRateLimiter:
    """Return a process-wide rate limiter bound to the shared store.

    The limiter itself is stateless; it is rebuilt only when its
    configuration or the store instance changes (primarily in tests).

    Returns:
        AbstractRateLimiter: Configured limiter instance.
    """

    global _limiter, _limiter_config

    config = (
        settings.app.rate_limit_requests,
        settings.app.rate_limit_window_seconds,
        settings.app.store_timeout_seconds,
        id(store),
    )

    if _limiter is None or _limiter_config != config:
        _limiter = FixedWindowRateLimiter(
            store,
            limit=settings.app.rate_limit_requests,
            window_seconds=settings.app.rate_limit_window_seconds,
            timeout_seconds=settings.app.store_timeout_seconds,
        )
        _limiter_config = config

    return _limiter


def resolve_client_identity(request: Request) -> str:
    """Resolve the rate limit identity for the current request.

    Args:
        request: FastAPI request.

    Returns:
        str: Client address.

    Raises:
        InvalidIdentityError: If no client address can be determined.
    """

    if settings.app.rate_limit_trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop

    client_host = request.client.host if request.client else None
    if not client_host:
        raise InvalidIdentityError(
            code="client_address_unresolvable",
            message="Client address could not be determined for rate limiting",
        )
    return client_host


async def enforce_rate_limit(
    request: Request,
    limiter: Annotated[AbstractRateLimiter, Depends(get_rate_limiter)],
) -> None:
    """FastAPI dependency enforcing rate limits.

    When enabled, counts one request against the client's budget. If the
    client exceeds the configured rate, raises HTTP 429.

    Raises:
        HTTPException: 429 Too Many Requests when rate limit is exceeded.
        InvalidIdentityError: When the client address is unresolvable (400).
        StoreUnavailableError: When the store fails and fail-open is off (503).
    """

    if not settings.app.rate_limit_enabled:
        return

    identity = resolve_client_identity(request)
    identity_hash = hash_identity(identity)

    try:
        result = await limiter.admit(identity)
    except StoreUnavailableError as exc:
        if not settings.app.rate_limit_fail_open:
            raise
        logger.warning(
            "rate_limit.fail_open",
            extra={"identity_hash": identity_hash, "error_code": exc.code},
        )
        return

    if result.allowed:
        logger.info(
            "rate_limit.allowed",
            extra={
                "identity_hash": identity_hash,
                "limit": result.limit,
                "remaining": result.remaining,
                "window_s": settings.app.rate_limit_window_seconds,
            },
        )
        return

    retry_after = result.retry_after_seconds or 0
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "identity_hash": identity_hash,
            "limit": result.limit,
            "count": result.count,
            "window_s": settings.app.rate_limit_window_seconds,
            "retry_after_s": retry_after,
        },
    )

    headers: dict[str, str] = {}
    if settings.app.rate_limit_include_headers:
        headers["Retry-After"] = str(retry_after)
        headers["X-RateLimit-Limit"] = str(result.limit)
        headers["X-RateLimit-Remaining"] = str(result.remaining)

    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Too many requests. Try again later.",
        headers=headers or None,
    )
