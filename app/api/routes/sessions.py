from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from app.adapters.kv_store.base import AbstractKeyValueStore
from app.adapters.kv_store.provider import get_key_value_store
from app.core.config import settings
from app.core.rate_limit import enforce_rate_limit
from app.schemas.session import LoginRequest, LoginResponse, LogoutResponse, SessionResponse
from app.services.session_cache import RevokeOutcome, SessionCache

router = APIRouter(
    prefix="/sessions",
    tags=["Sessions"],
    dependencies=[Depends(enforce_rate_limit)],
)


def get_session_cache(
    store: Annotated[AbstractKeyValueStore, Depends(get_key_value_store)],
) -> SessionCache:
    """Build a SessionCache over the shared store (cheap, stateless)."""
    return SessionCache(
        store,
        default_ttl_seconds=settings.app.session_ttl_seconds,
        timeout_seconds=settings.app.store_timeout_seconds,
    )


SessionCacheDep = Annotated[SessionCache, Depends(get_session_cache)]


@router.post("", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
async def login(payload: LoginRequest, sessions: SessionCacheDep) -> LoginResponse:
    """Store the login session for a user.

    Any existing session for the same username is replaced.
    """
    ttl = payload.ttl_seconds or sessions.default_ttl_seconds
    await sessions.put(payload.username, payload.token, ttl)
    return LoginResponse(
        message="User has logged in successfully",
        username=payload.username,
        ttl_seconds=ttl,
    )


@router.get("/{username}", response_model=SessionResponse)
async def get_session(username: str, sessions: SessionCacheDep) -> SessionResponse:
    """Return the active session token for a username.

    Raises:
        HTTPException: 404 if the user has no active session.
    """
    token = await sessions.get(username)
    if token is None:
        raise HTTPException(status_code=404, detail="User session not found")
    return SessionResponse(username=username, token=token)


@router.delete("/{username}", response_model=LogoutResponse)
async def logout(username: str, sessions: SessionCacheDep) -> LogoutResponse:
    """Log a user out by revoking the session.

    Raises:
        HTTPException: 404 if there was no session to revoke.
    """
    outcome = await sessions.revoke(username)
    if outcome is RevokeOutcome.NOT_FOUND:
        raise HTTPException(status_code=404, detail="User session not found")
    return LogoutResponse(message="User logged out successfully", username=username)
