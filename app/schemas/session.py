"""Pydantic schemas for the session endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Login payload: the token is issued upstream and stored as-is."""

    username: str = Field(
        ...,
        min_length=1,
        max_length=256,
        description="Account username; used as the session identity.",
    )
    token: str = Field(
        ...,
        min_length=1,
        description="Opaque session token (e.g., a signed JWT issued at login).",
    )
    ttl_seconds: int | None = Field(
        default=None,
        ge=1,
        description="Session lifetime in seconds (defaults to APP_SESSION_TTL_SECONDS).",
    )


class LoginResponse(BaseModel):
    message: str = Field(..., description="Human-readable confirmation.")
    username: str
    ttl_seconds: int = Field(..., description="Effective session lifetime in seconds.")


class SessionResponse(BaseModel):
    """Active session for a username."""

    username: str
    token: str


class LogoutResponse(BaseModel):
    message: str
    username: str
