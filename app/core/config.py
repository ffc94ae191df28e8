"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file

Settings are grouped by concern (app, redis, log) and composed in a single
``Settings`` container exposed as the module-level ``settings`` object.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


APP_ENV = os.getenv("APP_ENV", "development")

PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Production usually injects variables directly, so the file is optional
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ up front
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=False)


class AppSettings(BaseSettings):
    """Rate limiting, session and store-call configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable the fixed-window rate limit on /v1 routes",
    )
    rate_limit_requests: int = Field(
        15,
        description="Maximum number of requests allowed per window (per client)",
        ge=1,
    )
    rate_limit_window_seconds: int = Field(
        300,
        description="Rate limit window size in seconds",
        ge=1,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )
    rate_limit_fail_open: bool = Field(
        False,
        description=(
            "Let requests through when the store is unreachable "
            "(default is fail-closed with HTTP 503)"
        ),
    )
    rate_limit_trust_forwarded_for: bool = Field(
        False,
        description="Use the first X-Forwarded-For hop as client identity (behind a proxy)",
    )

    session_ttl_seconds: int = Field(
        3600,
        description="Default lifetime of a login session in seconds",
        ge=1,
    )
    store_timeout_seconds: float = Field(
        2.0,
        description="Upper bound for a single key-value store call in seconds",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class RedisSettings(BaseSettings):
    """Connection settings for the backing key-value store.

    ``backend=memory`` swaps Redis for the in-process store, which is only
    meaningful for local development and tests (single worker).
    """

    backend: Literal["redis", "memory"] = Field(
        "redis",
        description="Key-value store backend: 'redis' or 'memory'",
    )
    host: str = Field("127.0.0.1", description="Redis host name")
    port: int = Field(6379, description="Redis port", ge=1, le=65535)
    password: str | None = Field(None, description="Redis password (optional)")
    db: int = Field(0, description="Redis logical database index", ge=0)
    socket_timeout_seconds: float = Field(
        5.0,
        description="Socket connect/read timeout for the Redis client",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field("json", description="Log line format")
    output: Literal["stdout", "file"] = Field("stdout", description="Log destination")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Number of rotated files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read and echo the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


def _build_app_settings() -> AppSettings:
    return AppSettings()


def _build_redis_settings() -> RedisSettings:
    return RedisSettings()


def _build_log_settings() -> LogSettings:
    return LogSettings()


class Settings(BaseSettings):
    """Main application settings container.

    Environments:
    - development: Local development (uses .env.development)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    redis: RedisSettings = Field(default_factory=_build_redis_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


settings = Settings()
