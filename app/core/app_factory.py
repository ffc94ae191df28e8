"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers and
store lifecycle) so tests can build isolated instances.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.adapters.kv_store.provider import store_provider
from app.api.routes import health_router, sessions_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Close the shared key-value store on shutdown.

    The store itself is created lazily by the first request that needs it.
    """
    logger.info(
        "app.startup",
        extra={
            "app_env": settings.app_env,
            "store_backend": settings.redis.backend,
            "rate_limit_enabled": settings.app.rate_limit_enabled,
        },
    )
    try:
        yield
    finally:
        await store_provider.aclose()
        logger.info("app.shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Session & Rate-Limit Gateway",
        description=(
            "User session API backed by a shared key-value store: login stores "
            "an opaque session token with a TTL, lookup and logout read or "
            "revoke it, and every /v1 route is protected by a fixed-window "
            "rate limit per client address."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(sessions_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
