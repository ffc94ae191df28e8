from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.adapters.kv_store.base import AbstractKeyValueStore, with_timeout
from app.adapters.kv_store.provider import get_key_value_store
from app.core.config import settings
from app.core.errors import StoreUnavailableError

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe; does not touch the key-value store.

    Returns:
        dict: A dictionary with a single "status" key set to "ok".
    """

    return {"status": "ok"}


@router.get("/health/ready")
async def readiness_check(
    store: Annotated[AbstractKeyValueStore, Depends(get_key_value_store)],
) -> JSONResponse:
    """Readiness probe: 200 when the store answers a ping, 503 otherwise."""

    try:
        await with_timeout(store.ping(), settings.app.store_timeout_seconds)
    except StoreUnavailableError as exc:
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "store": exc.code},
        )

    return JSONResponse(
        status_code=200,
        content={"status": "ok", "store": settings.redis.backend},
    )
