from __future__ import annotations

from app.api.routes.health import router as health_router
from app.api.routes.sessions import router as sessions_router

__all__ = ["health_router", "sessions_router"]
