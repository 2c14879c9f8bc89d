"""Health check endpoints."""

from __future__ import annotations

import time
from typing import Any

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])

_START_TIME = time.monotonic()


@router.get("/api/health")
async def health() -> dict[str, str]:
    """Basic health check -- always returns quickly."""
    return {"status": "ok"}


@router.get("/api/health/detailed")
async def health_detailed(request: Request) -> dict[str, Any]:
    """Version, uptime, and whether the model provider answers."""
    from lexchat import __version__

    checks: dict[str, Any] = {
        "status": "ok",
        "version": __version__,
        "uptime_seconds": round(time.monotonic() - _START_TIME, 1),
        "components": {},
    }

    provider = getattr(request.app.state, "provider", None)
    if provider is None:
        checks["components"]["provider"] = {"status": "missing"}
        checks["status"] = "degraded"
    else:
        try:
            healthy = await provider.health_check()
        except Exception as e:
            checks["components"]["provider"] = {"status": "error", "detail": str(e)}
            checks["status"] = "degraded"
        else:
            checks["components"]["provider"] = {
                "status": "ok" if healthy else "unhealthy"
            }
            if not healthy:
                checks["status"] = "degraded"

    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is not None:
        checks["components"]["tools"] = {"count": len(dispatcher.registry)}

    return checks
