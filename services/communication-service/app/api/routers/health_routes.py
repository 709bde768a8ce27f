# services/communication-service/app/api/routers/health_routes.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter
from fastapi.responses import ORJSONResponse

from app.api.responses import success
from app.config import settings
from app.db.mongodb import get_db
from app.events.rabbit import get_bus

logger = logging.getLogger("app.api.health")

router = APIRouter(tags=["meta"])


@router.get("/", summary="Root metadata")
def root() -> Dict[str, Any]:
    """
    Root landing with links and metadata.
    """
    return success(
        {
            "service": settings.service_name,
            "version": settings.service_version,
            "status": "running",
            "environment": settings.environment,
            "endpoints": {
                "health": "/health",
                "ready": "/ready",
                "templates": "/api/templates",
                "letters": "/api/letters",
                "bookmarks": "/api/bookmarks",
            },
        }
    )


@router.get("/health", summary="Liveness check")
def health() -> Dict[str, Any]:
    """
    Liveness check: process is up and app is constructed.
    """
    return success(
        {
            "status": "healthy",
            "service": settings.service_name,
            "environment": settings.environment,
            "at": datetime.now(timezone.utc).isoformat(),
        }
    )


@router.get("/ready", summary="Readiness check")
async def ready():
    """
    Readiness check: Mongo must answer a ping; RabbitMQ is reported but optional.
    """
    checks: Dict[str, str] = {}
    try:
        await get_db().command("ping")
        checks["mongo"] = "ok"
    except Exception:
        logger.warning("Readiness: Mongo ping failed", exc_info=True)
        checks["mongo"] = "down"

    bus = get_bus()
    if not bus.enabled:
        checks["rabbitmq"] = "disabled"
    else:
        conn = bus.connection
        checks["rabbitmq"] = "ok" if conn is not None and not conn.is_closed else "down"

    ok = checks["mongo"] == "ok"
    return ORJSONResponse(
        status_code=200 if ok else 503,
        content=success({"status": "ready" if ok else "degraded", "checks": checks}),
    )


@router.get("/version", summary="Service version")
def version() -> Dict[str, Any]:
    return {
        "service": settings.service_name,
        "version": settings.service_version,
    }
