"""Health & Readiness Probes - liveness and readiness endpoints.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 when the command path is unusable (readiness):
      database unreachable in direct mode, no host connection in forwarding mode
"""

import logging
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from timebill import __version__
from timebill.core.domain_types import BridgeMode
from timebill.infrastructure import database

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "timebill",
        "version": __version__,
    }


@router.get("/ready")
async def readiness_check(request: Request):
    """Readiness probe - database in direct mode, host connection in forwarding mode."""
    mode = getattr(request.app.state, "bridge_mode", BridgeMode.DIRECT)
    if mode is BridgeMode.FORWARDING:
        transport = getattr(request.app.state, "transport", None)
        if transport is None or not transport.connected:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "not_ready", "reason": "host_unreachable"},
            )
        return {"status": "ready", "checks": {"host_connection": "healthy"}}

    manager = database.db_manager
    db_ok = await manager.health_check() if manager else False
    if not db_ok:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "database_unavailable",
            },
        )
    return {"status": "ready", "checks": {"database": "healthy"}}
