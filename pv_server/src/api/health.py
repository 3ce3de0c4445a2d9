"""
Health check endpoint for the telemetry server.

Provides a GET /health endpoint that returns {"status": "ok"} with HTTP 200
plus whether a transfer session is currently open, so operators can spot a
session that was started and never ended.

CHANGELOG:
- 2026-10-13: Initial creation (STORY-007)

TODO:
- None
"""

from fastapi import APIRouter

from pv_server.src.api.deps import Service

router = APIRouter(tags=["health"])


@router.get("/health")
def health(service: Service) -> dict:
    """Return a simple health status.

    Returns:
        dict: ``{"status": "ok", "session_active": bool}``.
    """
    return {"status": "ok", "session_active": service.engine.session_id is not None}
