"""
FastAPI application entry point for the PV session telemetry server.

Loads ServerSettings at startup, configures structured logging, and builds
the process-wide SessionService stored on app.state. A session still open
at shutdown is closed so its logs are flushed.

Run with an ASGI server, e.g.::

    uvicorn pv_server.src.api.main:app --port 8000

CHANGELOG:
- 2026-10-19: Register the session body validation handler (STORY-014)
- 2026-10-13: Initial creation (STORY-007)
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from pv_server.src.api.health import router as health_router
from pv_server.src.api.session import invalid_body_handler
from pv_server.src.api.session import router as session_router
from pv_server.src.config import ServerSettings
from pv_server.src.logging_setup import configure_logging, log_config_summary
from pv_server.src.service import SessionService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: build the session service, close it on shutdown.

    Startup:
        - Configures JSON logging and validates settings.
        - Builds the SessionService on app.state.service.

    Shutdown:
        - Ends any session that is still active.
    """
    configure_logging()
    settings = ServerSettings()
    log_config_summary(settings)

    app.state.settings = settings
    app.state.service = SessionService.from_settings(settings)

    logger.info("Settings validated, PV telemetry server ready")
    yield
    app.state.service.close()
    logger.info("PV telemetry server shutting down")


app = FastAPI(
    title="PV Session Telemetry API",
    description="Session-oriented ingestion of PV inverter telemetry.",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health_router)
app.include_router(session_router)
app.add_exception_handler(RequestValidationError, invalid_body_handler)


@app.get("/")
async def root() -> dict:
    """Root health check endpoint.

    Returns:
        dict: JSON object with application status.
    """
    return {"status": "ok"}
