"""
Shared test fixtures for telemetry server tests.

All server env vars are cleaned before each test and the working directory
is moved to tmp_path, so no .env file is loaded by Pydantic BaseSettings and
session logs never land in the repository.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-004)
- 2026-10-13: Add TestClient fixture (STORY-007)
"""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from pv_server.src.api.main import app
from pv_server.src.detectors import DetectorBank, DetectorThresholds
from pv_server.src.session import SessionEngine
from pv_server.tests.helpers import FakeClock

# All ServerSettings environment variable names, used for cleanup.
_ALL_SERVER_ENV_VARS = (
    "DATA_PATH",
    "OVER_TEMP_THRESHOLD",
    "VOLTAGE_IMBALANCE_PCT",
    "POWER_FLATLINE_WINDOW",
    "POWER_SPIKE_THRESHOLD",
    "POWER_FLATLINE_EPSILON",
    "DC_SAG_THRESHOLD",
    "LOW_EFFICIENCY_THRESHOLD",
    "RESET_WARNINGS_ON_START",
    "ENABLE_DC_CHECKS",
    "ENABLE_EFFICIENCY_CHECK",
    "PROGRESS_LOG_EVERY",
)


@pytest.fixture(autouse=True)
def _clean_server_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Remove all server env vars and isolate from .env files before each test."""
    for var in _ALL_SERVER_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def data_path(tmp_path: Path) -> Path:
    """Root directory for session logs."""
    return tmp_path / "Data"


@pytest.fixture()
def engine(data_path: Path) -> SessionEngine:
    """SessionEngine with default thresholds, a fake clock and fixed ids."""
    ids = iter(f"sess{n:04d}" for n in range(1, 1000))
    return SessionEngine(
        DetectorBank(DetectorThresholds()),
        data_path=data_path,
        clock=FakeClock(),
        id_factory=lambda: next(ids),
    )


@pytest.fixture()
def client(monkeypatch: pytest.MonkeyPatch, data_path: Path) -> Generator[TestClient, None, None]:
    """TestClient over the FastAPI app with logs under tmp_path."""
    monkeypatch.setenv("DATA_PATH", str(data_path))
    with TestClient(app) as test_client:
        yield test_client
