"""
Shared test fixtures for CSV client tests.

All client env vars are cleaned before each test and the working directory
is moved to tmp_path so no .env file is loaded by Pydantic BaseSettings.

CHANGELOG:
- 2026-10-14: Initial creation (STORY-010)
"""

from __future__ import annotations

from pathlib import Path

import pytest

# All ClientSettings environment variable names, used for cleanup.
_ALL_CLIENT_ENV_VARS = (
    "CSV_PATH",
    "SERVER_BASE_URL",
    "PLANT_ID",
    "SCHEMA_VERSION",
    "ROW_LIMIT",
    "REJECT_PATH",
    "REQUEST_TIMEOUT_S",
)

CSV_HEADER = "DAY,HOUR,ACPWRT,DCVOLT,TEMPER,VL1TO2,VL2TO3,VL3TO1,ACCUR1,ACVLT1"


@pytest.fixture(autouse=True)
def _clean_client_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Remove all client env vars and isolate from .env files before each test."""
    for var in _ALL_CLIENT_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def csv_file(tmp_path: Path) -> Path:
    """A five-row export: one sentinel cell, one blank HOUR, one bad number."""
    path = tmp_path / "export.csv"
    path.write_text(
        "\n".join(
            [
                CSV_HEADER,
                "01/06/2024,10:00,1500,600,35,400,400,400,6.5,230",
                "01/06/2024,11:00,1600,32767,36,400,400,400,7,230",
                "01/06/2024,,1700,600,37,400,400,400,7.4,230",
                "01/06/2024,13:00,abc,600,38,400,400,400,7.8,230",
                "01/06/2024,14:00,1900,600,39,400,400,400,8.3,230",
            ]
        )
        + "\n"
    )
    return path
