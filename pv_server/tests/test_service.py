"""
Unit tests for the SessionService facade.

Tests verify:
- Each operation returns a structured result instead of raising.
- Failures carry the matching ErrorKind and halts_transfer flag.
- Unexpected exceptions become INTERNAL_ERROR.
- close() ends a session left open.

CHANGELOG:
- 2026-10-15: Add storage failure tests (STORY-009)
- 2026-10-12: Initial creation (STORY-004)

TODO:
- None
"""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from pv_server.src.config import ServerSettings
from pv_server.src.errors import StorageError
from pv_server.src.events import SampleReceived
from pv_server.src.models import ErrorKind
from pv_server.src.service import LoggingObserver, SessionService
from pv_server.src.session import SessionEngine
from pv_server.tests.helpers import make_meta, make_sample


@pytest.fixture()
def service(engine: SessionEngine) -> SessionService:
    return SessionService(engine)


class TestStart:
    """start_session results."""

    def test_success(self, service: SessionService) -> None:
        result = service.start_session(make_meta())
        assert result.success is True
        assert result.session_id == "sess0001"
        assert result.message == "Session sess0001 started"
        assert result.error is None

    def test_missing_meta(self, service: SessionService) -> None:
        result = service.start_session(None)
        assert result.success is False
        assert result.error is ErrorKind.INVALID_INPUT
        assert result.halts_transfer is False

    def test_already_active(self, service: SessionService) -> None:
        service.start_session(make_meta())
        result = service.start_session(make_meta())
        assert result.error is ErrorKind.PROTOCOL_VIOLATION
        assert result.halts_transfer is True


class TestPush:
    """push_sample results."""

    def test_accepted(self, service: SessionService) -> None:
        service.start_session(make_meta(row_limit_n=200))
        result = service.push_sample(make_sample(1))
        assert result.success is True
        assert result.message == "OK"
        assert result.received_count == 1
        assert result.percent_of_limit == 0.5

    def test_validation_failure_does_not_halt(self, service: SessionService) -> None:
        service.start_session(make_meta())
        service.push_sample(make_sample(1))
        result = service.push_sample(make_sample(2, ac_voltage_1=-230.0))
        assert result.success is False
        assert result.message == "AcVlt1 must be positive"
        assert result.error is ErrorKind.VALIDATION_FAILURE
        assert result.halts_transfer is False
        assert result.received_count == 1

    def test_without_session(self, service: SessionService) -> None:
        result = service.push_sample(make_sample(1))
        assert result.success is False
        assert result.message == "No active session"
        assert result.error is ErrorKind.PROTOCOL_VIOLATION
        assert result.received_count == 0

    def test_missing_sample(self, service: SessionService) -> None:
        service.start_session(make_meta())
        result = service.push_sample(None)
        assert result.error is ErrorKind.INVALID_INPUT

    def test_storage_failure(self, service: SessionService) -> None:
        service.start_session(make_meta())
        service.push_sample(make_sample(1))
        session = service.engine._session
        assert session is not None
        session.log.write_accepted = MagicMock(side_effect=StorageError("disk full"))

        result = service.push_sample(make_sample(2))
        assert result.error is ErrorKind.STORAGE_FAILURE
        assert result.halts_transfer is True
        assert result.received_count == 1

    def test_unexpected_exception(self, service: SessionService) -> None:
        service.start_session(make_meta())
        service.engine._bank.evaluate = MagicMock(side_effect=ZeroDivisionError("oops"))
        result = service.push_sample(make_sample(1))
        assert result.success is False
        assert result.error is ErrorKind.INTERNAL_ERROR
        assert result.message == "Internal error: oops"


class TestEndAndWarnings:
    """end_session, get_warnings and close."""

    def test_end(self, service: SessionService) -> None:
        service.start_session(make_meta())
        service.push_sample(make_sample(1))
        result = service.end_session()
        assert result.success is True
        assert result.session_id == "sess0001"
        assert result.received_count == 1
        assert result.message.startswith("Session sess0001 ended. Received 1 samples")

    def test_end_without_session(self, service: SessionService) -> None:
        result = service.end_session()
        assert result.error is ErrorKind.PROTOCOL_VIOLATION

    def test_get_warnings(self, service: SessionService) -> None:
        service.start_session(make_meta())
        service.push_sample(make_sample(2, temperature=70.0))
        assert service.get_warnings() == [
            "[OverTempWarning] Row 2: Temperature 70.0°C exceeds threshold 50.0°C"
        ]

    def test_close_ends_active_session(self, service: SessionService) -> None:
        service.start_session(make_meta())
        result = service.close()
        assert result is not None
        assert result.success is True
        assert service.engine.session_id is None

    def test_close_when_idle(self, service: SessionService) -> None:
        assert service.close() is None


class TestFromSettings:
    """Composition from ServerSettings."""

    def test_builds_engine_from_settings(self, tmp_path: Path) -> None:
        settings = ServerSettings(
            data_path=str(tmp_path / "logs"),
            over_temp_threshold=40.0,
            enable_dc_checks=False,
        )
        service = SessionService.from_settings(settings)
        service.start_session(make_meta())
        service.push_sample(make_sample(1, temperature=45.0, dc_voltage=None))
        assert service.get_warnings() == [
            "[OverTempWarning] Row 1: Temperature 45.0°C exceeds threshold 40.0°C"
        ]
        assert (tmp_path / "logs" / "PLANT-001").is_dir()


class TestLoggingObserver:
    """Progress lines are logged every N accepted samples."""

    def test_progress_interval(self, caplog: pytest.LogCaptureFixture) -> None:
        observer = LoggingObserver(progress_every=2)
        with caplog.at_level(logging.INFO, logger="pv_server.src.service"):
            for n in range(1, 5):
                observer(
                    SampleReceived(
                        session_id="s", row_index=n, total_received=n, percent_of_limit=n
                    )
                )
        progress = [r for r in caplog.records if r.getMessage().startswith("Progress")]
        assert len(progress) == 2
