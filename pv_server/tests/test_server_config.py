"""
Unit tests for ServerSettings.

Tests verify:
- Defaults match the documented thresholds.
- Environment variables override defaults.
- Invalid values are rejected at load time.

CHANGELOG:
- 2026-10-15: Add enable flag tests (STORY-009)
- 2026-10-12: Initial creation (STORY-001)

TODO:
- None
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from pv_server.src.config import ServerSettings
from pv_server.src.detectors import DetectorThresholds


class TestDefaults:
    """Settings with no environment."""

    def test_defaults(self) -> None:
        settings = ServerSettings()
        assert settings.data_path == "Data"
        assert settings.reset_warnings_on_start is True
        assert settings.enable_dc_checks is True
        assert settings.enable_efficiency_check is True
        assert settings.progress_log_every == 10
        assert settings.thresholds() == DetectorThresholds()


class TestEnvironment:
    """Environment variable loading."""

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATA_PATH", "/var/lib/pv")
        monkeypatch.setenv("OVER_TEMP_THRESHOLD", "65")
        monkeypatch.setenv("POWER_FLATLINE_WINDOW", "5")
        monkeypatch.setenv("ENABLE_DC_CHECKS", "false")
        settings = ServerSettings()
        assert settings.data_path == "/var/lib/pv"
        assert settings.over_temp_threshold == 65.0
        assert settings.thresholds().power_flatline_window == 5
        assert settings.enable_dc_checks is False

    def test_dotenv_file(self, tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A .env file in the working directory is read; unknown keys are ignored."""
        (tmp_path / ".env").write_text("POWER_SPIKE_THRESHOLD=750\nCSV_PATH=x.csv\n")
        assert ServerSettings().power_spike_threshold == 750.0


class TestValidation:
    """Rejected values."""

    @pytest.mark.parametrize(
        ("var", "value"),
        [
            ("POWER_FLATLINE_WINDOW", "0"),
            ("PROGRESS_LOG_EVERY", "0"),
            ("POWER_SPIKE_THRESHOLD", "0"),
            ("POWER_FLATLINE_EPSILON", "-1"),
            ("DC_SAG_THRESHOLD", "0"),
            ("VOLTAGE_IMBALANCE_PCT", "-5"),
            ("LOW_EFFICIENCY_THRESHOLD", "0"),
            ("LOW_EFFICIENCY_THRESHOLD", "1.5"),
            ("DATA_PATH", "  "),
        ],
    )
    def test_invalid_value(self, monkeypatch: pytest.MonkeyPatch, var: str, value: str) -> None:
        monkeypatch.setenv(var, value)
        with pytest.raises(ValidationError):
            ServerSettings()
