"""
Structured JSON logging for the telemetry server.

Every log record is written to stderr as one JSON object with ``ts``,
``level``, ``logger`` and ``msg`` keys, plus ``exception`` when a traceback
is attached.

CHANGELOG:
- 2026-10-13: Initial creation (STORY-007)

TODO:
- None
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime

logger = logging.getLogger(__name__)


class JsonFormatter(logging.Formatter):
    """Minimal JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def configure_logging(level: int = logging.INFO) -> None:
    """Install the JSON formatter on the root logger, writing to stderr."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def log_config_summary(settings: object) -> None:
    """Log the server configuration at startup.

    Args:
        settings: A ServerSettings instance (or any object with the same attrs).
    """
    logger.info(
        "Telemetry server starting with config: "
        "data_path=%s, over_temp_threshold=%s, voltage_imbalance_pct=%s, "
        "power_flatline_window=%s, power_spike_threshold=%s, "
        "power_flatline_epsilon=%s, dc_sag_threshold=%s, "
        "low_efficiency_threshold=%s, reset_warnings_on_start=%s, "
        "enable_dc_checks=%s, enable_efficiency_check=%s, progress_log_every=%s",
        settings.data_path,  # type: ignore[attr-defined]
        settings.over_temp_threshold,  # type: ignore[attr-defined]
        settings.voltage_imbalance_pct,  # type: ignore[attr-defined]
        settings.power_flatline_window,  # type: ignore[attr-defined]
        settings.power_spike_threshold,  # type: ignore[attr-defined]
        settings.power_flatline_epsilon,  # type: ignore[attr-defined]
        settings.dc_sag_threshold,  # type: ignore[attr-defined]
        settings.low_efficiency_threshold,  # type: ignore[attr-defined]
        settings.reset_warnings_on_start,  # type: ignore[attr-defined]
        settings.enable_dc_checks,  # type: ignore[attr-defined]
        settings.enable_efficiency_check,  # type: ignore[attr-defined]
        settings.progress_log_every,  # type: ignore[attr-defined]
    )
