"""
Sample builders and a deterministic clock shared by the server tests.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from pv_server.src.models import SessionMeta, TelemetrySample


def make_sample(row_index: int = 1, **overrides: object) -> TelemetrySample:
    """Return a healthy sample that raises no warning on its own.

    AC power rises by 1 W per row so long runs never flatline, line voltages
    are balanced, AC power stays close to apparent power and DC voltage is
    present. Only the overridden channels can trigger a detector.
    """
    values: dict[str, object] = {
        "row_index": row_index,
        "day": "2024-06-01",
        "hour": f"{row_index % 24:02d}:00",
        "ac_power": 2000.0 + row_index,
        "dc_voltage": 600.0,
        "temperature": 35.0,
        "line_voltage_12": 400.0,
        "line_voltage_23": 400.0,
        "line_voltage_31": 400.0,
        "ac_current_1": 10.0,
        "ac_voltage_1": 230.0,
    }
    values.update(overrides)
    return TelemetrySample(**values)


def make_meta(**overrides: object) -> SessionMeta:
    """Return a SessionMeta for PLANT-001 with a row limit of 100."""
    values: dict[str, object] = {
        "plant_id": "PLANT-001",
        "file_name": "export.csv",
        "total_rows": 100,
        "row_limit_n": 100,
    }
    values.update(overrides)
    return SessionMeta(**values)


class FakeClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 6, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + timedelta(seconds=1)
        return current
