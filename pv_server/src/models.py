"""
Pydantic models for PV inverter telemetry sessions.

Defines the domain types exchanged between the transport layer and the
session engine:

- TelemetrySample: one inverter reading (eight optional numeric channels).
- SessionMeta: descriptor sent by the client when a transfer starts.
- TelemetryWarning: an immutable anomaly record raised by the detectors.
- StartResult / PushResult / EndResult: structured outcomes of the session
  operations, each carrying a success flag, a message and an ErrorKind on
  failure.

Missing readings are ``None``. Upstream CSV exports encode a missing reading
as the sentinel 32767.0; the sentinel is converted to ``None`` here so it can
never reach the detectors.

CHANGELOG:
- 2026-10-14: Add halts_transfer to results (STORY-008)
- 2026-10-13: Accept camelCase aliases on the wire (STORY-007)
- 2026-10-12: Initial creation (STORY-002)

TODO:
- None
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

SENTINEL = 32767.0
"""Value used by inverter CSV exports to mean "no reading"."""

_SENTINEL_TOLERANCE = 0.001

_NUMERIC_CHANNELS = (
    "ac_power",
    "dc_voltage",
    "temperature",
    "line_voltage_12",
    "line_voltage_23",
    "line_voltage_31",
    "ac_current_1",
    "ac_voltage_1",
)


def is_sentinel(value: float) -> bool:
    """Return True when *value* is the "no reading" sentinel."""
    return abs(value - SENTINEL) < _SENTINEL_TOLERANCE


# ---------------------------------------------------------------------------
# Telemetry input
# ---------------------------------------------------------------------------


class TelemetrySample(BaseModel):
    """A single inverter reading tagged by day and hour.

    Attributes:
        row_index: 1-based row number within the transfer.
        day: Non-blank, free-form day label from the source file.
        hour: Non-blank, free-form hour label from the source file.
        ac_power: AC output power in watts (AcPwrt).
        dc_voltage: DC input voltage in volts (DcVolt).
        temperature: Inverter temperature in degrees Celsius (Temper).
        line_voltage_12: Line-to-line voltage L1-L2 in volts (Vl1to2).
        line_voltage_23: Line-to-line voltage L2-L3 in volts (Vl2to3).
        line_voltage_31: Line-to-line voltage L3-L1 in volts (Vl3to1).
        ac_current_1: Phase 1 AC current in amperes (AcCur1).
        ac_voltage_1: Phase 1 AC voltage in volts (AcVlt1).
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    row_index: int = Field(alias="rowIndex")
    day: str = Field(min_length=1)
    hour: str = Field(min_length=1)
    ac_power: float | None = Field(default=None, alias="acPower")
    dc_voltage: float | None = Field(default=None, alias="dcVoltage")
    temperature: float | None = None
    line_voltage_12: float | None = Field(default=None, alias="lineVoltage12")
    line_voltage_23: float | None = Field(default=None, alias="lineVoltage23")
    line_voltage_31: float | None = Field(default=None, alias="lineVoltage31")
    ac_current_1: float | None = Field(default=None, alias="acCurrent1")
    ac_voltage_1: float | None = Field(default=None, alias="acVoltage1")

    @field_validator("day", "hour")
    @classmethod
    def label_must_not_be_blank(cls, v: str) -> str:
        """Reject whitespace-only day and hour labels."""
        if not v.strip():
            raise ValueError("day and hour must not be blank")
        return v

    @field_validator(*_NUMERIC_CHANNELS, mode="before")
    @classmethod
    def sentinel_to_none(cls, v: object) -> object:
        """Map the 32767.0 sentinel to a missing reading."""
        if isinstance(v, int | float) and not isinstance(v, bool) and is_sentinel(v):
            return None
        return v

    def raw_repr(self) -> str:
        """Return a one-line human-readable dump used in the rejects log."""

        def fmt(value: float | None) -> str:
            return "" if value is None else repr(value)

        return (
            f"Row {self.row_index}, Day={self.day}, Hour={self.hour}, "
            f"AcPwrt={fmt(self.ac_power)}, DcVolt={fmt(self.dc_voltage)}, "
            f"Temper={fmt(self.temperature)}, Vl1to2={fmt(self.line_voltage_12)}, "
            f"Vl2to3={fmt(self.line_voltage_23)}, Vl3to1={fmt(self.line_voltage_31)}, "
            f"AcCur1={fmt(self.ac_current_1)}, AcVlt1={fmt(self.ac_voltage_1)}"
        )


class SessionMeta(BaseModel):
    """Descriptor of one transfer, sent with StartSession.

    Attributes:
        plant_id: Plant identifier; also the first directory level of the
            session logs, so it may not contain path separators.
        file_name: Name of the source CSV file.
        total_rows: Number of data rows declared by the client.
        schema_version: Client schema version string.
        row_limit_n: Target number of samples for this transfer. Used as the
            denominator of percent_of_limit; 0 disables the percentage.
        session_date_utc: Client-side session timestamp.
    """

    model_config = ConfigDict(populate_by_name=True)

    plant_id: str = Field(default="PLANT-001", alias="plantId", min_length=1)
    file_name: str = Field(default="", alias="fileName")
    total_rows: int = Field(default=0, alias="totalRows", ge=0)
    schema_version: str = Field(default="1.0", alias="schemaVersion")
    row_limit_n: int = Field(default=100, alias="rowLimitN", ge=0)
    session_date_utc: datetime | None = Field(default=None, alias="sessionDateUtc")

    @field_validator("plant_id")
    @classmethod
    def plant_id_must_be_path_safe(cls, v: str) -> str:
        """Reject plant ids that would escape the data directory."""
        if "/" in v or "\\" in v or v in (".", ".."):
            raise ValueError("plant_id must not contain path separators")
        return v


# ---------------------------------------------------------------------------
# Warnings
# ---------------------------------------------------------------------------


class WarningType(StrEnum):
    """Tag identifying which detector raised a warning."""

    OVER_TEMP = "OverTempWarning"
    VOLTAGE_IMBALANCE = "VoltageImbalanceWarning"
    POWER_SPIKE = "PowerSpikeWarning"
    POWER_FLATLINE = "PowerFlatlineWarning"
    DC_SAG = "DcSagWarning"
    DC_FAULT = "DcFaultWarning"
    LOW_EFFICIENCY = "LowEfficiencyWarning"


class TelemetryWarning(BaseModel):
    """An anomaly raised for one accepted sample."""

    model_config = ConfigDict(frozen=True)

    type: WarningType
    message: str
    row_index: int
    timestamp: datetime

    def format(self) -> str:
        """Render as ``[<Type>] Row <rowIndex>: <message>``."""
        return f"[{self.type.value}] Row {self.row_index}: {self.message}"


# ---------------------------------------------------------------------------
# Operation results
# ---------------------------------------------------------------------------


class ErrorKind(StrEnum):
    """Failure classes reported on unsuccessful results."""

    INVALID_INPUT = "invalid_input"
    VALIDATION_FAILURE = "validation_failure"
    PROTOCOL_VIOLATION = "protocol_violation"
    STORAGE_FAILURE = "storage_failure"
    INTERNAL_ERROR = "internal_error"


_HALTING_ERRORS = frozenset(
    {
        ErrorKind.PROTOCOL_VIOLATION,
        ErrorKind.STORAGE_FAILURE,
        ErrorKind.INTERNAL_ERROR,
    }
)


class OperationResult(BaseModel):
    """Fields shared by every session operation result."""

    success: bool
    message: str
    error: ErrorKind | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def halts_transfer(self) -> bool:
        """True when a batch caller should stop sending samples."""
        return self.error in _HALTING_ERRORS


class StartResult(OperationResult):
    """Outcome of StartSession."""

    session_id: str | None = None


class PushResult(OperationResult):
    """Outcome of PushSample."""

    received_count: int = 0
    percent_of_limit: float = 0.0


class EndResult(OperationResult):
    """Outcome of EndSession."""

    session_id: str | None = None
    received_count: int = 0
