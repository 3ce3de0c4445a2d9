"""
Pydantic models for the client side of a telemetry transfer.

- TelemetrySample: one parsed CSV row, serialised with camelCase keys.
- SessionMeta: transfer descriptor sent with StartSession.
- ServerAck: any result returned by the server session endpoints.

CHANGELOG:
- 2026-10-14: Initial creation (STORY-010)

TODO:
- None
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class TelemetrySample(BaseModel):
    """A single inverter reading parsed from the CSV export.

    Numeric channels are ``None`` when the cell was blank, unparsable, or
    held the 32767.0 sentinel.
    """

    model_config = ConfigDict(populate_by_name=True)

    row_index: int = Field(alias="rowIndex")
    day: str
    hour: str
    ac_power: float | None = Field(default=None, alias="acPower")
    dc_voltage: float | None = Field(default=None, alias="dcVoltage")
    temperature: float | None = None
    line_voltage_12: float | None = Field(default=None, alias="lineVoltage12")
    line_voltage_23: float | None = Field(default=None, alias="lineVoltage23")
    line_voltage_31: float | None = Field(default=None, alias="lineVoltage31")
    ac_current_1: float | None = Field(default=None, alias="acCurrent1")
    ac_voltage_1: float | None = Field(default=None, alias="acVoltage1")

    def to_payload(self) -> dict:
        """Return the JSON body sent to POST /v1/session/sample."""
        return self.model_dump(mode="json", by_alias=True)


class SessionMeta(BaseModel):
    """Transfer descriptor sent to POST /v1/session/start."""

    model_config = ConfigDict(populate_by_name=True)

    plant_id: str = Field(default="PLANT-001", alias="plantId")
    file_name: str = Field(default="", alias="fileName")
    total_rows: int = Field(default=0, alias="totalRows")
    schema_version: str = Field(default="1.0", alias="schemaVersion")
    row_limit_n: int = Field(default=100, alias="rowLimitN")
    session_date_utc: datetime | None = Field(default=None, alias="sessionDateUtc")

    def to_payload(self) -> dict:
        """Return the JSON body sent to POST /v1/session/start."""
        return self.model_dump(mode="json", by_alias=True)


class ServerAck(BaseModel):
    """Result of a server session operation.

    Attributes:
        success: Whether the operation succeeded.
        message: Human-readable status or failure reason.
        error: Failure class reported by the server, ``None`` on success.
        halts_transfer: True when the client should stop sending samples.
        session_id: Session identifier (start and end only).
        received_count: Samples accepted so far (push and end only).
        percent_of_limit: Progress against the row limit (push only).
    """

    model_config = ConfigDict(extra="ignore")

    success: bool
    message: str = ""
    error: str | None = None
    halts_transfer: bool = False
    session_id: str | None = None
    received_count: int = 0
    percent_of_limit: float = 0.0
