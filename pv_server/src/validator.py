"""
Pure validation rules for incoming telemetry samples.

Rules are applied in order and the first failure wins:

1. row_index must be positive.
2. ac_power, when present, must not be negative.
3. dc_voltage, the three line voltages and ac_voltage_1, when present, must
   be strictly positive.

Missing readings always pass. This module performs no I/O and holds no
state.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-003)

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass

from pv_server.src.models import TelemetrySample

# Field name -> label used in the rejection reason, checked in this order.
_POSITIVE_FIELDS: tuple[tuple[str, str], ...] = (
    ("dc_voltage", "DcVolt"),
    ("line_voltage_12", "Vl1to2"),
    ("line_voltage_23", "Vl2to3"),
    ("line_voltage_31", "Vl3to1"),
    ("ac_voltage_1", "AcVlt1"),
)


@dataclass(frozen=True, slots=True)
class ValidationOutcome:
    """Result of validating one sample.

    Attributes:
        accepted: True when every rule passed.
        reason: Human-readable rejection reason, ``None`` when accepted.
    """

    accepted: bool
    reason: str | None = None

    @classmethod
    def ok(cls) -> ValidationOutcome:
        return cls(accepted=True)

    @classmethod
    def rejected(cls, reason: str) -> ValidationOutcome:
        return cls(accepted=False, reason=reason)


def validate_sample(sample: TelemetrySample) -> ValidationOutcome:
    """Check *sample* against the row rules.

    Args:
        sample: The sample to check.

    Returns:
        ``ValidationOutcome.ok()`` or a rejection carrying the reason of the
        first rule that failed.
    """
    if sample.row_index <= 0:
        return ValidationOutcome.rejected("Invalid RowIndex")

    if sample.ac_power is not None and sample.ac_power < 0:
        return ValidationOutcome.rejected("AcPwrt cannot be negative")

    for field_name, label in _POSITIVE_FIELDS:
        value = getattr(sample, field_name)
        if value is not None and value <= 0:
            return ValidationOutcome.rejected(f"{label} must be positive")

    return ValidationOutcome.ok()
