"""
Streaming anomaly detectors evaluated over accepted telemetry samples.

Each detector consumes one accepted sample at a time and returns the
warnings it raises for that sample. Detectors do not interact; the
DetectorBank simply runs all of them in a fixed order.

Detectors:
- OverTempDetector: temperature above a threshold (stateless).
- VoltageImbalanceDetector: spread of the three line voltages relative to
  their average (stateless).
- PowerSpikeDetector: abrupt AC power change against the immediately
  preceding accepted sample.
- PowerFlatlineDetector: near-constant AC power over a trailing window.
- DcVoltageDetector: abrupt DC voltage change (sag) and DC voltage near zero
  or missing while AC power is produced (fault).
- LowEfficiencyDetector: AC power well below the apparent power of phase 1.

The detectors are pure with respect to the clock: the caller passes the
warning timestamp in.

CHANGELOG:
- 2026-10-15: Add enable flags for the DC and efficiency checks (STORY-009)
- 2026-10-13: Add DC sag/fault and low efficiency detectors (STORY-006)
- 2026-10-12: Initial creation (STORY-005)

TODO:
- None
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from pv_server.src.models import TelemetrySample, TelemetryWarning, WarningType

_DC_FAULT_VOLTAGE = 0.01
"""DC voltage below this (in volts) counts as zero."""

_MIN_APPARENT_POWER = 1.0
"""Apparent power floor (VA) below which efficiency is not computed."""


@dataclass(frozen=True, slots=True)
class DetectorThresholds:
    """Resolved threshold values injected into the detector bank.

    Attributes:
        over_temp_threshold: Temperature limit in degrees Celsius.
        voltage_imbalance_pct: Allowed line-voltage spread, percent of the
            average line voltage.
        power_flatline_window: Number of trailing power readings compared by
            the flatline detector.
        power_spike_threshold: Largest allowed power change between two
            consecutive accepted samples, in watts.
        power_flatline_epsilon: Power variation (W) under which a full window
            counts as flat.
        dc_sag_threshold: Largest allowed DC voltage change between two
            consecutive accepted samples, in volts.
        low_efficiency_threshold: Minimum ratio of AC power to apparent power.
    """

    over_temp_threshold: float = 50.0
    voltage_imbalance_pct: float = 5.0
    power_flatline_window: int = 10
    power_spike_threshold: float = 1000.0
    power_flatline_epsilon: float = 0.5
    dc_sag_threshold: float = 50.0
    low_efficiency_threshold: float = 0.8


class Detector(Protocol):
    """Interface shared by all detectors."""

    def check(self, sample: TelemetrySample, ts: datetime) -> list[TelemetryWarning]: ...

    def reset(self) -> None: ...


def _warning(
    warning_type: WarningType,
    message: str,
    sample: TelemetrySample,
    ts: datetime,
) -> TelemetryWarning:
    return TelemetryWarning(
        type=warning_type,
        message=message,
        row_index=sample.row_index,
        timestamp=ts,
    )


# ---------------------------------------------------------------------------
# Stateless detectors
# ---------------------------------------------------------------------------


class OverTempDetector:
    """Raises when the inverter temperature exceeds the threshold."""

    def __init__(self, threshold: float) -> None:
        self._threshold = threshold

    def check(self, sample: TelemetrySample, ts: datetime) -> list[TelemetryWarning]:
        temp = sample.temperature
        if temp is None or temp <= self._threshold:
            return []
        return [
            _warning(
                WarningType.OVER_TEMP,
                f"Temperature {temp:.1f}°C exceeds threshold {self._threshold}°C",
                sample,
                ts,
            )
        ]

    def reset(self) -> None:
        pass


class VoltageImbalanceDetector:
    """Raises when (max - min) / avg of the line voltages exceeds a percentage.

    Only evaluated when all three line voltages are present.
    """

    def __init__(self, imbalance_pct: float) -> None:
        self._imbalance_pct = imbalance_pct

    def check(self, sample: TelemetrySample, ts: datetime) -> list[TelemetryWarning]:
        voltages = (sample.line_voltage_12, sample.line_voltage_23, sample.line_voltage_31)
        if any(v is None for v in voltages):
            return []

        avg = sum(voltages) / 3.0
        if avg <= 0:
            return []

        imbalance = (max(voltages) - min(voltages)) / avg * 100.0
        if imbalance <= self._imbalance_pct:
            return []
        return [
            _warning(
                WarningType.VOLTAGE_IMBALANCE,
                f"Voltage imbalance {imbalance:.1f}% exceeds threshold "
                f"{self._imbalance_pct}%",
                sample,
                ts,
            )
        ]

    def reset(self) -> None:
        pass


class LowEfficiencyDetector:
    """Raises when ac_power / (ac_voltage_1 * ac_current_1) is below a ratio.

    Skipped when the apparent power is at or below 1 VA.
    """

    def __init__(self, threshold: float) -> None:
        self._threshold = threshold

    def check(self, sample: TelemetrySample, ts: datetime) -> list[TelemetryWarning]:
        power = sample.ac_power
        voltage = sample.ac_voltage_1
        current = sample.ac_current_1
        if power is None or voltage is None or current is None:
            return []

        apparent = voltage * current
        if apparent <= _MIN_APPARENT_POWER:
            return []

        efficiency = power / apparent
        if efficiency >= self._threshold:
            return []
        return [
            _warning(
                WarningType.LOW_EFFICIENCY,
                f"Low efficiency {efficiency:.2f} (AC {power:.1f}W of "
                f"{apparent:.1f}VA apparent) below threshold {self._threshold}",
                sample,
                ts,
            )
        ]

    def reset(self) -> None:
        pass


# ---------------------------------------------------------------------------
# Stateful detectors
# ---------------------------------------------------------------------------


class PowerSpikeDetector:
    """Compares AC power with the previous accepted sample's AC power.

    The previous value is whatever the last accepted sample carried, so a
    sample without AC power breaks the chain for the next one.
    """

    def __init__(self, threshold: float) -> None:
        self._threshold = threshold
        self._previous: float | None = None

    def check(self, sample: TelemetrySample, ts: datetime) -> list[TelemetryWarning]:
        current = sample.ac_power
        previous = self._previous
        self._previous = current

        if current is None or previous is None:
            return []

        delta = abs(current - previous)
        if delta <= self._threshold:
            return []
        return [
            _warning(
                WarningType.POWER_SPIKE,
                f"Power spike: change of {delta:.1f}W exceeds {self._threshold}W",
                sample,
                ts,
            )
        ]

    def reset(self) -> None:
        self._previous = None


class PowerFlatlineDetector:
    """Raises while the last *window* AC power readings stay within epsilon.

    The window is a bounded FIFO: once full, each new reading evicts the
    oldest. The check runs on every reading once the window is full, so a
    sustained flatline raises on each consecutive sample.
    """

    def __init__(self, window: int, epsilon: float) -> None:
        if window < 1:
            raise ValueError("power flatline window must be >= 1")
        self._epsilon = epsilon
        self._window: deque[float] = deque(maxlen=window)

    @property
    def window(self) -> tuple[float, ...]:
        """Current window contents, oldest first."""
        return tuple(self._window)

    def check(self, sample: TelemetrySample, ts: datetime) -> list[TelemetryWarning]:
        if sample.ac_power is None:
            return []

        self._window.append(sample.ac_power)
        if len(self._window) < self._window.maxlen:
            return []

        if max(self._window) - min(self._window) >= self._epsilon:
            return []
        return [
            _warning(
                WarningType.POWER_FLATLINE,
                f"Power flatline detected over {self._window.maxlen} samples "
                f"(variation < {self._epsilon}W)",
                sample,
                ts,
            )
        ]

    def reset(self) -> None:
        self._window.clear()


class DcVoltageDetector:
    """DC sag and DC fault checks.

    Sag: DC voltage changed by more than the threshold since the previous
    accepted sample (both present).
    Fault: DC voltage below 0.01 V, or missing, while AC power is above 0.
    Both may fire on the same sample.
    """

    def __init__(self, sag_threshold: float) -> None:
        self._sag_threshold = sag_threshold
        self._previous: float | None = None

    def check(self, sample: TelemetrySample, ts: datetime) -> list[TelemetryWarning]:
        dc = sample.dc_voltage
        previous = self._previous
        self._previous = dc
        power_active = sample.ac_power is not None and sample.ac_power > 0

        raised: list[TelemetryWarning] = []
        if dc is None:
            if power_active:
                raised.append(
                    _warning(
                        WarningType.DC_FAULT,
                        f"DC voltage missing (sentinel) while AC power "
                        f"{sample.ac_power:.1f}W is active",
                        sample,
                        ts,
                    )
                )
            return raised

        if previous is not None:
            delta = abs(dc - previous)
            if delta > self._sag_threshold:
                raised.append(
                    _warning(
                        WarningType.DC_SAG,
                        f"DC voltage sag: change of {delta:.1f}V exceeds "
                        f"{self._sag_threshold}V",
                        sample,
                        ts,
                    )
                )

        if dc < _DC_FAULT_VOLTAGE and power_active:
            raised.append(
                _warning(
                    WarningType.DC_FAULT,
                    f"DC voltage {dc:.3f}V near zero while AC power "
                    f"{sample.ac_power:.1f}W is active",
                    sample,
                    ts,
                )
            )
        return raised

    def reset(self) -> None:
        self._previous = None


# ---------------------------------------------------------------------------
# Bank
# ---------------------------------------------------------------------------


class DetectorBank:
    """Runs every configured detector against each accepted sample.

    Args:
        thresholds: Resolved threshold values.
        enable_dc_checks: Include the DC sag/fault detector.
        enable_efficiency_check: Include the low efficiency detector.
    """

    def __init__(
        self,
        thresholds: DetectorThresholds,
        *,
        enable_dc_checks: bool = True,
        enable_efficiency_check: bool = True,
    ) -> None:
        self.thresholds = thresholds
        self._detectors: list[Detector] = [
            OverTempDetector(thresholds.over_temp_threshold),
            VoltageImbalanceDetector(thresholds.voltage_imbalance_pct),
            PowerSpikeDetector(thresholds.power_spike_threshold),
            PowerFlatlineDetector(
                thresholds.power_flatline_window,
                thresholds.power_flatline_epsilon,
            ),
        ]
        if enable_dc_checks:
            self._detectors.append(DcVoltageDetector(thresholds.dc_sag_threshold))
        if enable_efficiency_check:
            self._detectors.append(
                LowEfficiencyDetector(thresholds.low_efficiency_threshold)
            )

    @property
    def detectors(self) -> tuple[Detector, ...]:
        return tuple(self._detectors)

    def evaluate(self, sample: TelemetrySample, *, ts: datetime) -> list[TelemetryWarning]:
        """Run all detectors on *sample* and collect their warnings in order."""
        raised: list[TelemetryWarning] = []
        for detector in self._detectors:
            raised.extend(detector.check(sample, ts))
        return raised

    def reset(self) -> None:
        """Drop all trailing state (previous values and windows)."""
        for detector in self._detectors:
            detector.reset()
