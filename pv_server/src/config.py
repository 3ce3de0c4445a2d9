"""
Server configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
Detector thresholds, the log directory and the warning reset policy all come
from environment variables or a .env file; every value has a default.

CHANGELOG:
- 2026-10-15: Add detector enable flags and progress interval (STORY-009)
- 2026-10-12: Initial creation (STORY-001)

TODO:
- None
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings

from pv_server.src.detectors import DetectorThresholds


class ServerSettings(BaseSettings):
    """Session telemetry server configuration.

    Attributes:
        data_path: Root directory of the per-plant session logs.
        over_temp_threshold: Inverter temperature limit in degrees Celsius.
        voltage_imbalance_pct: Allowed line-voltage spread in percent of the
            average line voltage.
        power_flatline_window: Trailing AC power readings compared by the
            flatline detector.
        power_spike_threshold: Largest allowed AC power change (W) between
            consecutive accepted samples.
        power_flatline_epsilon: Power variation (W) below which a full window
            counts as flat.
        dc_sag_threshold: Largest allowed DC voltage change (V) between
            consecutive accepted samples.
        low_efficiency_threshold: Minimum AC power / apparent power ratio.
        reset_warnings_on_start: Clear accumulated warnings when a new
            session starts.
        enable_dc_checks: Run the DC sag/fault detector.
        enable_efficiency_check: Run the low efficiency detector.
        progress_log_every: Log transfer progress every N accepted samples.
    """

    data_path: str = "Data"
    over_temp_threshold: float = 50.0
    voltage_imbalance_pct: float = 5.0
    power_flatline_window: int = 10
    power_spike_threshold: float = 1000.0
    power_flatline_epsilon: float = 0.5
    dc_sag_threshold: float = 50.0
    low_efficiency_threshold: float = 0.8
    reset_warnings_on_start: bool = True
    enable_dc_checks: bool = True
    enable_efficiency_check: bool = True
    progress_log_every: int = 10

    @field_validator("power_flatline_window", "progress_log_every")
    @classmethod
    def count_must_be_positive(cls, v: int) -> int:
        """Validate window sizes and intervals are at least 1."""
        if v < 1:
            raise ValueError("POWER_FLATLINE_WINDOW and PROGRESS_LOG_EVERY must be >= 1")
        return v

    @field_validator(
        "power_spike_threshold",
        "power_flatline_epsilon",
        "dc_sag_threshold",
        "voltage_imbalance_pct",
    )
    @classmethod
    def threshold_must_be_positive(cls, v: float) -> float:
        """Validate delta thresholds are strictly positive."""
        if v <= 0:
            raise ValueError("Detector thresholds must be > 0")
        return v

    @field_validator("low_efficiency_threshold")
    @classmethod
    def efficiency_must_be_ratio(cls, v: float) -> float:
        """Validate the efficiency threshold is a ratio in (0, 1]."""
        if v <= 0 or v > 1:
            raise ValueError("LOW_EFFICIENCY_THRESHOLD must be > 0 and <= 1")
        return v

    @field_validator("data_path")
    @classmethod
    def data_path_must_not_be_empty(cls, v: str) -> str:
        """Validate the log directory is set."""
        if not v.strip():
            raise ValueError("DATA_PATH must not be empty")
        return v

    def thresholds(self) -> DetectorThresholds:
        """Return the resolved detector thresholds."""
        return DetectorThresholds(
            over_temp_threshold=self.over_temp_threshold,
            voltage_imbalance_pct=self.voltage_imbalance_pct,
            power_flatline_window=self.power_flatline_window,
            power_spike_threshold=self.power_spike_threshold,
            power_flatline_epsilon=self.power_flatline_epsilon,
            dc_sag_threshold=self.dc_sag_threshold,
            low_efficiency_threshold=self.low_efficiency_threshold,
        )

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}
