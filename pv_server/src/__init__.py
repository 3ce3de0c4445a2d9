"""
Session telemetry engine for PV inverter CSV transfers.

Accepts inverter telemetry row by row inside a start/push/end session,
validates each row, appends accepted and rejected rows to per-plant CSV logs,
and runs streaming anomaly detectors over the accepted sequence.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-001)

TODO:
- None
"""
