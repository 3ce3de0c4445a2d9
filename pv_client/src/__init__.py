"""
CSV replay client for the PV session telemetry server.

Reads inverter CSV exports, converts sentinel readings to missing values,
and pushes each row to the server inside a single transfer session.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-010)

TODO:
- None
"""
