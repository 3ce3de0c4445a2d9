"""PV session telemetry server."""
