"""HTTP transport for the session telemetry engine."""
