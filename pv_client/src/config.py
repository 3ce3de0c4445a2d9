"""
Client configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
The CSV path is required; everything else has a default.

CHANGELOG:
- 2026-10-14: Initial creation (STORY-010)

TODO:
- None
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings


class ClientSettings(BaseSettings):
    """CSV replay client configuration.

    Attributes:
        csv_path: Inverter CSV export to transfer.
        server_base_url: Base URL of the telemetry server (http or https).
        plant_id: Plant identifier sent in the session meta.
        schema_version: Schema version sent in the session meta.
        row_limit: Maximum number of CSV data rows to send.
        reject_path: Client-side rejects file. Defaults to
            ``rejected_client.csv`` next to the CSV file.
        request_timeout_s: Per-request HTTP timeout in seconds.
    """

    csv_path: str
    server_base_url: str = "http://localhost:8000"
    plant_id: str = "PLANT-001"
    schema_version: str = "1.0"
    row_limit: int = 200
    reject_path: str | None = None
    request_timeout_s: float = 10.0

    @field_validator("server_base_url")
    @classmethod
    def server_base_url_must_be_http(cls, v: str) -> str:
        """Validate the server URL uses http:// or https://."""
        if not v.lower().startswith(("http://", "https://")):
            raise ValueError(
                f"SERVER_BASE_URL must start with http:// or https:// (got: '{v[:20]}...')"
            )
        return v.rstrip("/")

    @field_validator("row_limit")
    @classmethod
    def row_limit_must_be_positive(cls, v: int) -> int:
        """Validate at least one row may be sent."""
        if v < 1:
            raise ValueError("ROW_LIMIT must be >= 1")
        return v

    @field_validator("request_timeout_s")
    @classmethod
    def timeout_must_be_positive(cls, v: float) -> float:
        """Validate the HTTP timeout is positive."""
        if v <= 0:
            raise ValueError("REQUEST_TIMEOUT_S must be > 0")
        return v

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}
