"""
Integration tests for the session HTTP endpoints.

Tests verify:
- A full start / push / end / warnings round over HTTP.
- Status codes per failure class (200, 409, 422).
- Malformed bodies and blank labels get the structured 422 result.
- Bodies are always the structured result, including halts_transfer.
- GET /health reports whether a session is open.

CHANGELOG:
- 2026-10-19: Structured 422 for malformed bodies (STORY-014)
- 2026-10-13: Initial creation (STORY-007)

TODO:
- None
"""

from __future__ import annotations

from pathlib import Path

from fastapi.testclient import TestClient


def _sample_body(row_index: int, **overrides: object) -> dict:
    body: dict[str, object] = {
        "rowIndex": row_index,
        "day": "2024-06-01",
        "hour": "10:00",
        "acPower": 2000.0 + row_index,
        "dcVoltage": 600.0,
        "temperature": 35.0,
        "lineVoltage12": 400.0,
        "lineVoltage23": 400.0,
        "lineVoltage31": 400.0,
        "acCurrent1": 10.0,
        "acVoltage1": 230.0,
    }
    body.update(overrides)
    return body


_META = {"plantId": "PLANT-001", "fileName": "export.csv", "totalRows": 20, "rowLimitN": 20}


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------


class TestTransferRound:
    """A complete transfer over HTTP."""

    def test_full_round(self, client: TestClient, data_path: Path) -> None:
        """Start, push a good, a bad and a hot sample, end, read warnings."""
        start = client.post("/v1/session/start", json=_META)
        assert start.status_code == 200
        session_id = start.json()["session_id"]
        assert start.json()["success"] is True
        assert len(session_id) == 8

        ok = client.post("/v1/session/sample", json=_sample_body(1))
        assert ok.status_code == 200
        assert ok.json()["received_count"] == 1
        assert ok.json()["percent_of_limit"] == 5.0

        bad = client.post("/v1/session/sample", json=_sample_body(2, acPower=-3.0))
        assert bad.status_code == 200
        assert bad.json()["success"] is False
        assert bad.json()["error"] == "validation_failure"
        assert bad.json()["halts_transfer"] is False

        hot = client.post("/v1/session/sample", json=_sample_body(3, temperature=75.0))
        assert hot.json()["received_count"] == 2

        end = client.post("/v1/session/end")
        assert end.status_code == 200
        assert end.json()["received_count"] == 2
        assert end.json()["message"].startswith(f"Session {session_id} ended. Received 2 samples")

        warnings = client.get("/v1/warnings")
        assert warnings.status_code == 200
        assert warnings.json() == {
            "warnings": ["[OverTempWarning] Row 3: Temperature 75.0°C exceeds threshold 50.0°C"]
        }

        plant_dir = data_path / "PLANT-001"
        (day_dir,) = plant_dir.iterdir()
        assert len((day_dir / "session.csv").read_text().splitlines()) == 3
        assert len((day_dir / "rejects.csv").read_text().splitlines()) == 2

    def test_sentinel_in_body_is_missing(self, client: TestClient) -> None:
        """A sentinel DC voltage is read as missing and raises a DC fault."""
        client.post("/v1/session/start", json=_META)
        response = client.post("/v1/session/sample", json=_sample_body(1, dcVoltage=32767.0))
        assert response.json()["success"] is True
        warnings = client.get("/v1/warnings").json()["warnings"]
        assert warnings[0].startswith("[DcFaultWarning] Row 1: DC voltage missing")


# ---------------------------------------------------------------------------
# Failure status codes
# ---------------------------------------------------------------------------


class TestFailureStatus:
    """Structured failures and their status codes."""

    def test_push_without_session_is_409(self, client: TestClient) -> None:
        response = client.post("/v1/session/sample", json=_sample_body(1))
        assert response.status_code == 409
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "No active session"
        assert body["error"] == "protocol_violation"
        assert body["halts_transfer"] is True

    def test_end_without_session_is_409(self, client: TestClient) -> None:
        assert client.post("/v1/session/end").status_code == 409

    def test_double_start_is_409(self, client: TestClient) -> None:
        client.post("/v1/session/start", json=_META)
        response = client.post("/v1/session/start", json=_META)
        assert response.status_code == 409
        assert response.json()["error"] == "protocol_violation"

    def test_start_without_body_is_422(self, client: TestClient) -> None:
        response = client.post("/v1/session/start")
        assert response.status_code == 422
        assert response.json()["message"] == "Meta is null"
        assert response.json()["error"] == "invalid_input"

    def test_push_without_body_is_422(self, client: TestClient) -> None:
        client.post("/v1/session/start", json=_META)
        response = client.post("/v1/session/sample")
        assert response.status_code == 422
        assert response.json()["message"] == "Sample is null"

    def test_malformed_sample_is_structured_422(self, client: TestClient) -> None:
        """A body missing required fields still gets the PushResult shape."""
        client.post("/v1/session/start", json=_META)
        client.post("/v1/session/sample", json=_sample_body(1))
        response = client.post("/v1/session/sample", json={"rowIndex": 2})
        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "invalid_input"
        assert body["halts_transfer"] is False
        assert body["received_count"] == 1
        assert "day" in body["message"]
        assert "detail" not in body

    def test_malformed_meta_is_structured_422(self, client: TestClient) -> None:
        response = client.post("/v1/session/start", json={"rowLimitN": "many"})
        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "invalid_input"
        assert body["session_id"] is None
        assert body["message"].startswith("Invalid request body: ")

    def test_blank_labels_never_logged(self, client: TestClient, data_path: Path) -> None:
        """A blank day or hour is refused before it reaches session.csv."""
        client.post("/v1/session/start", json=_META)
        for body in (_sample_body(1, day=""), _sample_body(2, hour="   ")):
            response = client.post("/v1/session/sample", json=body)
            assert response.status_code == 422
            assert response.json()["error"] == "invalid_input"
            assert response.json()["received_count"] == 0

        (day_dir,) = (data_path / "PLANT-001").iterdir()
        assert (day_dir / "session.csv").read_text().splitlines()[1:] == []
        assert client.get("/health").json()["session_active"] is True

    def test_warnings_available_without_session(self, client: TestClient) -> None:
        response = client.get("/v1/warnings")
        assert response.status_code == 200
        assert response.json() == {"warnings": []}


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class TestHealth:
    """GET /health and GET /."""

    def test_health_idle(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "session_active": False}

    def test_health_active(self, client: TestClient) -> None:
        client.post("/v1/session/start", json=_META)
        assert client.get("/health").json()["session_active"] is True

    def test_root(self, client: TestClient) -> None:
        assert client.get("/").json() == {"status": "ok"}
