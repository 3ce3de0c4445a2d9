"""
Async HTTP client for the telemetry server session endpoints.

Wraps one ``httpx.AsyncClient`` for the lifetime of a transfer and maps each
session operation onto its endpoint:

- start_session(meta): POST /v1/session/start
- push_sample(sample): POST /v1/session/sample
- end_session(): POST /v1/session/end
- get_warnings(): GET /v1/warnings

Every session endpoint answers with a structured result, whatever the status
code, so non-2xx responses are parsed rather than raised. Network failures
and responses that are not a session result raise TransportError.

CHANGELOG:
- 2026-10-14: Initial creation (STORY-012)

TODO:
- None
"""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from pv_client.src.models import ServerAck, SessionMeta, TelemetrySample

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Raised when the server cannot be reached or answers unexpectedly."""


class SessionClient:
    """Client for one telemetry transfer.

    Args:
        base_url: Server base URL, e.g. ``http://localhost:8000``.
        timeout_s: Per-request timeout in seconds.
        transport: Optional httpx transport, used by tests to inject
            ``httpx.MockTransport``.

    Usage::

        async with SessionClient("http://localhost:8000") as client:
            ack = await client.start_session(meta)
            ack = await client.push_sample(sample)
            ack = await client.end_session()
            warnings = await client.get_warnings()
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def open(self) -> None:
        """Create the underlying HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout_s,
            transport=self._transport,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> SessionClient:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def start_session(self, meta: SessionMeta) -> ServerAck:
        return await self._post("/v1/session/start", meta.to_payload())

    async def push_sample(self, sample: TelemetrySample) -> ServerAck:
        return await self._post("/v1/session/sample", sample.to_payload())

    async def end_session(self) -> ServerAck:
        return await self._post("/v1/session/end", None)

    async def get_warnings(self) -> list[str]:
        """Return the warnings accumulated on the server, oldest first.

        Raises:
            TransportError: On network failure or a malformed response.
        """
        response = await self._request("GET", "/v1/warnings", None)
        try:
            body = response.json()
            warnings = body["warnings"]
        except (ValueError, KeyError, TypeError) as exc:
            raise TransportError(
                f"Unexpected warnings response (HTTP {response.status_code})"
            ) from exc
        return [str(item) for item in warnings]

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _post(self, path: str, payload: dict | None) -> ServerAck:
        response = await self._request("POST", path, payload)
        try:
            body = response.json()
        except ValueError as exc:
            raise TransportError(
                f"Non-JSON response from {path} (HTTP {response.status_code})"
            ) from exc

        try:
            return ServerAck.model_validate(body)
        except ValidationError as exc:
            raise TransportError(
                f"Unexpected response from {path} (HTTP {response.status_code})"
            ) from exc

    async def _request(self, method: str, path: str, payload: dict | None) -> httpx.Response:
        assert self._client is not None, "SessionClient not opened. Call open() or use async with."
        try:
            return await self._client.request(method, path, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed (network error): %s", method, path, exc)
            raise TransportError(f"{method} {path} failed: {exc}") from exc
