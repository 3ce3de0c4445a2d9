"""
Domain events published by the session engine.

The engine keeps no console or progress logging of its own. Instead it
publishes an event for each lifecycle step to every subscribed observer
(any callable taking one event). The service layer subscribes a logging
observer; tests subscribe a list's append.

CHANGELOG:
- 2026-10-13: Initial creation (STORY-007)

TODO:
- None
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from pv_server.src.models import SessionMeta, TelemetryWarning


@dataclass(frozen=True, slots=True)
class TransferStarted:
    """A session was opened."""

    session_id: str
    meta: SessionMeta


@dataclass(frozen=True, slots=True)
class SampleReceived:
    """A sample was accepted and written to the session log."""

    session_id: str
    row_index: int
    total_received: int
    percent_of_limit: float


@dataclass(frozen=True, slots=True)
class SampleRejected:
    """A sample failed validation and was written to the rejects log."""

    session_id: str
    row_index: int
    reason: str


@dataclass(frozen=True, slots=True)
class WarningRaised:
    """A detector raised a warning for an accepted sample."""

    session_id: str
    warning: TelemetryWarning


@dataclass(frozen=True, slots=True)
class TransferCompleted:
    """A session was closed."""

    session_id: str
    total_received: int
    duration_s: float


SessionEvent = (
    TransferStarted | SampleReceived | SampleRejected | WarningRaised | TransferCompleted
)

SessionObserver = Callable[[SessionEvent], None]
