"""
Session state machine for PV telemetry transfers.

A SessionEngine owns at most one active session at a time and moves through
``IDLE -> ACTIVE -> IDLE``:

- start(meta): open the session logs, reset the count and every detector
  window, become ACTIVE.
- push(sample): validate; rejected samples go to the rejects log and the
  session continues; accepted samples go to the session log, increment the
  count, and run through the detector bank.
- end(): flush and close the logs, report the duration, become IDLE.

Every public method runs under one lock, so concurrent callers (the HTTP
server threadpool) never interleave log writes or detector updates.

A storage failure while ACTIVE marks the session as faulted. Further pushes
fail with StorageError until end() closes what is left and returns the
engine to IDLE.

Lifecycle events are published to subscribed observers; the engine itself
writes no progress output.

CHANGELOG:
- 2026-10-15: Mark session faulted after a storage failure (STORY-009)
- 2026-10-13: Publish lifecycle events to observers (STORY-007)
- 2026-10-12: Initial creation (STORY-004)

TODO:
- None
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path

from pv_server.src.detectors import DetectorBank
from pv_server.src.errors import InvalidInputError, ProtocolViolationError, StorageError
from pv_server.src.events import (
    SampleReceived,
    SampleRejected,
    SessionEvent,
    SessionObserver,
    TransferCompleted,
    TransferStarted,
    WarningRaised,
)
from pv_server.src.models import SessionMeta, TelemetrySample, TelemetryWarning
from pv_server.src.session_log import SessionLog, session_log_dir
from pv_server.src.validator import validate_sample
from pv_server.src.warning_sink import WarningSink

logger = logging.getLogger(__name__)

NO_ACTIVE_SESSION = "No active session"


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def new_session_id() -> str:
    """Return a short random session identifier (8 hex characters)."""
    return uuid.uuid4().hex[:8]


def percent_of_limit(received_count: int, row_limit_n: int) -> float:
    """Return received_count as a percentage of row_limit_n (0 when the limit is 0)."""
    if row_limit_n == 0:
        return 0.0
    return received_count * 100.0 / row_limit_n


class SessionState(StrEnum):
    IDLE = "idle"
    ACTIVE = "active"


@dataclass
class ActiveSession:
    """Mutable state of the session currently being received."""

    session_id: str
    meta: SessionMeta
    started_at: datetime
    log: SessionLog
    received_count: int = 0
    faulted: bool = False

    @property
    def percent_of_limit(self) -> float:
        return percent_of_limit(self.received_count, self.meta.row_limit_n)


@dataclass(frozen=True, slots=True)
class SessionStarted:
    """Returned by start()."""

    session_id: str
    log_dir: Path


@dataclass(frozen=True, slots=True)
class PushOutcome:
    """Returned by push() for both accepted and rejected samples.

    Attributes:
        accepted: False when the sample failed validation.
        received_count: Accepted samples so far in this session.
        percent_of_limit: received_count relative to the meta row limit.
        reason: Rejection reason, ``None`` when accepted.
        warnings: Warnings raised for this sample (empty when rejected).
    """

    accepted: bool
    received_count: int
    percent_of_limit: float
    reason: str | None = None
    warnings: tuple[TelemetryWarning, ...] = ()


@dataclass(frozen=True, slots=True)
class SessionSummary:
    """Returned by end()."""

    session_id: str
    received_count: int
    duration_s: float

    @property
    def message(self) -> str:
        return (
            f"Session {self.session_id} ended. Received {self.received_count} "
            f"samples in {self.duration_s:.1f}s"
        )


class SessionEngine:
    """Single-session state machine wrapping validator, detectors and logs.

    Args:
        bank: Detector bank; reset at every start and end.
        data_path: Root directory of the per-plant session logs.
        warning_sink: Where raised warnings accumulate. A new sink is created
            when omitted.
        reset_warnings_on_start: Clear the sink on every successful start.
        clock: Returns the current time (UTC). Injected for tests.
        id_factory: Returns a new session identifier. Injected for tests.
    """

    def __init__(
        self,
        bank: DetectorBank,
        *,
        data_path: str | Path,
        warning_sink: WarningSink | None = None,
        reset_warnings_on_start: bool = True,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = new_session_id,
    ) -> None:
        self._bank = bank
        self._data_path = Path(data_path)
        self._sink = warning_sink if warning_sink is not None else WarningSink()
        self._reset_warnings_on_start = reset_warnings_on_start
        self._clock = clock
        self._id_factory = id_factory
        self._observers: list[SessionObserver] = []
        self._session: ActiveSession | None = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        with self._lock:
            return SessionState.IDLE if self._session is None else SessionState.ACTIVE

    @property
    def session_id(self) -> str | None:
        with self._lock:
            return None if self._session is None else self._session.session_id

    @property
    def received_count(self) -> int:
        """Accepted samples in the active session (0 when IDLE)."""
        with self._lock:
            return 0 if self._session is None else self._session.received_count

    @property
    def percent_of_limit(self) -> float:
        """Progress of the active session against its row limit (0 when IDLE)."""
        with self._lock:
            return 0.0 if self._session is None else self._session.percent_of_limit

    def subscribe(self, observer: SessionObserver) -> None:
        """Register *observer* to receive every lifecycle event."""
        with self._lock:
            self._observers.append(observer)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def start(self, meta: SessionMeta | None) -> SessionStarted:
        """Open a new session.

        Raises:
            InvalidInputError: If *meta* is None.
            ProtocolViolationError: If a session is already active.
            StorageError: If the session logs cannot be opened.
        """
        with self._lock:
            if meta is None:
                raise InvalidInputError("Meta is null")
            if self._session is not None:
                raise ProtocolViolationError(
                    f"Session {self._session.session_id} is already active"
                )

            started_at = self._clock()
            log_dir = session_log_dir(self._data_path, meta.plant_id, started_at.date())
            log = SessionLog(log_dir)
            log.open()

            self._bank.reset()
            if self._reset_warnings_on_start:
                self._sink.clear()

            session_id = self._id_factory()
            self._session = ActiveSession(
                session_id=session_id,
                meta=meta,
                started_at=started_at,
                log=log,
            )
            self._publish(TransferStarted(session_id=session_id, meta=meta))
            return SessionStarted(session_id=session_id, log_dir=log_dir)

    def push(self, sample: TelemetrySample | None) -> PushOutcome:
        """Validate, log and analyse one sample.

        Raises:
            ProtocolViolationError: If no session is active.
            InvalidInputError: If *sample* is None.
            StorageError: If the session is faulted or a log write fails.
        """
        with self._lock:
            session = self._require_session()
            if sample is None:
                raise InvalidInputError("Sample is null")
            if session.faulted:
                raise StorageError(
                    f"Session {session.session_id} is unusable after a storage "
                    "failure; end the session"
                )

            outcome = validate_sample(sample)
            if not outcome.accepted:
                self._guarded_write(
                    session,
                    lambda: session.log.write_reject(
                        sample.row_index, outcome.reason, sample.raw_repr()
                    ),
                )
                self._publish(
                    SampleRejected(
                        session_id=session.session_id,
                        row_index=sample.row_index,
                        reason=outcome.reason,
                    )
                )
                return PushOutcome(
                    accepted=False,
                    received_count=session.received_count,
                    percent_of_limit=session.percent_of_limit,
                    reason=outcome.reason,
                )

            self._guarded_write(session, lambda: session.log.write_accepted(sample))
            session.received_count += 1

            raised = self._bank.evaluate(sample, ts=self._clock())
            for warning in raised:
                self._sink.append(warning)
                self._publish(WarningRaised(session_id=session.session_id, warning=warning))

            self._publish(
                SampleReceived(
                    session_id=session.session_id,
                    row_index=sample.row_index,
                    total_received=session.received_count,
                    percent_of_limit=session.percent_of_limit,
                )
            )
            return PushOutcome(
                accepted=True,
                received_count=session.received_count,
                percent_of_limit=session.percent_of_limit,
                warnings=tuple(raised),
            )

    def end(self) -> SessionSummary:
        """Close the active session and return to IDLE.

        The engine is IDLE afterwards even when closing the logs fails.

        Raises:
            ProtocolViolationError: If no session is active.
            StorageError: If the logs cannot be flushed or closed.
        """
        with self._lock:
            session = self._require_session()
            self._session = None
            self._bank.reset()

            duration_s = (self._clock() - session.started_at).total_seconds()
            summary = SessionSummary(
                session_id=session.session_id,
                received_count=session.received_count,
                duration_s=duration_s,
            )
            try:
                session.log.close()
            finally:
                self._publish(
                    TransferCompleted(
                        session_id=session.session_id,
                        total_received=session.received_count,
                        duration_s=duration_s,
                    )
                )
            return summary

    def warnings(self) -> list[str]:
        """Return accumulated warnings as formatted strings (valid in any state)."""
        with self._lock:
            return self._sink.formatted()

    def warning_entries(self) -> list[TelemetryWarning]:
        """Return accumulated warnings as records (valid in any state)."""
        with self._lock:
            return self._sink.entries()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _require_session(self) -> ActiveSession:
        if self._session is None:
            raise ProtocolViolationError(NO_ACTIVE_SESSION)
        return self._session

    @staticmethod
    def _guarded_write(session: ActiveSession, write: Callable[[], None]) -> None:
        try:
            write()
        except StorageError:
            session.faulted = True
            raise

    def _publish(self, event: SessionEvent) -> None:
        for observer in self._observers:
            try:
                observer(event)
            except Exception:
                logger.warning("Session observer failed on %s", type(event).__name__, exc_info=True)
