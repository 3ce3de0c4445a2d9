"""
Session service facade: the composition root of the telemetry engine.

Builds the detector bank, warning sink and session engine from
ServerSettings, subscribes a logging observer, and exposes the four
transport-facing operations:

- start_session(meta) -> StartResult
- push_sample(sample) -> PushResult
- end_session() -> EndResult
- get_warnings() -> list[str]

No exception crosses this boundary. Expected conditions (missing input,
wrong session state, validation failure, storage failure) come back as a
failed result tagged with an ErrorKind; anything unexpected is logged with
its traceback and returned as INTERNAL_ERROR.

CHANGELOG:
- 2026-10-15: Report storage failures distinctly (STORY-009)
- 2026-10-13: Replace print progress with LoggingObserver (STORY-007)
- 2026-10-12: Initial creation (STORY-004)

TODO:
- None
"""

from __future__ import annotations

import logging

from pv_server.src.config import ServerSettings
from pv_server.src.detectors import DetectorBank
from pv_server.src.errors import SessionError
from pv_server.src.events import (
    SampleReceived,
    SampleRejected,
    SessionEvent,
    TransferCompleted,
    TransferStarted,
    WarningRaised,
)
from pv_server.src.models import (
    EndResult,
    ErrorKind,
    PushResult,
    SessionMeta,
    StartResult,
    TelemetrySample,
)
from pv_server.src.session import SessionEngine
from pv_server.src.warning_sink import WarningSink

logger = logging.getLogger(__name__)


class LoggingObserver:
    """Turns session events into log lines.

    Progress is logged every *progress_every* accepted samples; warnings are
    logged at WARNING level.
    """

    def __init__(self, progress_every: int = 10) -> None:
        self._progress_every = progress_every

    def __call__(self, event: SessionEvent) -> None:
        if isinstance(event, TransferStarted):
            logger.info(
                "Transfer started: session=%s plant=%s file=%s row_limit=%d",
                event.session_id,
                event.meta.plant_id,
                event.meta.file_name,
                event.meta.row_limit_n,
            )
        elif isinstance(event, SampleReceived):
            if event.total_received % self._progress_every == 0:
                logger.info(
                    "Progress: session=%s received=%d (%.1f%%)",
                    event.session_id,
                    event.total_received,
                    event.percent_of_limit,
                )
        elif isinstance(event, SampleRejected):
            logger.info("Rejected row %d: %s", event.row_index, event.reason)
        elif isinstance(event, WarningRaised):
            logger.warning("%s", event.warning.format())
        elif isinstance(event, TransferCompleted):
            logger.info(
                "Transfer completed: session=%s total=%d duration=%.1fs",
                event.session_id,
                event.total_received,
                event.duration_s,
            )


def _log_failure(operation: str, exc: SessionError) -> None:
    if exc.kind is ErrorKind.STORAGE_FAILURE:
        logger.error("%s storage failure: %s", operation, exc, exc_info=True)
    else:
        logger.info("%s refused (%s): %s", operation, exc.kind.value, exc)


class SessionService:
    """Transport-facing facade over a SessionEngine.

    Args:
        engine: The session engine to drive.

    Usage::

        service = SessionService.from_settings(ServerSettings())
        service.start_session(meta)
        service.push_sample(sample)
        service.end_session()
        service.get_warnings()
    """

    def __init__(self, engine: SessionEngine) -> None:
        self.engine = engine

    @classmethod
    def from_settings(cls, settings: ServerSettings) -> SessionService:
        """Build the detector bank, sink and engine described by *settings*."""
        bank = DetectorBank(
            settings.thresholds(),
            enable_dc_checks=settings.enable_dc_checks,
            enable_efficiency_check=settings.enable_efficiency_check,
        )
        engine = SessionEngine(
            bank,
            data_path=settings.data_path,
            warning_sink=WarningSink(),
            reset_warnings_on_start=settings.reset_warnings_on_start,
        )
        engine.subscribe(LoggingObserver(progress_every=settings.progress_log_every))
        return cls(engine)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def start_session(self, meta: SessionMeta | None) -> StartResult:
        try:
            started = self.engine.start(meta)
        except SessionError as exc:
            _log_failure("StartSession", exc)
            return StartResult(success=False, message=str(exc), error=exc.kind)
        except Exception as exc:
            logger.error("StartSession failed unexpectedly", exc_info=True)
            return StartResult(
                success=False,
                message=f"Internal error: {exc}",
                error=ErrorKind.INTERNAL_ERROR,
            )
        return StartResult(
            success=True,
            message=f"Session {started.session_id} started",
            session_id=started.session_id,
        )

    def push_sample(self, sample: TelemetrySample | None) -> PushResult:
        try:
            outcome = self.engine.push(sample)
        except SessionError as exc:
            _log_failure("PushSample", exc)
            return self._failed_push(str(exc), exc.kind)
        except Exception as exc:
            logger.error("PushSample failed unexpectedly", exc_info=True)
            return self._failed_push(f"Internal error: {exc}", ErrorKind.INTERNAL_ERROR)

        if not outcome.accepted:
            return PushResult(
                success=False,
                message=outcome.reason or "Rejected",
                error=ErrorKind.VALIDATION_FAILURE,
                received_count=outcome.received_count,
                percent_of_limit=outcome.percent_of_limit,
            )
        return PushResult(
            success=True,
            message="OK",
            received_count=outcome.received_count,
            percent_of_limit=outcome.percent_of_limit,
        )

    def end_session(self) -> EndResult:
        try:
            summary = self.engine.end()
        except SessionError as exc:
            _log_failure("EndSession", exc)
            return EndResult(success=False, message=str(exc), error=exc.kind)
        except Exception as exc:
            logger.error("EndSession failed unexpectedly", exc_info=True)
            return EndResult(
                success=False,
                message=f"Internal error: {exc}",
                error=ErrorKind.INTERNAL_ERROR,
            )
        return EndResult(
            success=True,
            message=summary.message,
            session_id=summary.session_id,
            received_count=summary.received_count,
        )

    def get_warnings(self) -> list[str]:
        return self.engine.warnings()

    def close(self) -> EndResult | None:
        """End a session left open at shutdown; no-op when IDLE."""
        session_id = self.engine.session_id
        if session_id is None:
            return None
        logger.warning("Session %s still active at shutdown, closing it", session_id)
        return self.end_session()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _failed_push(self, message: str, kind: ErrorKind) -> PushResult:
        return PushResult(
            success=False,
            message=message,
            error=kind,
            received_count=self.engine.received_count,
            percent_of_limit=self.engine.percent_of_limit,
        )
