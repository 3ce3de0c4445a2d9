"""
Durable append-only CSV logs for one telemetry session.

Each session writes two files in ``<data_path>/<plant_id>/<YYYY-MM-DD>/``:

- session.csv: every accepted sample, one row per sample.
- rejects.csv: every rejected sample with its rejection reason and a raw
  dump of the sample.

Both files are opened in append mode so a restarted process keeps adding to
the same day's files. The column header is written only when a file is
empty. Every write is flushed immediately so the logs survive a crash.

Any OSError is raised as StorageError: the session cannot continue without
its logs.

Operations:
- open(): Create the directory, open both files, write missing headers.
- write_accepted(sample): Append an accepted sample row.
- write_reject(row_index, reason, raw): Append a rejects row.
- close(): Flush and close both files.

Supports the context manager protocol.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-004)

TODO:
- None
"""

from __future__ import annotations

import contextlib
from datetime import date
from pathlib import Path
from typing import TextIO

from pv_server.src.errors import StorageError
from pv_server.src.models import TelemetrySample

SESSION_FILE_NAME = "session.csv"
REJECTS_FILE_NAME = "rejects.csv"

SESSION_HEADER = "RowIndex,Day,Hour,AcPwrt,DcVolt,Temper,Vl1to2,Vl2to3,Vl3to1,AcCur1,AcVlt1"
REJECTS_HEADER = "RowIndex,Reason,RawData"


def session_log_dir(data_path: str | Path, plant_id: str, day: date) -> Path:
    """Return the directory holding the logs of *plant_id* for *day*."""
    return Path(data_path) / plant_id / day.isoformat()


def _format_number(value: float | None) -> str:
    # repr() is locale-independent and round-trips the float exactly.
    return "" if value is None else repr(value)


def _quote(text: str) -> str:
    return '"' + text.replace('"', '""') + '"'


def _text_field(text: str) -> str:
    # Labels are free-form; quote any that would split the row.
    if any(ch in text for ch in (",", '"', "\r", "\n")):
        return _quote(text)
    return text


def format_accepted_row(sample: TelemetrySample) -> str:
    """Render *sample* as one session.csv line (without newline)."""
    fields = [
        str(sample.row_index),
        _text_field(sample.day),
        _text_field(sample.hour),
        _format_number(sample.ac_power),
        _format_number(sample.dc_voltage),
        _format_number(sample.temperature),
        _format_number(sample.line_voltage_12),
        _format_number(sample.line_voltage_23),
        _format_number(sample.line_voltage_31),
        _format_number(sample.ac_current_1),
        _format_number(sample.ac_voltage_1),
    ]
    return ",".join(fields)


def format_reject_row(row_index: int, reason: str, raw: str) -> str:
    """Render one rejects.csv line (without newline)."""
    return f"{row_index},{_quote(reason)},{_quote(raw)}"


class SessionLog:
    """Pair of append-only CSV writers for accepted and rejected samples.

    Args:
        directory: Directory for session.csv and rejects.csv. Created with
            its parents on open() when missing.

    Usage::

        with SessionLog(session_log_dir("Data", "PLANT-001", today)) as log:
            log.write_accepted(sample)
            log.write_reject(7, "Invalid RowIndex", sample.raw_repr())
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)
        self.session_path = self.directory / SESSION_FILE_NAME
        self.rejects_path = self.directory / REJECTS_FILE_NAME
        self._session_file: TextIO | None = None
        self._rejects_file: TextIO | None = None

    @property
    def is_open(self) -> bool:
        return self._session_file is not None and self._rejects_file is not None

    def open(self) -> None:
        """Create the directory and open both logs in append mode.

        Raises:
            StorageError: If the directory or either file cannot be opened.
        """
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            self._session_file = self._open_with_header(self.session_path, SESSION_HEADER)
            self._rejects_file = self._open_with_header(self.rejects_path, REJECTS_HEADER)
        except OSError as exc:
            self._close_quietly()
            raise StorageError(f"Cannot open session logs in {self.directory}: {exc}") from exc

    def close(self) -> None:
        """Flush and close both logs. Safe to call more than once.

        Both files are always closed; the first failure is re-raised.

        Raises:
            StorageError: If flushing or closing a file fails.
        """
        first_error: OSError | None = None
        for handle in (self._session_file, self._rejects_file):
            if handle is None:
                continue
            try:
                handle.flush()
                handle.close()
            except OSError as exc:
                if first_error is None:
                    first_error = exc
        self._session_file = None
        self._rejects_file = None
        if first_error is not None:
            raise StorageError(
                f"Cannot close session logs in {self.directory}: {first_error}"
            ) from first_error

    def __enter__(self) -> SessionLog:
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def write_accepted(self, sample: TelemetrySample) -> None:
        """Append *sample* to session.csv.

        Raises:
            StorageError: If the write fails.
        """
        assert self._session_file is not None, "SessionLog not opened. Call open() or use with."
        self._write_line(self._session_file, format_accepted_row(sample))

    def write_reject(self, row_index: int, reason: str, raw: str) -> None:
        """Append a rejected sample to rejects.csv.

        Raises:
            StorageError: If the write fails.
        """
        assert self._rejects_file is not None, "SessionLog not opened. Call open() or use with."
        self._write_line(self._rejects_file, format_reject_row(row_index, reason, raw))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _open_with_header(path: Path, header: str) -> TextIO:
        handle = path.open("a", encoding="utf-8", newline="")
        try:
            if path.stat().st_size == 0:
                handle.write(header + "\n")
                handle.flush()
        except OSError:
            handle.close()
            raise
        return handle

    def _write_line(self, handle: TextIO, line: str) -> None:
        try:
            handle.write(line + "\n")
            handle.flush()
        except OSError as exc:
            raise StorageError(f"Cannot write to session logs in {self.directory}: {exc}") from exc

    def _close_quietly(self) -> None:
        for handle in (self._session_file, self._rejects_file):
            if handle is not None:
                with contextlib.suppress(OSError):
                    handle.close()
        self._session_file = None
        self._rejects_file = None
