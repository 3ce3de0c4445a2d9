"""
Reader for inverter CSV exports.

Parses the header case-insensitively and yields one TelemetrySample per data
line. Readings that are blank, unparsable or equal to the 32767.0 "no
reading" sentinel become ``None``. Rows without a DAY or HOUR label cannot
be sent and are written to a client-side rejects file instead.

Operations:
- read_samples(max_rows): Yield samples for the first *max_rows* data lines.
- count_data_rows(path): Number of data lines in a CSV file.

Supports the context manager protocol.

CHANGELOG:
- 2026-10-14: Initial creation (STORY-011)

TODO:
- None
"""

from __future__ import annotations

import csv
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import TextIO

from pv_client.src.models import TelemetrySample

logger = logging.getLogger(__name__)

SENTINEL = 32767.0
_SENTINEL_TOLERANCE = 0.001

REQUIRED_COLUMNS = (
    "DAY",
    "HOUR",
    "ACPWRT",
    "DCVOLT",
    "TEMPER",
    "VL1TO2",
    "VL2TO3",
    "VL3TO1",
    "ACCUR1",
    "ACVLT1",
)

# CSV column -> TelemetrySample field
_CHANNEL_COLUMNS = {
    "ACPWRT": "ac_power",
    "DCVOLT": "dc_voltage",
    "TEMPER": "temperature",
    "VL1TO2": "line_voltage_12",
    "VL2TO3": "line_voltage_23",
    "VL3TO1": "line_voltage_31",
    "ACCUR1": "ac_current_1",
    "ACVLT1": "ac_voltage_1",
}

REJECT_HEADER = "RowIndex,Reason,RawLine"
MISSING_LABEL_REASON = "Missing DAY or HOUR"


class CsvFormatError(Exception):
    """Raised when a CSV file is empty or lacks a required column."""


def parse_reading(cell: str | None) -> float | None:
    """Parse one numeric cell; blank, unparsable and sentinel cells are None."""
    if cell is None or not cell.strip():
        return None
    try:
        value = float(cell)
    except ValueError:
        return None
    if abs(value - SENTINEL) < _SENTINEL_TOLERANCE:
        return None
    return value


def count_data_rows(path: str | Path) -> int:
    """Return the number of non-blank lines after the header in *path*."""
    with Path(path).open(encoding="utf-8-sig", newline="") as handle:
        lines = sum(1 for line in handle if line.strip())
    return max(lines - 1, 0)


def _quote(text: str) -> str:
    return '"' + text.replace('"', '""') + '"'


class CsvReader:
    """Streaming reader of an inverter CSV export.

    Args:
        path: CSV file to read.
        reject_path: File receiving rows that cannot be sent. Defaults to
            ``rejected_client.csv`` next to *path*. Created on the first
            rejected row.

    Raises:
        CsvFormatError: From open() when the file is empty or a required
            column is missing.

    Usage::

        with CsvReader("export.csv") as reader:
            for sample in reader.read_samples(200):
                ...
    """

    def __init__(self, path: str | Path, reject_path: str | Path | None = None) -> None:
        self.path = Path(path)
        self.reject_path = (
            Path(reject_path)
            if reject_path is not None
            else self.path.with_name("rejected_client.csv")
        )
        self.rejected_count = 0
        self._handle: TextIO | None = None
        self._reject_handle: TextIO | None = None
        self._columns: dict[str, int] = {}

    def open(self) -> None:
        """Open the CSV file and resolve the column positions."""
        self._handle = self.path.open(encoding="utf-8-sig", newline="")
        header_line = self._handle.readline()
        if not header_line.strip():
            self.close()
            raise CsvFormatError(f"CSV file {self.path} is empty")

        header = next(csv.reader([header_line]))
        self._columns = {name.strip().upper(): pos for pos, name in enumerate(header)}
        missing = [name for name in REQUIRED_COLUMNS if name not in self._columns]
        if missing:
            self.close()
            raise CsvFormatError(
                f"CSV file {self.path} is missing required columns: {', '.join(missing)}"
            )

    def close(self) -> None:
        """Close the CSV file and the rejects file. Safe to call more than once."""
        for handle in (self._handle, self._reject_handle):
            if handle is not None:
                handle.close()
        self._handle = None
        self._reject_handle = None

    def __enter__(self) -> CsvReader:
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

    def read_samples(self, max_rows: int) -> Iterator[TelemetrySample]:
        """Yield samples for at most *max_rows* data lines.

        Row indices are 1-based and count every data line read, including
        rejected ones, so they match line positions in the source file.
        Blank lines are skipped without being counted.
        """
        assert self._handle is not None, "CsvReader not opened. Call open() or use with."
        row_index = 0
        for line in self._handle:
            if row_index >= max_rows:
                break
            raw = line.rstrip("\r\n")
            if not raw.strip():
                continue
            row_index += 1

            cells = next(csv.reader([raw]))
            day = self._cell(cells, "DAY").strip()
            hour = self._cell(cells, "HOUR").strip()
            if not day or not hour:
                self._reject(row_index, MISSING_LABEL_REASON, raw)
                continue

            readings = {
                field: parse_reading(self._cell(cells, column))
                for column, field in _CHANNEL_COLUMNS.items()
            }
            yield TelemetrySample(row_index=row_index, day=day, hour=hour, **readings)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _cell(self, cells: list[str], column: str) -> str:
        pos = self._columns[column]
        return cells[pos] if pos < len(cells) else ""

    def _reject(self, row_index: int, reason: str, raw: str) -> None:
        if self._reject_handle is None:
            is_new = not self.reject_path.exists() or self.reject_path.stat().st_size == 0
            self._reject_handle = self.reject_path.open("a", encoding="utf-8", newline="")
            if is_new:
                self._reject_handle.write(REJECT_HEADER + "\n")
        self._reject_handle.write(f"{row_index},{_quote(reason)},{_quote(raw)}\n")
        self._reject_handle.flush()
        self.rejected_count += 1
        logger.warning("Row %d rejected locally: %s", row_index, reason)
