"""
CSV replay client: sends an inverter CSV export to the telemetry server.

Reads up to ROW_LIMIT rows from CSV_PATH and replays them as one session:

1. StartSession with a SessionMeta describing the file.
2. PushSample for every parsed row. Samples the server rejects are counted
   and the transfer continues; a result flagged ``halts_transfer`` (wrong
   session state, storage or internal failure) stops the transfer.
3. EndSession, always attempted once the start succeeded.
4. GetWarnings, each warning logged at WARNING level.

Structured JSON logging is used for all events.

CHANGELOG:
- 2026-10-14: Initial creation (STORY-013)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from pv_client.src.config import ClientSettings
from pv_client.src.csv_reader import CsvFormatError, CsvReader, count_data_rows
from pv_client.src.models import SessionMeta
from pv_client.src.session_client import SessionClient, TransportError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


def configure_logging() -> None:
    """Configure structured JSON logging for the client.

    Sets up the root logger with a JSON-formatted handler writing to stderr.
    """

    class _JsonFormatter(logging.Formatter):
        """Minimal JSON log formatter."""

        def format(self, record: logging.LogRecord) -> str:
            log_entry = {
                "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
            }
            if record.exc_info and record.exc_info[1] is not None:
                log_entry["exception"] = self.formatException(record.exc_info)
            return json.dumps(log_entry)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.INFO)


def log_config_summary(settings: object) -> None:
    """Log the client configuration at startup.

    Args:
        settings: A ClientSettings instance (or any object with the same attrs).
    """
    logger.info(
        "CSV client starting with config: "
        "csv_path=%s, server_base_url=%s, plant_id=%s, schema_version=%s, "
        "row_limit=%s, reject_path=%s, request_timeout_s=%s",
        settings.csv_path,  # type: ignore[attr-defined]
        settings.server_base_url,  # type: ignore[attr-defined]
        settings.plant_id,  # type: ignore[attr-defined]
        settings.schema_version,  # type: ignore[attr-defined]
        settings.row_limit,  # type: ignore[attr-defined]
        settings.reject_path,  # type: ignore[attr-defined]
        settings.request_timeout_s,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Transfer
# ---------------------------------------------------------------------------


@dataclass
class TransferSummary:
    """Outcome of one replayed transfer.

    Attributes:
        started: Whether StartSession succeeded.
        sent: Samples pushed to the server.
        accepted: Samples the server accepted.
        rejected: Samples the server rejected as invalid.
        halted: Whether the transfer stopped before the last sample.
        warnings: Warnings returned by the server after the transfer.
        end_message: Message of the EndSession result, empty if not ended.
    """

    started: bool = False
    sent: int = 0
    accepted: int = 0
    rejected: int = 0
    halted: bool = False
    warnings: list[str] = field(default_factory=list)
    end_message: str = ""


def build_meta(settings: ClientSettings) -> SessionMeta:
    """Describe the configured CSV file as a SessionMeta."""
    return SessionMeta(
        plant_id=settings.plant_id,
        file_name=Path(settings.csv_path).name,
        total_rows=count_data_rows(settings.csv_path),
        schema_version=settings.schema_version,
        row_limit_n=settings.row_limit,
        session_date_utc=datetime.now(tz=UTC),
    )


async def run_transfer(
    *,
    reader: CsvReader,
    client: SessionClient,
    meta: SessionMeta,
    progress_every: int = 10,
) -> TransferSummary:
    """Replay the samples of *reader* as one server session.

    Args:
        reader: An opened CsvReader.
        client: An opened SessionClient.
        meta: Session descriptor; ``row_limit_n`` bounds the rows read.
        progress_every: Log progress every N pushed samples.

    Returns:
        A TransferSummary. ``started`` is False when the server refused
        the session.

    Raises:
        TransportError: If StartSession cannot reach the server.
    """
    summary = TransferSummary()

    start = await client.start_session(meta)
    if not start.success:
        logger.error("StartSession refused (%s): %s", start.error, start.message)
        return summary
    summary.started = True
    logger.info("%s", start.message)

    try:
        for sample in reader.read_samples(meta.row_limit_n):
            ack = await client.push_sample(sample)
            summary.sent += 1
            if ack.success:
                summary.accepted += 1
            elif ack.halts_transfer:
                logger.error(
                    "Row %d: transfer halted (%s): %s", sample.row_index, ack.error, ack.message
                )
                summary.halted = True
                break
            else:
                summary.rejected += 1
                logger.warning("Row %d rejected by server: %s", sample.row_index, ack.message)

            if summary.sent % progress_every == 0:
                logger.info(
                    "Sent %d samples (%.1f%% of limit)", summary.sent, ack.percent_of_limit
                )
    except TransportError:
        logger.error("Transfer interrupted by a network failure", exc_info=True)
        summary.halted = True

    try:
        end = await client.end_session()
        summary.end_message = end.message
        if end.success:
            logger.info("%s", end.message)
        else:
            logger.error("EndSession failed (%s): %s", end.error, end.message)
        summary.warnings = await client.get_warnings()
    except TransportError:
        logger.error("Could not close the session", exc_info=True)
        return summary

    for warning in summary.warnings:
        logger.warning("%s", warning)
    logger.info(
        "Transfer finished: sent=%d accepted=%d rejected=%d warnings=%d",
        summary.sent,
        summary.accepted,
        summary.rejected,
        len(summary.warnings),
    )
    return summary


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def async_main() -> int:
    """Load settings, replay the CSV file and return the exit status."""
    configure_logging()
    settings = ClientSettings()
    log_config_summary(settings)

    try:
        meta = build_meta(settings)
        with CsvReader(settings.csv_path, reject_path=settings.reject_path) as reader:
            async with SessionClient(
                settings.server_base_url, timeout_s=settings.request_timeout_s
            ) as client:
                summary = await run_transfer(reader=reader, client=client, meta=meta)
    except (CsvFormatError, OSError) as exc:
        logger.error("Cannot read %s: %s", settings.csv_path, exc)
        return 1
    except TransportError as exc:
        logger.error("Server unreachable: %s", exc)
        return 1

    if reader.rejected_count:
        logger.info(
            "%d rows rejected locally, see %s", reader.rejected_count, reader.reject_path
        )
    return 0 if summary.started and not summary.halted else 1


def main() -> None:
    """Console entry point (``pv-client``)."""
    sys.exit(asyncio.run(async_main()))


if __name__ == "__main__":
    main()
