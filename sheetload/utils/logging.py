from __future__ import annotations

import json
import logging
import os
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, MutableMapping

DEFAULT_LOG_LEVEL = os.getenv("SHEETLOAD_LOG_LEVEL", "INFO")
DEFAULT_LOG_DIR = Path(os.getenv("SHEETLOAD_LOG_DIR", "data/logs"))


def configure_logging(log_level: str | None = None, log_path: Path | None = None) -> None:
    """Configure console output plus a structured JSON log file."""
    level = getattr(logging, (log_level or DEFAULT_LOG_LEVEL).upper(), logging.INFO)
    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(ConsoleFormatter())
    handlers.append(console_handler)

    destination = log_path or DEFAULT_LOG_DIR / "sheetload.log"
    destination.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(destination)
    file_handler.setFormatter(JsonFormatter())
    handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def _format_event(event: str, extra: MutableMapping[str, Any] | None = None) -> str:
    payload: dict[str, Any] = {"event": event}
    if extra:
        payload.update(extra)
    return json.dumps(payload, default=str)


def _split_event(record: logging.LogRecord) -> tuple[str | None, dict[str, Any], str]:
    """Return ``(event, fields, message)``; event is None for plain-text messages."""
    message = record.getMessage()
    try:
        payload = json.loads(message)
    except json.JSONDecodeError:
        return None, {}, message
    if not isinstance(payload, dict):
        return None, {}, message
    event = payload.pop("event", None)
    return event, payload, message


class JsonFormatter(logging.Formatter):
    """One JSON object per line: timestamp, logger, severity plus the event fields."""

    def format(self, record: logging.LogRecord) -> str:
        event, fields, message = _split_event(record)
        data: dict[str, Any] = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(record.created)),
            "logger": record.name,
            "severity": record.levelname,
        }
        if event is not None:
            data["event"] = event
        data.update(fields)
        if event is None and not fields:
            data["message"] = message
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


class ConsoleFormatter(logging.Formatter):
    """``HH:MM:SS | LEVEL | logger | event key=value ...``"""

    def format(self, record: logging.LogRecord) -> str:
        event, fields, message = _split_event(record)
        details = "".join(f" {key}={fields[key]}" for key in sorted(fields))
        stamp = time.strftime("%H:%M:%S", time.localtime(record.created))
        line = f"{stamp} | {record.levelname:<8} | {record.name} | {event or message}{details}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def log_event(logger: logging.Logger, event: str, **extra: Any) -> None:
    logger.info(_format_event(event, extra))


def log_row_failure(
    logger: logging.Logger,
    *,
    table: str,
    row_number: int,
    rows_written: int,
    reason: str,
) -> None:
    """Record the data row that stopped a batch write (1-based, header excluded)."""
    logger.error(
        _format_event(
            "ingestion.row_failed",
            {
                "table": table,
                "row_number": row_number,
                "rows_written": rows_written,
                "reason": reason,
            },
        )
    )


@contextmanager
def log_timing(logger: logging.Logger, event: str, **extra: Any):
    """Log ``<event>.start`` and ``<event>.complete``/``.error`` with elapsed milliseconds."""
    start = time.perf_counter()
    logger.info(_format_event(event + ".start", extra))
    try:
        yield
    except Exception:
        elapsed = (time.perf_counter() - start) * 1000.0
        logger.exception(_format_event(event + ".error", {**extra, "elapsed_ms": elapsed}))
        raise
    else:
        elapsed = (time.perf_counter() - start) * 1000.0
        logger.info(_format_event(event + ".complete", {**extra, "elapsed_ms": elapsed}))
