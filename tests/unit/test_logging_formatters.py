from __future__ import annotations

import json
import logging

import pytest

from sheetload.utils.logging import ConsoleFormatter, JsonFormatter, log_event, log_row_failure, log_timing


def _record(message: str) -> logging.LogRecord:
    return logging.LogRecord("sheetload.test", logging.INFO, __file__, 1, message, None, None)


def test_json_formatter_unwraps_event_payloads() -> None:
    line = JsonFormatter().format(_record(json.dumps({"event": "ingestion.sheet_loaded", "rows": 3})))
    data = json.loads(line)

    assert data["event"] == "ingestion.sheet_loaded"
    assert data["rows"] == 3
    assert data["logger"] == "sheetload.test"
    assert data["severity"] == "INFO"


def test_json_formatter_keeps_plain_messages() -> None:
    data = json.loads(JsonFormatter().format(_record("plain text")))
    assert data["message"] == "plain text"


def test_console_formatter_renders_details() -> None:
    line = ConsoleFormatter().format(_record(json.dumps({"event": "ingestion.table_dropped", "table": "sales"})))
    assert "ingestion.table_dropped table=sales" in line


def test_log_timing_emits_error_event(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("sheetload.test.timing")

    with caplog.at_level(logging.INFO, logger="sheetload.test.timing"):
        log_event(logger, "ingestion.ping", table="sales")
        with pytest.raises(ValueError):
            with log_timing(logger, "ingestion.execute", table="sales"):
                raise ValueError("bad")

    events = [json.loads(record.getMessage())["event"] for record in caplog.records]
    assert events == ["ingestion.ping", "ingestion.execute.start", "ingestion.execute.error"]


def test_log_row_failure_is_structured(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("sheetload.test.rows")

    with caplog.at_level(logging.ERROR, logger="sheetload.test.rows"):
        log_row_failure(logger, table="people", row_number=3, rows_written=2, reason="NOT NULL constraint failed")

    record = caplog.records[-1]
    assert record.levelno == logging.ERROR
    payload = json.loads(record.getMessage())
    assert payload == {
        "event": "ingestion.row_failed",
        "table": "people",
        "row_number": 3,
        "rows_written": 2,
        "reason": "NOT NULL constraint failed",
    }
