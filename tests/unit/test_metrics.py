from __future__ import annotations

import json
import logging

import pytest

from sheetload.utils.metrics import emit_ingest_metric, measure_ingest


def test_emit_ingest_metric_returns_payload() -> None:
    payload = emit_ingest_metric("rows_written", action="create", table="sales", rows=3)
    assert payload["event"] == "ingest.rows_written"
    assert payload["rows"] == 3
    assert payload["table"] == "sales"
    assert "timestamp" in payload


def test_emit_ingest_metric_keeps_existing_prefix() -> None:
    assert emit_ingest_metric("ingest.append")["event"] == "ingest.append"


def test_measure_ingest_emits_even_when_block_fails(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="sheetload.utils.metrics"):
        with pytest.raises(RuntimeError):
            with measure_ingest("create", table="sales"):
                raise RuntimeError("boom")

    payloads = [json.loads(record.getMessage()) for record in caplog.records]
    assert len(payloads) == 1
    assert payloads[0]["event"] == "ingest.create.timing"
    assert payloads[0]["table"] == "sales"
    assert payloads[0]["elapsed_ms"] >= 0
