from __future__ import annotations

import json
from contextlib import contextmanager
from datetime import UTC, datetime
from time import perf_counter
from typing import Any, Iterator

from sheetload.utils.logging import get_logger

LOGGER = get_logger(__name__)

EVENT_PREFIX = "ingest."


def emit_ingest_metric(event: str, **fields: Any) -> dict[str, Any]:
    """Log a metric payload under the ``ingest.`` namespace and return it."""
    name = event if event.startswith(EVENT_PREFIX) else f"{EVENT_PREFIX}{event}"
    payload = {"event": name, "timestamp": datetime.now(UTC).isoformat(), **fields}
    LOGGER.info(json.dumps(payload, default=str))
    return payload


@contextmanager
def measure_ingest(action: str, **fields: Any) -> Iterator[None]:
    """Emit ``ingest.<action>.timing`` around the block, whether it succeeds or not."""
    start = perf_counter()
    try:
        yield
    finally:
        emit_ingest_metric(f"{action}.timing", elapsed_ms=(perf_counter() - start) * 1000, **fields)
