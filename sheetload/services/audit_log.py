from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from sheetload.utils.config import get_data_root
from sheetload.utils.logging import get_logger


class AuditLogService:
    """Append-only JSONL record of every ingestion attempt."""

    def __init__(self, data_root: Path | None = None) -> None:
        base = Path(data_root) if data_root is not None else get_data_root()
        self.log_path = (base / "logs" / "ingest_audit.jsonl").expanduser()
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self.logger = get_logger(__name__)

    def record_ingestion(
        self,
        *,
        action: str,
        table_name: str,
        outcome: str,
        rows_written: int,
        error: str | None = None,
    ) -> dict[str, Any]:
        details: dict[str, Any] = {
            "table_name": table_name,
            "outcome": outcome,
            "rows_written": rows_written,
        }
        if error is not None:
            details["error"] = error
        return self._record(f"ingest.{action}", details)

    def tail(self, limit: int = 50) -> list[dict[str, Any]]:
        """Read the most recent audit entries."""
        if not self.log_path.exists():
            return []
        entries: list[dict[str, Any]] = []
        for raw in self.log_path.read_text(encoding="utf-8").splitlines()[-limit:]:
            try:
                entries.append(json.loads(raw))
            except json.JSONDecodeError:
                continue
        return entries

    def _record(self, action: str, details: dict[str, Any]) -> dict[str, Any]:
        entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "action": action,
            **details,
        }
        line = json.dumps(entry, default=str)
        try:
            with self.log_path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")
        except OSError:
            self.logger.warning("Failed to persist audit log for %s", action)
        self.logger.info("audit.%s %s", action, details)
        return entry
