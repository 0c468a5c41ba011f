from __future__ import annotations

import enum
from dataclasses import dataclass, field

from sheetload.errors import ValidationError
from sheetload.services.schema_inference import ColumnSchema


class Action(str, enum.Enum):
    CREATE = "create"
    APPEND = "append"
    REWRITE = "rewrite"
    DELETE = "delete"


@dataclass(frozen=True)
class SourceLocator:
    file_path: str = ""
    sheet_name: str = ""
    range_ref: str = ""


@dataclass(frozen=True)
class IngestionRequest:
    action: Action
    table_name: str
    source: SourceLocator = field(default_factory=SourceLocator)

    @property
    def reads_source(self) -> bool:
        return self.action != Action.DELETE

    def validate(self) -> None:
        """Reject blank fields before anything touches the workbook or the sink."""
        required: list[tuple[str, str]] = []
        if self.reads_source:
            required.extend(
                [
                    ("file path", self.source.file_path),
                    ("sheet", self.source.sheet_name),
                    ("range", self.source.range_ref),
                ]
            )
        required.append(("table name", self.table_name))
        for label, value in required:
            if not value or not value.strip():
                raise ValidationError(f"Select a {label}")


@dataclass
class IngestionResult:
    action: Action
    table_name: str
    rows_written: int = 0
    columns: list[str] = field(default_factory=list)
    schema: list[ColumnSchema] = field(default_factory=list)
    elapsed_ms: float = 0.0

    def to_dict(self) -> dict[str, object]:
        return {
            "action": self.action.value,
            "table_name": self.table_name,
            "rows_written": self.rows_written,
            "columns": list(self.columns),
            "schema": [
                {"name": column.name, "sql_type": column.sql_type.value} for column in self.schema
            ],
            "elapsed_ms": round(self.elapsed_ms, 3),
        }
