from __future__ import annotations


class IngestionError(Exception):
    """Base class for every failure surfaced by the ingestion engine."""

    code = 0

    def __init__(self, message: str, *, rows_written: int = 0) -> None:
        super().__init__(message)
        self.message = message
        self.rows_written = rows_written

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class ValidationError(IngestionError):
    """A required request field is missing or an identifier is unusable."""

    code = 100


class MalformedRange(IngestionError):
    """The range reference could not be parsed."""

    code = 101


class SourceReadError(IngestionError):
    """The workbook, sheet or range could not be read."""

    code = 102


class EmptySample(IngestionError):
    """No data row is available to infer a schema from."""

    code = 103


class SinkError(IngestionError):
    """A DDL/DML statement failed or the sink connection could not be acquired."""

    code = 104
