from __future__ import annotations

import enum
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import Boolean, Column, DateTime, Double, Integer, MetaData, String, Table, Text
from sqlalchemy.exc import ArgumentError
from sqlalchemy.types import TypeEngine

from sheetload.errors import EmptySample, SinkError
from sheetload.models.cells import CellKind, RawCell, dispatch_on_kind, require_exhaustive

PRIMARY_KEY_COLUMN = "id"
DEFAULT_TEXT_LENGTH = 255


class SqlType(str, enum.Enum):
    INTEGER = "integer"
    BOOLEAN = "boolean"
    TEXT = "text"
    DOUBLE = "double"
    DATETIME = "datetime"
    TEXT_FALLBACK = "text_fallback"


@dataclass(frozen=True, slots=True)
class ColumnSchema:
    name: str
    sql_type: SqlType


_TYPE_BY_KIND = require_exhaustive(
    {
        CellKind.INTEGER: SqlType.INTEGER,
        CellKind.BOOLEAN: SqlType.BOOLEAN,
        CellKind.TEXT: SqlType.TEXT,
        CellKind.FLOAT: SqlType.DOUBLE,
        CellKind.TIMESTAMP: SqlType.DATETIME,
        CellKind.EMPTY: SqlType.TEXT_FALLBACK,
    },
    "schema inference",
)


def infer_column_type(cell: RawCell) -> SqlType:
    return dispatch_on_kind(_TYPE_BY_KIND, cell)  # type: ignore[return-value]


def infer_schema(headers: Sequence[str], sample_row: Sequence[RawCell] | None) -> list[ColumnSchema]:
    """Derive one column type per header from a single sample row.

    Only the first data row is consulted. Later rows are coerced into these
    types rather than re-inferred, so a column whose first value is an integer
    stays INTEGER even if later rows hold text. Such rows are rejected by
    ``ensure_row_fits`` before they reach the sink.
    """
    if not sample_row:
        raise EmptySample("The selected range has no data row to infer column types from")
    return [
        ColumnSchema(name=name, sql_type=infer_column_type(cell))
        for name, cell in zip(headers, sample_row)
    ]


_ACCEPTED_KINDS: dict[SqlType, frozenset[CellKind]] = {
    SqlType.INTEGER: frozenset({CellKind.INTEGER, CellKind.BOOLEAN}),
    SqlType.BOOLEAN: frozenset({CellKind.BOOLEAN, CellKind.INTEGER}),
    SqlType.DOUBLE: frozenset({CellKind.FLOAT, CellKind.INTEGER, CellKind.BOOLEAN}),
    SqlType.TEXT: frozenset({CellKind.TEXT, CellKind.INTEGER, CellKind.FLOAT, CellKind.BOOLEAN}),
    SqlType.DATETIME: frozenset({CellKind.TIMESTAMP}),
    SqlType.TEXT_FALLBACK: frozenset(CellKind),
}


def ensure_row_fits(
    schema: Sequence[ColumnSchema],
    row: Sequence[RawCell],
    *,
    text_length: int = DEFAULT_TEXT_LENGTH,
) -> None:
    """Raise SinkError when a cell cannot be stored in its inferred column.

    Empty cells always fit (they become NULL). Text longer than the VARCHAR
    length does not fit a TEXT column.
    """
    for column, cell in zip(schema, row):
        if cell.kind == CellKind.EMPTY:
            continue
        if cell.kind not in _ACCEPTED_KINDS[column.sql_type]:
            raise SinkError(
                f"Column {column.name!r} is {column.sql_type.value} but the row holds "
                f"{cell.kind.value} value {cell.value!r}"
            )
        if column.sql_type == SqlType.TEXT and cell.kind == CellKind.TEXT and len(str(cell.value)) > text_length:
            raise SinkError(f"Value for column {column.name!r} exceeds {text_length} characters")


def sqlalchemy_type(sql_type: SqlType, *, text_length: int = DEFAULT_TEXT_LENGTH) -> TypeEngine:
    if sql_type == SqlType.INTEGER:
        return Integer()
    if sql_type == SqlType.BOOLEAN:
        return Boolean()
    if sql_type == SqlType.TEXT:
        return String(text_length)
    if sql_type == SqlType.DOUBLE:
        return Double()
    if sql_type == SqlType.DATETIME:
        return DateTime()
    if sql_type == SqlType.TEXT_FALLBACK:
        return Text()
    raise TypeError(f"Unhandled SQL type: {sql_type!r}")


def build_table(
    table_name: str,
    schema: Sequence[ColumnSchema],
    *,
    metadata: MetaData | None = None,
    text_length: int = DEFAULT_TEXT_LENGTH,
) -> Table:
    """Render an inferred schema as a Table with a synthetic auto-increment key."""
    columns = [Column(PRIMARY_KEY_COLUMN, Integer, primary_key=True, autoincrement=True)]
    columns.extend(
        Column(column.name, sqlalchemy_type(column.sql_type, text_length=text_length))
        for column in schema
    )
    try:
        return Table(table_name, metadata or MetaData(), *columns)
    except ArgumentError as error:
        raise SinkError(f"Cannot build table {table_name!r}: {error}") from error
