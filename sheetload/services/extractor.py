from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from sheetload.models.cells import EMPTY_CELL, RawCell
from sheetload.services.addressing import CellRange

UNKNOWN_HEADER = "unknown"


@dataclass
class TabularData:
    headers: list[str] = field(default_factory=list)
    rows: list[list[RawCell]] = field(default_factory=list)


def _cell_at(matrix: Sequence[Sequence[RawCell]], row: int, column: int) -> RawCell:
    if row >= len(matrix):
        return EMPTY_CELL
    values = matrix[row]
    if column >= len(values):
        return EMPTY_CELL
    return values[column]


def _header_text(cell: RawCell) -> str:
    text = cell.as_text()
    return UNKNOWN_HEADER if text is None else text


def extract_table(matrix: Sequence[Sequence[RawCell]], cell_range: CellRange) -> TabularData:
    """Split the bounded part of an A1-anchored cell matrix into headers and rows.

    The first row of the range is the header row whatever it holds; header
    cells without text become ``"unknown"``. Every later row is kept in order.
    """
    if cell_range.is_empty:
        return TabularData()

    columns = range(cell_range.start.column, cell_range.end.column + 1)
    bounded = [
        [_cell_at(matrix, row, column) for column in columns]
        for row in range(cell_range.start.row, cell_range.end.row + 1)
    ]

    header_row, *data_rows = bounded
    headers = [_header_text(cell) for cell in header_row]
    return TabularData(headers=headers, rows=data_rows)
