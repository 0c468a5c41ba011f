from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta

from sheetload.models.cells import CellKind, CellValue, RawCell, dispatch_on_kind, require_exhaustive

SinkValue = CellValue

# Day 0 of the 1900 date system; one day earlier than the nominal epoch so
# serials keep the historical 1900 leap-year offset.
SPREADSHEET_EPOCH = datetime(1899, 12, 30)
SECONDS_PER_DAY = 86_400


def excel_serial_to_datetime(serial: float) -> str | None:
    """Decode a spreadsheet date serial into ``YYYY-MM-DD HH:MM:SS``.

    Returns None for NaN/Infinity or when the result falls outside the
    representable date range.
    """
    if not math.isfinite(serial):
        return None
    days = math.trunc(serial)
    seconds = round((serial - days) * SECONDS_PER_DAY)
    try:
        moment = SPREADSHEET_EPOCH + timedelta(days=days) + timedelta(seconds=seconds)
    except OverflowError:
        return None
    return moment.isoformat(sep=" ", timespec="seconds")


def datetime_to_serial(moment: datetime) -> float:
    """Inverse of ``excel_serial_to_datetime`` for naive datetimes."""
    return (moment - SPREADSHEET_EPOCH) / timedelta(days=1)


_COERCERS: dict[CellKind, Callable[[CellValue], SinkValue]] = require_exhaustive(  # type: ignore[assignment]
    {
        CellKind.INTEGER: int,
        CellKind.FLOAT: float,
        CellKind.TEXT: str,
        CellKind.BOOLEAN: bool,
        CellKind.TIMESTAMP: lambda serial: excel_serial_to_datetime(float(serial)),
        CellKind.EMPTY: lambda _value: None,
    },
    "value coercion",
)


def coerce_cell(cell: RawCell) -> SinkValue:
    coercer = dispatch_on_kind(_COERCERS, cell)
    return coercer(cell.value)  # type: ignore[operator]


def coerce_row(row: Sequence[RawCell]) -> list[SinkValue]:
    return [coerce_cell(cell) for cell in row]
