from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Union

CellValue = Union[int, float, str, bool, None]


class CellKind(str, enum.Enum):
    INTEGER = "integer"
    FLOAT = "float"
    TEXT = "text"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    EMPTY = "empty"


@dataclass(frozen=True, slots=True)
class RawCell:
    """A single spreadsheet cell as produced by the workbook reader.

    TIMESTAMP cells carry the spreadsheet date serial (days since the workbook
    epoch, fraction = time of day) rather than a decoded datetime.
    """

    kind: CellKind
    value: CellValue = None

    @classmethod
    def integer(cls, value: int) -> RawCell:
        return cls(CellKind.INTEGER, int(value))

    @classmethod
    def floating(cls, value: float) -> RawCell:
        return cls(CellKind.FLOAT, float(value))

    @classmethod
    def text(cls, value: str) -> RawCell:
        return cls(CellKind.TEXT, str(value))

    @classmethod
    def boolean(cls, value: bool) -> RawCell:
        return cls(CellKind.BOOLEAN, bool(value))

    @classmethod
    def timestamp(cls, serial: float) -> RawCell:
        return cls(CellKind.TIMESTAMP, float(serial))

    @classmethod
    def empty(cls) -> RawCell:
        return cls(CellKind.EMPTY, None)

    def as_text(self) -> str | None:
        if self.kind == CellKind.TEXT:
            return str(self.value)
        return None


EMPTY_CELL = RawCell.empty()

SheetMatrix = list[list[RawCell]]


def dispatch_on_kind(table: dict[CellKind, object], cell: RawCell) -> object:
    """Look up the handler registered for ``cell.kind``.

    Handler tables must cover every ``CellKind``; a missing entry is a
    programming error rather than a data error.
    """
    try:
        return table[cell.kind]
    except KeyError:
        raise TypeError(f"Unhandled cell kind: {cell.kind!r}") from None


def require_exhaustive(table: dict[CellKind, object], name: str) -> dict[CellKind, object]:
    missing = [kind.value for kind in CellKind if kind not in table]
    if missing:
        raise TypeError(f"{name} does not handle cell kinds: {', '.join(missing)}")
    return table
