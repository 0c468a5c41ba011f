from __future__ import annotations

import re
from dataclasses import dataclass

from sheetload.errors import MalformedRange

RANGE_SEPARATOR = ":"
_ENDPOINT_PATTERN = re.compile(r"^([A-Za-z]*)([0-9]*)$")
_ALPHABET_SIZE = 26


@dataclass(frozen=True, slots=True)
class CellAddress:
    row: int
    column: int

    def to_reference(self) -> str:
        return f"{encode_column(self.column)}{self.row + 1}"


@dataclass(frozen=True, slots=True)
class CellRange:
    start: CellAddress
    end: CellAddress

    @property
    def is_empty(self) -> bool:
        return self.start.row > self.end.row or self.start.column > self.end.column

    @property
    def width(self) -> int:
        return max(self.end.column - self.start.column + 1, 0)

    def to_reference(self) -> str:
        return f"{self.start.to_reference()}{RANGE_SEPARATOR}{self.end.to_reference()}"


def decode_column(letters: str) -> int:
    """Decode spreadsheet column letters into a zero-based column index.

    Letters form a bijective base-26 numeral (A=1 .. Z=26, no zero digit),
    so "A" -> 0, "Z" -> 25 and "AA" -> 26.
    """
    value = 0
    for char in letters.upper():
        if not "A" <= char <= "Z":
            raise MalformedRange(f"Invalid column letter {char!r} in {letters!r}")
        value = value * _ALPHABET_SIZE + (ord(char) - ord("A") + 1)
    if value == 0:
        raise MalformedRange("Cell reference is missing its column letters")
    return value - 1


def encode_column(index: int) -> str:
    if index < 0:
        raise ValueError(f"Column index must be non-negative, got {index}")
    letters: list[str] = []
    remaining = index + 1
    while remaining:
        remaining, digit = divmod(remaining - 1, _ALPHABET_SIZE)
        letters.append(chr(ord("A") + digit))
    return "".join(reversed(letters))


def parse_cell(reference: str) -> CellAddress:
    match = _ENDPOINT_PATTERN.match(reference.strip())
    if match is None:
        raise MalformedRange(f"Invalid cell reference {reference!r}")
    letters, digits = match.groups()
    column = decode_column(letters)
    if not digits:
        raise MalformedRange(f"Cell reference {reference!r} is missing its row number")
    row = int(digits)
    if row == 0:
        raise MalformedRange(f"Row numbers start at 1, got {reference!r}")
    return CellAddress(row=row - 1, column=column)


def parse_range(range_ref: str) -> CellRange:
    """Parse a two-endpoint reference such as ``"A1:P256"``.

    Endpoints are taken as given; a start past its end is not reordered and
    simply yields an empty extraction downstream.
    """
    parts = range_ref.split(RANGE_SEPARATOR)
    if len(parts) != 2:
        raise MalformedRange(
            f"Range {range_ref!r} must contain exactly two cell references separated by '{RANGE_SEPARATOR}'"
        )
    start, end = (parse_cell(part) for part in parts)
    return CellRange(start=start, end=end)
