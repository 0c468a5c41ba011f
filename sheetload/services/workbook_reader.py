from __future__ import annotations

import zipfile
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Protocol

from openpyxl import load_workbook
from openpyxl.utils.datetime import to_excel
from openpyxl.utils.exceptions import InvalidFileException

from sheetload.errors import SourceReadError
from sheetload.models.cells import RawCell, SheetMatrix
from sheetload.services.addressing import CellRange
from sheetload.services.coercion import datetime_to_serial
from sheetload.utils.logging import get_logger

LOGGER = get_logger(__name__)

_OPEN_ERRORS = (OSError, InvalidFileException, zipfile.BadZipFile, KeyError, ValueError)


class WorkbookReader(Protocol):
    def list_sheets(self, path: str | Path) -> list[str]: ...

    def read_range(self, path: str | Path, sheet_name: str, cell_range: CellRange) -> SheetMatrix: ...


def to_raw_cell(value: object) -> RawCell:
    """Classify an openpyxl cell value into the closed RawCell union.

    openpyxl has already resolved dates against the workbook's own calendar
    (1900 or 1904), so timestamps are re-encoded on the 1900 serial scale the
    coercer decodes from, whatever the source workbook used.
    """
    if value is None:
        return RawCell.empty()
    # bool is a subclass of int and must be checked first
    if isinstance(value, bool):
        return RawCell.boolean(value)
    if isinstance(value, int):
        return RawCell.integer(value)
    if isinstance(value, float):
        return RawCell.floating(value)
    if isinstance(value, str):
        return RawCell.text(value)
    if isinstance(value, datetime):
        return RawCell.timestamp(datetime_to_serial(value.replace(tzinfo=None)))
    if isinstance(value, date):
        return RawCell.timestamp(datetime_to_serial(datetime.combine(value, time())))
    if isinstance(value, (time, timedelta)):
        # time-of-day and duration cells carry no calendar date
        return RawCell.timestamp(to_excel(value))
    return RawCell.empty()

class OpenpyxlWorkbookReader:
    """Read .xlsx/.xlsm workbooks into A1-anchored RawCell matrices."""

    def _open(self, path: str | Path):
        source = Path(path)
        try:
            return load_workbook(source, read_only=True, data_only=True)
        except _OPEN_ERRORS as error:
            raise SourceReadError(f"Unable to open workbook {source.name!r}: {error}") from error

    def list_sheets(self, path: str | Path) -> list[str]:
        workbook = self._open(path)
        try:
            return list(workbook.sheetnames)
        finally:
            workbook.close()

    def read_range(self, path: str | Path, sheet_name: str, cell_range: CellRange) -> SheetMatrix:
        workbook = self._open(path)
        try:
            if sheet_name not in workbook.sheetnames:
                raise SourceReadError(f"Sheet {sheet_name!r} not found in workbook")
            worksheet = workbook[sheet_name]
            max_row = max(cell_range.start.row, cell_range.end.row) + 1
            max_col = max(cell_range.start.column, cell_range.end.column) + 1
            matrix: SheetMatrix = []
            for values in worksheet.iter_rows(
                min_row=1, max_row=max_row, min_col=1, max_col=max_col, values_only=True
            ):
                matrix.append([to_raw_cell(value) for value in values])
            LOGGER.debug(
                "Read %d rows from sheet %s for range %s", len(matrix), sheet_name, cell_range.to_reference()
            )
            return matrix
        except SourceReadError:
            raise
        except _OPEN_ERRORS as error:
            raise SourceReadError(f"Unable to read range from sheet {sheet_name!r}: {error}") from error
        finally:
            workbook.close()
