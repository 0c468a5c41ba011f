from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from sheetload.db.sink import (
    RelationalSink,
    SharedSink,
    create_table_statement,
    drop_table_statement,
    insert_statement,
)
from sheetload.errors import IngestionError, SinkError
from sheetload.models.cells import RawCell
from sheetload.models.requests import Action, IngestionRequest, IngestionResult
from sheetload.services.addressing import parse_range
from sheetload.services.audit_log import AuditLogService
from sheetload.services.coercion import coerce_row
from sheetload.services.extractor import extract_table
from sheetload.services.identifiers import normalize_and_validate
from sheetload.services.schema_inference import (
    DEFAULT_TEXT_LENGTH,
    ColumnSchema,
    build_table,
    ensure_row_fits,
    infer_schema,
)
from sheetload.services.workbook_reader import OpenpyxlWorkbookReader, WorkbookReader
from sheetload.utils.logging import get_logger, log_event, log_row_failure, log_timing
from sheetload.utils.metrics import emit_ingest_metric, measure_ingest

LOGGER = get_logger(__name__)


@dataclass
class SheetData:
    headers: list[str]
    rows: list[list[RawCell]]


class IngestionService:
    """Run create/append/rewrite/delete requests against the shared sink.

    Requests are processed sequentially. Row writes stop at the first failing
    row; unless ``all_or_nothing`` is set, rows written before the failure stay
    committed and the raised error reports how many there were.
    """

    def __init__(
        self,
        *,
        sink: SharedSink,
        reader: WorkbookReader | None = None,
        audit_log: AuditLogService | None = None,
        all_or_nothing: bool = False,
        text_length: int = DEFAULT_TEXT_LENGTH,
    ) -> None:
        self.sink = sink
        self.reader = reader or OpenpyxlWorkbookReader()
        self.audit_log = audit_log
        self.all_or_nothing = all_or_nothing
        self.text_length = text_length

    def list_sheets(self, file_path: str | Path) -> list[str]:
        return self.reader.list_sheets(file_path)

    def list_tables(self) -> list[str]:
        with self.sink.lease() as sink:
            return sink.list_tables()

    def execute(self, request: IngestionRequest) -> IngestionResult:
        request.validate()
        table_name = normalize_and_validate(request.table_name, role="table name")
        result = IngestionResult(action=request.action, table_name=table_name)
        timer = time.perf_counter()

        try:
            with (
                log_timing(LOGGER, "ingestion.execute", action=request.action.value, table=table_name),
                measure_ingest(request.action.value, table=table_name),
            ):
                if request.action == Action.DELETE:
                    self._delete(table_name)
                else:
                    data = self._load_sheet(request)
                    result.columns = data.headers
                    self._dispatch(request.action, table_name, data, result)
        except IngestionError as error:
            self._audit(request.action, table_name, "failed", error.rows_written, str(error))
            raise

        result.elapsed_ms = (time.perf_counter() - timer) * 1000.0
        emit_ingest_metric(
            "rows_written",
            action=request.action.value,
            table=table_name,
            rows=result.rows_written,
        )
        self._audit(request.action, table_name, "succeeded", result.rows_written)
        return result

    def _dispatch(
        self,
        action: Action,
        table_name: str,
        data: SheetData,
        result: IngestionResult,
    ) -> None:
        if action == Action.CREATE:
            result.schema = infer_schema(data.headers, data.rows[0] if data.rows else None)
            target = build_table(table_name, result.schema, text_length=self.text_length)
            with self.sink.lease() as sink:
                sink.execute_statement(create_table_statement(target))
                log_event(LOGGER, "ingestion.table_created", table=table_name, columns=len(result.schema))
                result.rows_written = self._write_rows(sink, table_name, data, schema=result.schema)
        elif action == Action.APPEND:
            with self.sink.lease() as sink:
                result.rows_written = self._write_rows(sink, table_name, data)
        elif action == Action.REWRITE:
            with self.sink.lease() as sink:
                result.rows_written = self._write_rows(sink, table_name, data, truncate_first=True)
        else:
            raise ValueError(f"Unsupported action {action!r}")

    def _load_sheet(self, request: IngestionRequest) -> SheetData:
        cell_range = parse_range(request.source.range_ref)
        matrix = self.reader.read_range(request.source.file_path, request.source.sheet_name, cell_range)
        table = extract_table(matrix, cell_range)
        headers = [normalize_and_validate(header, role="column") for header in table.headers]
        log_event(
            LOGGER,
            "ingestion.sheet_loaded",
            sheet=request.source.sheet_name,
            range=cell_range.to_reference(),
            columns=len(headers),
            rows=len(table.rows),
        )
        return SheetData(headers=headers, rows=table.rows)

    def _delete(self, table_name: str) -> None:
        with self.sink.lease() as sink:
            sink.execute_statement(drop_table_statement(table_name))
        log_event(LOGGER, "ingestion.table_dropped", table=table_name)

    def _write_rows(
        self,
        sink: RelationalSink,
        table_name: str,
        data: SheetData,
        *,
        truncate_first: bool = False,
        schema: Sequence[ColumnSchema] = (),
    ) -> int:
        if self.all_or_nothing:
            sink.begin()
        written = 0
        try:
            if truncate_first:
                sink.execute_statement(sink.truncate_statement(table_name))
                log_event(LOGGER, "ingestion.table_truncated", table=table_name)
            if data.rows:
                written = self._insert_rows(sink, table_name, data.headers, data.rows, schema)
            else:
                LOGGER.warning("No data rows in range for table %s", table_name)
        except SinkError as error:
            if self.all_or_nothing:
                sink.rollback()
                error.rows_written = 0
            raise
        if self.all_or_nothing:
            sink.commit()
        return written

    def _insert_rows(
        self,
        sink: RelationalSink,
        table_name: str,
        headers: Sequence[str],
        rows: Sequence[Sequence[RawCell]],
        schema: Sequence[ColumnSchema] = (),
    ) -> int:
        """Insert rows in source order, stopping at the first one that fails.

        With a schema (Create), each row is checked against the inferred column
        types before it is bound.
        """
        handle = sink.prepare(insert_statement(table_name, headers))
        written = 0
        for position, row in enumerate(rows):
            try:
                if schema:
                    ensure_row_fits(schema, row, text_length=self.text_length)
                sink.execute_bound(handle, coerce_row(row))
            except SinkError as error:
                error.rows_written = written
                log_row_failure(
                    LOGGER,
                    table=table_name,
                    row_number=position + 1,
                    rows_written=written,
                    reason=error.message,
                )
                raise
            written += 1
        return written

    def _audit(
        self,
        action: Action,
        table_name: str,
        outcome: str,
        rows_written: int,
        error: str | None = None,
    ) -> None:
        if self.audit_log is None:
            return
        self.audit_log.record_ingestion(
            action=action.value,
            table_name=table_name,
            outcome=outcome,
            rows_written=rows_written,
            error=error,
        )
