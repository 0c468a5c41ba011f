from __future__ import annotations

from typing import Annotated

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from sheetload.db.sink import SharedSink, SqlAlchemySink, build_engine
from sheetload.errors import (
    EmptySample,
    IngestionError,
    MalformedRange,
    SinkError,
    SourceReadError,
    ValidationError,
)
from sheetload.models.requests import Action, IngestionRequest, SourceLocator
from sheetload.services.audit_log import AuditLogService
from sheetload.services.ingestion import IngestionService
from sheetload.utils.config import get_data_root, load_ingest_config
from sheetload.utils.logging import get_logger

LOGGER = get_logger(__name__)

_STATUS_BY_ERROR: dict[type[IngestionError], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    MalformedRange: status.HTTP_400_BAD_REQUEST,
    EmptySample: status.HTTP_400_BAD_REQUEST,
    SourceReadError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    SinkError: status.HTTP_502_BAD_GATEWAY,
}


class SheetListRequest(BaseModel):
    file_path: Annotated[str, Field(alias="filePath", min_length=1)]

    model_config = ConfigDict(populate_by_name=True)


class SheetListResponse(BaseModel):
    file_path: Annotated[str, Field(alias="filePath")]
    sheets: list[str]

    model_config = ConfigDict(populate_by_name=True)


class IngestActionRequest(BaseModel):
    action: Action
    file_path: Annotated[str, Field(alias="filePath")] = ""
    sheet: str = ""
    range: str = ""
    table_name: Annotated[str, Field(alias="tableName")]

    model_config = ConfigDict(populate_by_name=True)

    def to_request(self) -> IngestionRequest:
        return IngestionRequest(
            action=self.action,
            table_name=self.table_name,
            source=SourceLocator(
                file_path=self.file_path,
                sheet_name=self.sheet,
                range_ref=self.range,
            ),
        )


class ColumnPayload(BaseModel):
    name: str
    sql_type: Annotated[str, Field(alias="sqlType")]

    model_config = ConfigDict(populate_by_name=True)


class IngestActionResponse(BaseModel):
    action: Action
    table_name: Annotated[str, Field(alias="tableName")]
    rows_written: Annotated[int, Field(alias="rowsWritten")]
    columns: list[str]
    schema_: Annotated[list[ColumnPayload], Field(alias="schema", default_factory=list)]
    elapsed_ms: Annotated[float, Field(alias="elapsedMs")]

    model_config = ConfigDict(populate_by_name=True)


def build_default_service() -> IngestionService:
    config = load_ingest_config()
    engine = build_engine(config.database_url)
    return IngestionService(
        sink=SharedSink(SqlAlchemySink(engine), lock_timeout=config.lock_timeout),
        audit_log=AuditLogService(get_data_root()),
        all_or_nothing=config.all_or_nothing,
        text_length=config.text_length,
    )


def create_app(*, service: IngestionService | None = None) -> FastAPI:
    """Create the FastAPI app exposing workbook, ingestion and table endpoints."""
    app = FastAPI(title="Sheetload Ingestion API", version="0.1.0")
    ingestion_service = service or build_default_service()

    @app.exception_handler(IngestionError)
    async def _handle_ingestion_error(_request: Request, error: IngestionError) -> JSONResponse:
        status_code = _STATUS_BY_ERROR.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR)
        LOGGER.warning("Request failed with %s: %s", type(error).__name__, error.message)
        return JSONResponse(
            status_code=status_code,
            content={"code": error.code, "detail": str(error), "rowsWritten": error.rows_written},
        )

    @app.post("/workbooks/sheets", response_model=SheetListResponse, response_model_by_alias=True)
    def list_sheets(payload: SheetListRequest) -> SheetListResponse:
        sheets = ingestion_service.list_sheets(payload.file_path)
        return SheetListResponse(file_path=payload.file_path, sheets=sheets)

    @app.post("/ingest/actions", response_model=IngestActionResponse, response_model_by_alias=True)
    def run_action(payload: IngestActionRequest) -> IngestActionResponse:
        result = ingestion_service.execute(payload.to_request())
        return IngestActionResponse(
            action=result.action,
            table_name=result.table_name,
            rows_written=result.rows_written,
            columns=result.columns,
            schema_=[
                ColumnPayload(name=column.name, sql_type=column.sql_type.value)
                for column in result.schema
            ],
            elapsed_ms=result.elapsed_ms,
        )

    @app.get("/tables", response_model=list[str])
    def list_tables() -> list[str]:
        return ingestion_service.list_tables()

    return app
