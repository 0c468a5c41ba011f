from __future__ import annotations

from collections.abc import Iterator, Sequence
from datetime import datetime
from pathlib import Path

import pytest
from sqlalchemy.engine import Engine

from sheetload.db.sink import SharedSink, SqlAlchemySink, build_engine
from sheetload.services.audit_log import AuditLogService
from sheetload.services.ingestion import IngestionService
from tests.fixtures.workbooks.factory import DEFAULT_SHEETS, SheetDefinition, build_workbook


@pytest.fixture
def temp_data_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    data_root = tmp_path / "data"
    data_root.mkdir()
    monkeypatch.setenv("SHEETLOAD_DATA_ROOT", str(data_root))
    return data_root


@pytest.fixture
def sqlite_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    url = f"sqlite:///{tmp_path / 'sink.db'}"
    monkeypatch.setenv("SHEETLOAD_DATABASE_URL", url)
    return url


@pytest.fixture
def engine(sqlite_url: str) -> Iterator[Engine]:
    engine = build_engine(sqlite_url)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sql_sink(engine: Engine) -> Iterator[SqlAlchemySink]:
    sink = SqlAlchemySink(engine)
    try:
        yield sink
    finally:
        sink.close()


@pytest.fixture
def shared_sink(sql_sink: SqlAlchemySink) -> SharedSink:
    return SharedSink(sql_sink)


@pytest.fixture
def audit_log(temp_data_root: Path) -> AuditLogService:
    return AuditLogService(temp_data_root)


@pytest.fixture
def ingestion_service(shared_sink: SharedSink, audit_log: AuditLogService) -> IngestionService:
    return IngestionService(sink=shared_sink, audit_log=audit_log)


@pytest.fixture
def workbook_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "workbooks"
    directory.mkdir(parents=True, exist_ok=True)
    return directory


@pytest.fixture
def sheet_definitions() -> list[SheetDefinition]:
    return list(DEFAULT_SHEETS)


@pytest.fixture
def workbook_builder(workbook_dir: Path):
    def _builder(
        *,
        sheets: Sequence[SheetDefinition] | None = None,
        filename: str = "sales.xlsx",
        epoch: datetime | None = None,
    ) -> Path:
        return build_workbook(workbook_dir / filename, sheets=sheets, epoch=epoch)

    return _builder
