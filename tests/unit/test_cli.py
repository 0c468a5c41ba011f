from __future__ import annotations

import json

import pytest

from sheetload import cli
from sheetload.services.ingestion import IngestionService


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "configure_logging", lambda *_args, **_kwargs: None)


def test_cli_lists_sheets(ingestion_service: IngestionService, workbook_builder, capsys) -> None:
    path = workbook_builder()

    exit_code = cli.main(["sheets", str(path)], service=ingestion_service)

    assert exit_code == 0
    output = json.loads(capsys.readouterr().out)
    assert output["sheets"][0] == "Sales"


def test_cli_runs_create_then_lists_tables(ingestion_service: IngestionService, workbook_builder, capsys) -> None:
    path = workbook_builder()

    exit_code = cli.main(
        ["run", "create", "--file", str(path), "--sheet", "Sales", "--range", "A1:E3", "--table", "Sales"],
        service=ingestion_service,
    )
    assert exit_code == 0
    result = json.loads(capsys.readouterr().out)
    assert result["table_name"] == "sales"
    assert result["rows_written"] == 2

    assert cli.main(["tables"], service=ingestion_service) == 0
    assert json.loads(capsys.readouterr().out) == {"tables": ["sales"]}


def test_cli_reports_errors_with_code(ingestion_service: IngestionService, capsys) -> None:
    exit_code = cli.main(["run", "append", "--table", "sales"], service=ingestion_service)

    assert exit_code == 1
    assert "100: Select a file path" in capsys.readouterr().err


def test_cli_all_or_nothing_flag_applies_to_one_run(
    ingestion_service: IngestionService, workbook_builder, monkeypatch: pytest.MonkeyPatch
) -> None:
    path = workbook_builder()
    seen: list[bool] = []
    execute = ingestion_service.execute

    def _recording_execute(request):
        seen.append(ingestion_service.all_or_nothing)
        return execute(request)

    monkeypatch.setattr(ingestion_service, "execute", _recording_execute)
    args = ["run", "create", "--file", str(path), "--sheet", "Sales", "--range", "A1:E2", "--table", "s"]

    assert cli.main([*args, "--all-or-nothing"], service=ingestion_service) == 0
    assert cli.main(args, service=ingestion_service) == 0

    assert seen == [True, False]
    assert ingestion_service.all_or_nothing is False


def test_cli_failed_run_restores_all_or_nothing(ingestion_service: IngestionService) -> None:
    exit_code = cli.main(["run", "append", "--table", "sales", "--all-or-nothing"], service=ingestion_service)

    assert exit_code == 1
    assert ingestion_service.all_or_nothing is False
