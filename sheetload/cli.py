"""Command line entry point for running ingestion actions.

Usage:
    sheetload sheets workbook.xlsx
    sheetload tables
    sheetload run create --file workbook.xlsx --sheet Sales --range A1:F200 --table "Продажі 2024"
    sheetload run delete --table prodazhi_2024
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Sequence

from sheetload.api.router import build_default_service
from sheetload.errors import IngestionError
from sheetload.models.requests import Action, IngestionRequest, SourceLocator
from sheetload.services.ingestion import IngestionService
from sheetload.utils.logging import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sheetload", description="Load spreadsheet ranges into SQL tables")
    parser.add_argument("--log-level", default=None, help="Logging level (defaults to SHEETLOAD_LOG_LEVEL)")
    subcommands = parser.add_subparsers(dest="command", required=True)

    sheets = subcommands.add_parser("sheets", help="List the sheets of a workbook")
    sheets.add_argument("file", help="Path to the workbook")

    subcommands.add_parser("tables", help="List tables in the target database")

    run = subcommands.add_parser("run", help="Run an ingestion action")
    run.add_argument("action", choices=[action.value for action in Action])
    run.add_argument("--file", default="", help="Path to the workbook")
    run.add_argument("--sheet", default="", help="Sheet name")
    run.add_argument("--range", default="", help="Cell range such as A1:F200")
    run.add_argument("--table", required=True, help="Target table name")
    run.add_argument(
        "--all-or-nothing",
        action="store_true",
        help="Roll back every row of the batch when one row fails",
    )
    return parser


def run_command(args: argparse.Namespace, service: IngestionService) -> dict[str, object]:
    if args.command == "sheets":
        return {"file": args.file, "sheets": service.list_sheets(args.file)}
    if args.command == "tables":
        return {"tables": service.list_tables()}

    request = IngestionRequest(
        action=Action(args.action),
        table_name=args.table,
        source=SourceLocator(file_path=args.file, sheet_name=args.sheet, range_ref=args.range),
    )
    # the flag applies to this run only
    configured = service.all_or_nothing
    service.all_or_nothing = configured or args.all_or_nothing
    try:
        return service.execute(request).to_dict()
    finally:
        service.all_or_nothing = configured


def main(argv: Sequence[str] | None = None, service: IngestionService | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    try:
        output = run_command(args, service or build_default_service())
    except IngestionError as error:
        print(f"✗ {error}", file=sys.stderr)
        if error.rows_written:
            print(f"  {error.rows_written} rows were written before the failure", file=sys.stderr)
        return 1
    print(json.dumps(output, indent=2, ensure_ascii=False, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
