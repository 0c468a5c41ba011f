from __future__ import annotations

import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from sqlalchemy import MetaData, Table, bindparam, column, create_engine, delete, inspect, insert, table, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql import quoted_name
from sqlalchemy.sql.ddl import CreateTable, DropTable
from sqlalchemy.sql.dml import Insert
from sqlalchemy.sql.expression import Executable

from sheetload.errors import SinkError
from sheetload.utils.logging import get_logger

LOGGER = get_logger(__name__)

_TRUNCATE_UNSUPPORTED = {"sqlite"}


def _prepare_sqlite_path(url: str) -> None:
    if url.startswith("sqlite:///") and url != "sqlite:///:memory:":
        db_path = Path(url.replace("sqlite:///", "", 1))
        db_path.parent.mkdir(parents=True, exist_ok=True)


def build_engine(url: str) -> Engine:
    _prepare_sqlite_path(url)
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


def quote_always(name: str) -> quoted_name:
    return quoted_name(name, quote=True)


@dataclass(frozen=True)
class PreparedInsert:
    """A parameterized INSERT whose bind names follow column order."""

    statement: Insert
    bind_names: tuple[str, ...]

    def bind(self, values: Sequence[Any]) -> dict[str, Any]:
        if len(values) != len(self.bind_names):
            raise SinkError(
                f"Row has {len(values)} values but the insert expects {len(self.bind_names)}"
            )
        return dict(zip(self.bind_names, values))


def create_table_statement(target: Table) -> CreateTable:
    return CreateTable(target, if_not_exists=True)


def drop_table_statement(table_name: str) -> DropTable:
    return DropTable(Table(quote_always(table_name), MetaData()), if_exists=True)


def truncate_table_statement(table_name: str, *, dialect_name: str, preparer: Any) -> Executable:
    if dialect_name in _TRUNCATE_UNSUPPORTED:
        return delete(table(quote_always(table_name)))
    return text(f"TRUNCATE TABLE {preparer.quote_identifier(table_name)}")


def insert_statement(table_name: str, column_names: Sequence[str]) -> Insert:
    """Build ``INSERT INTO <table> (<columns>) VALUES (:p0, :p1, ...)``."""
    target = table(quote_always(table_name), *(column(quote_always(name)) for name in column_names))
    return insert(target).values(
        {name: bindparam(f"p{position}") for position, name in enumerate(column_names)}
    )


class RelationalSink(Protocol):
    dialect_name: str

    def execute_statement(self, statement: Executable) -> None: ...

    def prepare(self, statement: Insert) -> PreparedInsert: ...

    def execute_bound(self, handle: PreparedInsert, values: Sequence[Any]) -> None: ...

    def truncate_statement(self, table_name: str) -> Executable: ...

    def begin(self) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def list_tables(self) -> list[str]: ...


class SqlAlchemySink:
    """Relational sink over a single SQLAlchemy connection.

    Outside ``begin()``/``commit()`` every statement is committed on its own, so
    a failing row leaves earlier rows in place.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.dialect_name = engine.dialect.name
        self._connection: Connection | None = None
        self._in_transaction = False

    def _connect(self) -> Connection:
        if self._connection is None or self._connection.closed:
            try:
                self._connection = self.engine.connect()
            except SQLAlchemyError as error:
                raise SinkError(f"Unable to connect to the database: {error}") from error
        return self._connection

    def _run(self, statement: Executable, params: dict[str, Any] | None = None) -> None:
        connection = self._connect()
        try:
            connection.execute(statement, params)
        except SQLAlchemyError as error:
            if not self._in_transaction:
                connection.rollback()
            raise SinkError(f"Statement failed: {error.__class__.__name__}: {error}") from error
        if not self._in_transaction:
            connection.commit()

    def execute_statement(self, statement: Executable) -> None:
        self._run(statement)

    def prepare(self, statement: Insert) -> PreparedInsert:
        try:
            compiled = statement.compile(dialect=self.engine.dialect)
        except SQLAlchemyError as error:
            raise SinkError(f"Unable to prepare insert: {error}") from error
        return PreparedInsert(statement=statement, bind_names=tuple(compiled.params))

    def execute_bound(self, handle: PreparedInsert, values: Sequence[Any]) -> None:
        self._run(handle.statement, handle.bind(values))

    def truncate_statement(self, table_name: str) -> Executable:
        return truncate_table_statement(
            table_name,
            dialect_name=self.dialect_name,
            preparer=self.engine.dialect.identifier_preparer,
        )

    def begin(self) -> None:
        self._connect()
        self._in_transaction = True

    def commit(self) -> None:
        try:
            if self._connection is not None:
                self._connection.commit()
        except SQLAlchemyError as error:
            raise SinkError(f"Commit failed: {error}") from error
        finally:
            self._in_transaction = False

    def rollback(self) -> None:
        try:
            if self._connection is not None:
                self._connection.rollback()
        finally:
            self._in_transaction = False

    def list_tables(self) -> list[str]:
        try:
            return sorted(inspect(self._connect()).get_table_names())
        except SQLAlchemyError as error:
            raise SinkError(f"Unable to list tables: {error}") from error

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None


class SharedSink:
    """Exclusive-access wrapper around the one sink connection.

    Holders of ``lease()`` run one at a time; with ``lock_timeout`` set, a
    lease that cannot be obtained in time fails with SinkError.
    """

    def __init__(self, sink: RelationalSink, *, lock_timeout: float | None = None) -> None:
        self._sink = sink
        self._lock = threading.Lock()
        self.lock_timeout = lock_timeout

    @contextmanager
    def lease(self) -> Iterator[RelationalSink]:
        timeout = -1 if self.lock_timeout is None else self.lock_timeout
        if not self._lock.acquire(timeout=timeout):
            raise SinkError("Database connection is busy with another operation")
        try:
            yield self._sink
        finally:
            self._lock.release()
