from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy.engine import URL

DEFAULT_DATA_ROOT = Path("./data")
DEFAULT_SQLITE_NAME = "sheetload.db"
DEFAULT_TEXT_LENGTH = 255
DEFAULT_MYSQL_PORT = 3306
DATA_ROOT_ENV = "SHEETLOAD_DATA_ROOT"
DATABASE_URL_ENV = "SHEETLOAD_DATABASE_URL"
DB_HOST_ENV = "SHEETLOAD_DB_HOST"
DB_PORT_ENV = "SHEETLOAD_DB_PORT"
DB_NAME_ENV = "SHEETLOAD_DB_NAME"
DB_USER_ENV = "SHEETLOAD_DB_USER"
DB_PASSWORD_ENV = "SHEETLOAD_DB_PASSWORD"
ALL_OR_NOTHING_ENV = "SHEETLOAD_ALL_OR_NOTHING"
LOCK_TIMEOUT_ENV = "SHEETLOAD_LOCK_TIMEOUT"
TEXT_LENGTH_ENV = "SHEETLOAD_TEXT_LENGTH"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class IngestConfig:
    database_url: str
    all_or_nothing: bool
    lock_timeout: float | None
    text_length: int


def get_data_root() -> Path:
    return Path(os.getenv(DATA_ROOT_ENV, DEFAULT_DATA_ROOT)).expanduser()


def get_database_url(data_root: Path | None = None) -> str:
    """Resolve the sink URL.

    An explicit URL wins; otherwise MySQL component settings are composed into a
    PyMySQL URL, and with neither present a SQLite file under the data root is used.
    """
    explicit = os.getenv(DATABASE_URL_ENV)
    if explicit:
        return explicit
    host = os.getenv(DB_HOST_ENV)
    if host:
        url = URL.create(
            "mysql+pymysql",
            username=os.getenv(DB_USER_ENV) or None,
            password=os.getenv(DB_PASSWORD_ENV) or None,
            host=host,
            port=int(os.getenv(DB_PORT_ENV, DEFAULT_MYSQL_PORT)),
            database=os.getenv(DB_NAME_ENV) or None,
        )
        return url.render_as_string(hide_password=False)
    root = data_root if data_root is not None else get_data_root()
    return f"sqlite:///{root / DEFAULT_SQLITE_NAME}"


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in _TRUTHY


def load_ingest_config(data_root: Path | None = None) -> IngestConfig:
    timeout_env = os.getenv(LOCK_TIMEOUT_ENV)
    lock_timeout = float(timeout_env) if timeout_env else None
    return IngestConfig(
        database_url=get_database_url(data_root),
        all_or_nothing=_env_flag(ALL_OR_NOTHING_ENV),
        lock_timeout=lock_timeout,
        text_length=int(os.getenv(TEXT_LENGTH_ENV, DEFAULT_TEXT_LENGTH)),
    )
