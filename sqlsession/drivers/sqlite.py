"""SQLite driver built on the standard library ``sqlite3`` module."""

from __future__ import annotations

import re
import sqlite3
from typing import Mapping, Sequence

from sqlglot.dialects.sqlite import SQLite

from .base import (
    MetadataRow,
    NotSupportedError,
    TRANSACTION_NONE,
    TRANSACTION_READ_UNCOMMITTED,
)

URL_PREFIX = "sqlite:"
DRIVER_NAME = "sqlsession SQLite"
DRIVER_VERSION = "1.0"

_TABLE_TYPES = {"TABLE": "table", "VIEW": "view"}


class SqliteDriver:
    """Driver for ``sqlite:`` addresses (``sqlite::memory:``, ``sqlite:///path``)."""

    name = DRIVER_NAME
    version = DRIVER_VERSION

    def accepts_url(self, url: str) -> bool:
        return url.startswith(URL_PREFIX)

    def connect(self, url: str, properties: Mapping[str, str]) -> "SqliteConnection | None":
        if not self.accepts_url(url):
            return None
        timeout = float(properties.get("timeout", 5.0))
        # Completion reads metadata from a worker thread; sessions are single-caller.
        raw = sqlite3.connect(_database_path(url), timeout=timeout, check_same_thread=False)
        return SqliteConnection(raw)


class SqliteConnection:
    """Connection facade exposing the driver connection surface over sqlite3."""

    def __init__(self, raw: sqlite3.Connection) -> None:
        self._raw = raw
        self._closed = False

    @property
    def raw(self) -> sqlite3.Connection:
        return self._raw

    def get_metadata(self) -> "SqliteMetadata":
        return SqliteMetadata(self._raw)

    def get_catalog(self) -> str:
        return "main"

    def get_schema(self) -> str | None:
        return None

    def set_auto_commit(self, enabled: bool) -> None:
        if enabled and self._raw.in_transaction:
            self._raw.commit()
        self._raw.isolation_level = None if enabled else "DEFERRED"

    def get_auto_commit(self) -> bool:
        return self._raw.isolation_level is None

    def set_transaction_isolation(self, level: int) -> None:
        if level == TRANSACTION_NONE:
            raise NotSupportedError("SQLite always runs statements in a transaction.")
        flag = 1 if level == TRANSACTION_READ_UNCOMMITTED else 0
        self._raw.execute(f"PRAGMA read_uncommitted = {flag}")

    def get_warnings(self) -> Sequence[str]:
        return ()

    def is_closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._raw.close()
        self._closed = True


class SqliteMetadata:
    """Metadata queries answered from ``sqlite_master`` and ``PRAGMA`` calls."""

    def __init__(self, raw: sqlite3.Connection) -> None:
        self._raw = raw

    def get_identifier_quote_string(self) -> str:
        return '"'

    def get_database_product_name(self) -> str:
        return "SQLite"

    def get_database_product_version(self) -> str:
        return sqlite3.sqlite_version

    def get_sql_keywords(self) -> str:
        return ",".join(_keywords())

    def stores_upper_case_identifiers(self) -> bool:
        return False

    def get_driver_name(self) -> str:
        return DRIVER_NAME

    def get_driver_version(self) -> str:
        return DRIVER_VERSION

    def get_tables(
        self,
        catalog: str | None,
        schema_pattern: str | None,
        table_name_pattern: str,
        types: Sequence[str] | None,
    ) -> list[MetadataRow]:
        wanted = [_TABLE_TYPES[kind.upper()] for kind in (types or _TABLE_TYPES) if kind.upper() in _TABLE_TYPES]
        if not wanted:
            return []
        placeholders = ", ".join("?" for _ in wanted)
        cursor = self._raw.execute(
            f"SELECT name, type FROM sqlite_master WHERE type IN ({placeholders}) "
            "AND name LIKE ? AND name NOT LIKE 'sqlite\\_%' ESCAPE '\\' ORDER BY name",
            (*wanted, table_name_pattern or "%"),
        )
        try:
            return [
                {
                    "TABLE_CAT": "main",
                    "TABLE_SCHEM": None,
                    "TABLE_NAME": name,
                    "TABLE_TYPE": kind.upper(),
                }
                for name, kind in cursor.fetchall()
            ]
        finally:
            cursor.close()

    def get_columns(
        self,
        catalog: str | None,
        schema_pattern: str | None,
        table_name_pattern: str,
        column_name_pattern: str,
    ) -> list[MetadataRow]:
        rows: list[MetadataRow] = []
        for table in self.get_tables(catalog, schema_pattern, table_name_pattern, None):
            name = table["TABLE_NAME"]
            for info in self._table_info(name):
                if not _like(column_name_pattern, info[1]):
                    continue
                rows.append(
                    {
                        "TABLE_NAME": name,
                        "COLUMN_NAME": info[1],
                        "TYPE_NAME": info[2],
                        "ORDINAL_POSITION": info[0] + 1,
                        "IS_NULLABLE": "NO" if info[3] else "YES",
                    }
                )
        return rows

    def get_primary_keys(self, catalog: str | None, schema: str | None, table: str) -> list[MetadataRow]:
        return [
            {"TABLE_NAME": table, "COLUMN_NAME": info[1], "KEY_SEQ": info[5]}
            for info in self._table_info(table)
            if info[5]
        ]

    def _table_info(self, table: str) -> list[tuple]:
        quoted = '"' + table.replace('"', '""') + '"'
        cursor = self._raw.execute(f"PRAGMA table_info({quoted})")
        try:
            return cursor.fetchall()
        finally:
            cursor.close()


def _database_path(url: str) -> str:
    path = url[len(URL_PREFIX):]
    if path.startswith("//"):
        path = path[2:]
    return path or ":memory:"


def _keywords() -> list[str]:
    words = {
        key
        for key in SQLite.Tokenizer.KEYWORDS
        if key.replace("_", "").isalpha()
    }
    return sorted(words)


def _like(pattern: str, value: str) -> bool:
    regex = "".join(
        ".*" if char == "%" else "." if char == "_" else re.escape(char)
        for char in (pattern or "%")
    )
    return re.fullmatch(regex, value, flags=re.IGNORECASE | re.DOTALL) is not None


__all__ = ["SqliteConnection", "SqliteDriver", "SqliteMetadata"]
