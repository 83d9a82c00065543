"""PostgreSQL driver that exposes asyncpg connections through a blocking facade."""

from __future__ import annotations

import asyncio
import threading
from typing import Any, Coroutine, Mapping, Sequence, TypeVar

import asyncpg

from .base import (
    MetadataRow,
    NotSupportedError,
    TRANSACTION_READ_COMMITTED,
    TRANSACTION_READ_UNCOMMITTED,
    TRANSACTION_REPEATABLE_READ,
    TRANSACTION_SERIALIZABLE,
)

T = TypeVar("T")

URL_PREFIXES = ("postgresql://", "postgres://")
DRIVER_NAME = "sqlsession asyncpg"
DRIVER_VERSION = asyncpg.__version__

_ISOLATION_SQL = {
    TRANSACTION_READ_UNCOMMITTED: "READ UNCOMMITTED",
    TRANSACTION_READ_COMMITTED: "READ COMMITTED",
    TRANSACTION_REPEATABLE_READ: "REPEATABLE READ",
    TRANSACTION_SERIALIZABLE: "SERIALIZABLE",
}

_TABLE_TYPES = {"TABLE": "BASE TABLE", "VIEW": "VIEW"}

_TABLES_QUERY = """
    SELECT table_catalog, table_schema, table_name, table_type
    FROM information_schema.tables
    WHERE ($1::text IS NULL OR table_catalog = $1)
      AND table_schema LIKE $2
      AND table_name LIKE $3
      AND table_type = ANY($4::text[])
      AND table_schema NOT IN ('pg_catalog', 'information_schema')
    ORDER BY table_schema, table_name
"""

_COLUMNS_QUERY = """
    SELECT table_schema, table_name, column_name, data_type, ordinal_position, is_nullable
    FROM information_schema.columns
    WHERE ($1::text IS NULL OR table_catalog = $1)
      AND table_schema LIKE $2
      AND table_name LIKE $3
      AND column_name LIKE $4
      AND table_schema NOT IN ('pg_catalog', 'information_schema')
    ORDER BY table_schema, table_name, ordinal_position
"""

_PRIMARY_KEYS_QUERY = """
    SELECT kcu.table_schema, kcu.table_name, kcu.column_name, kcu.ordinal_position
    FROM information_schema.table_constraints tc
    JOIN information_schema.key_column_usage kcu
      ON tc.constraint_name = kcu.constraint_name
     AND tc.table_schema = kcu.table_schema
    WHERE tc.constraint_type = 'PRIMARY KEY'
      AND ($1::text IS NULL OR kcu.table_catalog = $1)
      AND ($2::text IS NULL OR kcu.table_schema = $2)
      AND kcu.table_name = $3
    ORDER BY kcu.ordinal_position
"""

_KEYWORDS_QUERY = "SELECT word FROM pg_get_keywords() WHERE catcode = 'R' ORDER BY word"


class AsyncpgDriver:
    """Driver for ``postgresql://`` addresses backed by asyncpg.

    asyncpg is asyncio-only, so the driver owns an event loop running on a
    daemon thread and blocks on each coroutine it submits there. The loop is
    started on the first connect.
    """

    name = DRIVER_NAME
    version = DRIVER_VERSION

    def __init__(self, *, connect_timeout: float = 5.0) -> None:
        self._connect_timeout = connect_timeout
        self._loop: asyncio.AbstractEventLoop | None = None
        self._loop_thread: threading.Thread | None = None
        self._lock = threading.Lock()

    def accepts_url(self, url: str) -> bool:
        return url.startswith(URL_PREFIXES)

    def connect(self, url: str, properties: Mapping[str, str]) -> "AsyncpgConnection | None":
        if not self.accepts_url(url):
            return None
        kwargs: dict[str, Any] = {
            "dsn": url,
            "timeout": float(properties.get("timeout", self._connect_timeout)),
        }
        if properties.get("user"):
            kwargs["user"] = properties["user"]
        if properties.get("password"):
            kwargs["password"] = properties["password"]
        if properties.get("application_name"):
            kwargs["server_settings"] = {"application_name": properties["application_name"]}
        raw = self.run(asyncpg.connect(**kwargs))
        return AsyncpgConnection(self, raw)

    def run(self, coro: Coroutine[Any, Any, T]) -> T:
        """Run ``coro`` on the driver loop and wait for its result."""

        loop = self._ensure_loop()
        future = asyncio.run_coroutine_threadsafe(coro, loop)
        return future.result()

    def shutdown(self) -> None:
        """Stop the background event loop."""

        with self._lock:
            loop, thread = self._loop, self._loop_thread
            self._loop = None
            self._loop_thread = None
        if loop is None or not loop.is_running():
            return
        loop.call_soon_threadsafe(loop.stop)
        if thread is not None:
            thread.join(timeout=1)

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._loop is None:
                self._loop = asyncio.new_event_loop()
                self._loop_thread = threading.Thread(
                    target=self._loop.run_forever,
                    name="sqlsession-asyncpg-driver",
                    daemon=True,
                )
                self._loop_thread.start()
            return self._loop


class AsyncpgConnection:
    """Blocking connection facade over an ``asyncpg.Connection``."""

    def __init__(self, driver: AsyncpgDriver, raw: Any) -> None:
        self._driver = driver
        self._raw = raw
        self._transaction: Any = None
        self._warnings: list[str] = []
        raw.add_log_listener(self._on_notice)

    def get_metadata(self) -> "AsyncpgMetadata":
        return AsyncpgMetadata(self)

    def get_catalog(self) -> str | None:
        return self.fetchval("SELECT current_database()")

    def get_schema(self) -> str | None:
        return self.fetchval("SELECT current_schema()")

    def set_auto_commit(self, enabled: bool) -> None:
        if enabled:
            if self._transaction is not None:
                transaction, self._transaction = self._transaction, None
                self._driver.run(transaction.commit())
            return
        if self._transaction is None:
            transaction = self._raw.transaction()
            self._driver.run(transaction.start())
            self._transaction = transaction

    def get_auto_commit(self) -> bool:
        return self._transaction is None

    def set_transaction_isolation(self, level: int) -> None:
        try:
            clause = _ISOLATION_SQL[level]
        except KeyError:
            raise NotSupportedError(f"Unsupported isolation level {level}.") from None
        if self._transaction is not None:
            # Session characteristics only apply from the next transaction on.
            self._driver.run(self._raw.execute(f"SET TRANSACTION ISOLATION LEVEL {clause}"))
        self._driver.run(
            self._raw.execute(f"SET SESSION CHARACTERISTICS AS TRANSACTION ISOLATION LEVEL {clause}")
        )

    def get_warnings(self) -> Sequence[str]:
        warnings, self._warnings = self._warnings, []
        return tuple(warnings)

    def is_closed(self) -> bool:
        return bool(self._raw.is_closed())

    def close(self) -> None:
        self._transaction = None
        self._driver.run(self._raw.close())

    def fetchval(self, query: str, *args: Any) -> Any:
        return self._driver.run(self._raw.fetchval(query, *args))

    def fetch(self, query: str, *args: Any) -> list[Any]:
        return list(self._driver.run(self._raw.fetch(query, *args)))

    def _on_notice(self, _connection: Any, message: Any) -> None:
        self._warnings.append(str(getattr(message, "message", message)))


class AsyncpgMetadata:
    """Metadata answered from ``information_schema`` and server functions."""

    def __init__(self, connection: AsyncpgConnection) -> None:
        self._connection = connection

    def get_identifier_quote_string(self) -> str:
        return '"'

    def get_database_product_name(self) -> str:
        return "PostgreSQL"

    def get_database_product_version(self) -> str:
        return str(self._connection.fetchval("SHOW server_version"))

    def get_sql_keywords(self) -> str:
        rows = self._connection.fetch(_KEYWORDS_QUERY)
        return ",".join(str(row["word"]).upper() for row in rows)

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
        rows = self._connection.fetch(
            _TABLES_QUERY,
            catalog,
            schema_pattern or "%",
            table_name_pattern or "%",
            wanted,
        )
        return [
            {
                "TABLE_CAT": row["table_catalog"],
                "TABLE_SCHEM": row["table_schema"],
                "TABLE_NAME": row["table_name"],
                "TABLE_TYPE": "TABLE" if row["table_type"] == "BASE TABLE" else row["table_type"],
            }
            for row in rows
        ]

    def get_columns(
        self,
        catalog: str | None,
        schema_pattern: str | None,
        table_name_pattern: str,
        column_name_pattern: str,
    ) -> list[MetadataRow]:
        rows = self._connection.fetch(
            _COLUMNS_QUERY,
            catalog,
            schema_pattern or "%",
            table_name_pattern or "%",
            column_name_pattern or "%",
        )
        return [
            {
                "TABLE_SCHEM": row["table_schema"],
                "TABLE_NAME": row["table_name"],
                "COLUMN_NAME": row["column_name"],
                "TYPE_NAME": row["data_type"],
                "ORDINAL_POSITION": row["ordinal_position"],
                "IS_NULLABLE": row["is_nullable"],
            }
            for row in rows
        ]

    def get_primary_keys(self, catalog: str | None, schema: str | None, table: str) -> list[MetadataRow]:
        rows = self._connection.fetch(_PRIMARY_KEYS_QUERY, catalog, schema, table)
        return [
            {
                "TABLE_SCHEM": row["table_schema"],
                "TABLE_NAME": row["table_name"],
                "COLUMN_NAME": row["column_name"],
                "KEY_SEQ": row["ordinal_position"],
            }
            for row in rows
        ]


__all__ = ["AsyncpgConnection", "AsyncpgDriver", "AsyncpgMetadata"]
