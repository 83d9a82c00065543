"""Protocols shared by database drivers, connections and metadata handles."""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

MetadataRow = Mapping[str, Any]

TRANSACTION_NONE = 0
TRANSACTION_READ_UNCOMMITTED = 1
TRANSACTION_READ_COMMITTED = 2
TRANSACTION_REPEATABLE_READ = 4
TRANSACTION_SERIALIZABLE = 8

ISOLATION_LEVELS: dict[str, int] = {
    "TRANSACTION_NONE": TRANSACTION_NONE,
    "TRANSACTION_READ_UNCOMMITTED": TRANSACTION_READ_UNCOMMITTED,
    "TRANSACTION_READ_COMMITTED": TRANSACTION_READ_COMMITTED,
    "TRANSACTION_REPEATABLE_READ": TRANSACTION_REPEATABLE_READ,
    "TRANSACTION_SERIALIZABLE": TRANSACTION_SERIALIZABLE,
}


class NotSupportedError(RuntimeError):
    """Raised by drivers for optional features they do not implement."""


def parse_isolation(name: str) -> int:
    """Translate an isolation level name (``READ_COMMITTED`` etc.) to its constant."""

    key = name.strip().upper().replace(" ", "_")
    if not key.startswith("TRANSACTION_"):
        key = f"TRANSACTION_{key}"
    try:
        return ISOLATION_LEVELS[key]
    except KeyError:
        raise ValueError(f"Unknown isolation level '{name}'.") from None


@runtime_checkable
class DatabaseMetadata(Protocol):
    """Catalog/dialect information exposed by a live connection."""

    def get_identifier_quote_string(self) -> str: ...

    def get_database_product_name(self) -> str: ...

    def get_database_product_version(self) -> str: ...

    def get_sql_keywords(self) -> str:
        """Comma-separated keyword list."""

    def stores_upper_case_identifiers(self) -> bool: ...

    def get_driver_name(self) -> str: ...

    def get_driver_version(self) -> str: ...

    def get_tables(
        self,
        catalog: str | None,
        schema_pattern: str | None,
        table_name_pattern: str,
        types: Sequence[str] | None,
    ) -> Sequence[MetadataRow]:
        """Rows describing matching tables; each row carries ``TABLE_NAME``."""

    def get_columns(
        self,
        catalog: str | None,
        schema_pattern: str | None,
        table_name_pattern: str,
        column_name_pattern: str,
    ) -> Sequence[MetadataRow]:
        """Rows describing matching columns; each row carries ``COLUMN_NAME``."""

    def get_primary_keys(
        self,
        catalog: str | None,
        schema: str | None,
        table: str,
    ) -> Sequence[MetadataRow]:
        """Rows describing primary key columns; each row carries ``COLUMN_NAME``."""


@runtime_checkable
class Connection(Protocol):
    """Blocking connection handle returned by :meth:`Driver.connect`."""

    def get_metadata(self) -> DatabaseMetadata: ...

    def get_catalog(self) -> str | None: ...

    def get_schema(self) -> str | None: ...

    def set_auto_commit(self, enabled: bool) -> None: ...

    def get_auto_commit(self) -> bool: ...

    def set_transaction_isolation(self, level: int) -> None: ...

    def get_warnings(self) -> Sequence[str]:
        """Return and clear warnings accumulated since the last call."""

    def is_closed(self) -> bool: ...

    def close(self) -> None: ...


@runtime_checkable
class Driver(Protocol):
    """Opens connections for the addresses it accepts."""

    name: str
    version: str

    def accepts_url(self, url: str) -> bool: ...

    def connect(self, url: str, properties: Mapping[str, str]) -> Connection | None:
        """Open a connection; ``None`` means the driver does not handle ``url``."""


__all__ = [
    "Connection",
    "DatabaseMetadata",
    "Driver",
    "ISOLATION_LEVELS",
    "MetadataRow",
    "NotSupportedError",
    "TRANSACTION_NONE",
    "TRANSACTION_READ_COMMITTED",
    "TRANSACTION_READ_UNCOMMITTED",
    "TRANSACTION_REPEATABLE_READ",
    "TRANSACTION_SERIALIZABLE",
    "parse_isolation",
]
