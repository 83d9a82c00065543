"""Lazily populated cache of the tables and columns visible to a session."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .session import DatabaseSession

LOG = logging.getLogger(__name__)

TABLE_TYPES = ("TABLE",)


@dataclass(slots=True)
class Column:
    """A table column as reported by the driver."""

    name: str
    is_primary_key: bool = False


@dataclass(slots=True)
class Table:
    """A table; ``columns`` stays ``None`` until explicitly loaded."""

    name: str
    columns: list[Column] | None = None


class Schema:
    """Read-through cache of a session's tables.

    The table list is fetched on first access and kept until the owning
    session closes or reconnects, at which point the session drops this
    object and allocates a fresh one on the next access. Lookup failures are
    never raised: callers feed completion and display features that must keep
    working against a broken or missing connection.
    """

    def __init__(self, session: "DatabaseSession") -> None:
        self._session = session
        self._tables: list[Table] | None = None
        self._loaded_for: object | None = None
        self._loading = False

    def get_tables(self, force: bool = False) -> list[Table]:
        """Return cached tables; ``force`` reloads them from the driver.

        The cache belongs to the connection it was loaded against; once the
        session holds a different connection (or none) it is reloaded.
        """

        if self._tables is not None and not force:
            if self._loading or self._session.connection is self._loaded_for:
                return self._tables
        # Published before loading so re-entrant calls made while the
        # connection is being opened see the (still empty) list.
        tables: list[Table] = []
        self._tables = tables
        self._loading = True
        try:
            tables.extend(self._load_tables())
        finally:
            self._loading = False
            self._loaded_for = self._session.connection
        return tables

    def get_table(self, name: str) -> Table | None:
        """First table whose name matches ``name`` case-insensitively."""

        folded = name.casefold()
        for table in self.get_tables():
            if table.name.casefold() == folded:
                return table
        return None

    def load_columns(self, table: Table, force: bool = False) -> list[Column]:
        """Populate ``table.columns`` from the driver (best effort)."""

        if table.columns is not None and not force:
            return table.columns
        try:
            connection = self._session.get_connection()
            metadata = self._session.metadata
            if connection is None or metadata is None:
                table.columns = []
                return table.columns
            catalog = connection.get_catalog()
            keys = {
                row["COLUMN_NAME"]
                for row in metadata.get_primary_keys(catalog, None, table.name)
            }
            table.columns = [
                Column(name=row["COLUMN_NAME"], is_primary_key=row["COLUMN_NAME"] in keys)
                for row in metadata.get_columns(catalog, None, table.name, "%")
            ]
        except Exception as exc:
            LOG.debug("Column lookup failed", extra={"table": table.name, "error": str(exc)})
            table.columns = []
        return table.columns

    def _load_tables(self) -> list[Table]:
        try:
            connection = self._session.get_connection()
            metadata = self._session.metadata
            if connection is None or metadata is None:
                return []
            rows = metadata.get_tables(connection.get_catalog(), None, "%", TABLE_TYPES)
            return [Table(name=row["TABLE_NAME"]) for row in rows]
        except Exception as exc:
            LOG.debug("Table lookup failed", extra={"url": self._session.url, "error": str(exc)})
            return []


__all__ = ["Column", "Schema", "Table"]
