"""Metadata wrapper that smooths over drivers with partial metadata support."""

from __future__ import annotations

import logging
from typing import Any, Callable, Sequence, TypeVar

from .base import DatabaseMetadata, MetadataRow, NotSupportedError

LOG = logging.getLogger(__name__)

T = TypeVar("T")

_UNSUPPORTED = (AttributeError, NotImplementedError, NotSupportedError)


class GuardedMetadata:
    """Forward metadata calls to a driver handle, defaulting optional ones.

    Drivers disagree about which metadata calls they implement and what they
    return for "not applicable". Calls listed here keep the same signature as
    :class:`~sqlsession.drivers.base.DatabaseMetadata`; optional calls fall back
    to an empty value when the driver does not implement them, and string
    results never come back as ``None``. ``get_database_product_name`` and
    ``get_tables`` are mandatory and propagate driver errors unchanged.
    """

    def __init__(self, raw: DatabaseMetadata) -> None:
        self._raw = raw

    @property
    def raw(self) -> DatabaseMetadata:
        """Underlying driver metadata handle."""

        return self._raw

    def get_identifier_quote_string(self) -> str:
        quote = self._optional("get_identifier_quote_string", "")
        # A blank quote string is how several drivers say "quoting unsupported".
        if quote is None or not str(quote).strip():
            return ""
        return str(quote)

    def get_database_product_name(self) -> str:
        return _text(self._raw.get_database_product_name())

    def get_database_product_version(self) -> str:
        return _text(self._optional("get_database_product_version", ""))

    def get_sql_keywords(self) -> str:
        return _text(self._optional("get_sql_keywords", ""))

    def stores_upper_case_identifiers(self) -> bool:
        return bool(self._optional("stores_upper_case_identifiers", False))

    def get_driver_name(self) -> str:
        return _text(self._optional("get_driver_name", ""))

    def get_driver_version(self) -> str:
        return _text(self._optional("get_driver_version", ""))

    def get_tables(
        self,
        catalog: str | None,
        schema_pattern: str | None,
        table_name_pattern: str,
        types: Sequence[str] | None,
    ) -> Sequence[MetadataRow]:
        rows = self._raw.get_tables(catalog, schema_pattern, table_name_pattern, types)
        return tuple(rows or ())

    def get_columns(
        self,
        catalog: str | None,
        schema_pattern: str | None,
        table_name_pattern: str,
        column_name_pattern: str,
    ) -> Sequence[MetadataRow]:
        rows = self._optional(
            "get_columns",
            (),
            catalog,
            schema_pattern,
            table_name_pattern,
            column_name_pattern,
        )
        return tuple(rows or ())

    def get_primary_keys(
        self,
        catalog: str | None,
        schema: str | None,
        table: str,
    ) -> Sequence[MetadataRow]:
        rows = self._optional("get_primary_keys", (), catalog, schema, table)
        return tuple(rows or ())

    def __getattr__(self, name: str) -> Any:
        # Only reached for attributes outside the guarded surface.
        return getattr(self._raw, name)

    def _optional(self, method: str, default: T, *args: Any) -> T:
        func: Callable[..., T] | None = getattr(self._raw, method, None)
        if func is None:
            LOG.debug("Metadata call not provided by driver", extra={"method": method})
            return default
        try:
            return func(*args)
        except _UNSUPPORTED as exc:
            LOG.debug(
                "Metadata call not supported by driver",
                extra={"method": method, "error": str(exc)},
            )
            return default


def _text(value: object) -> str:
    return "" if value is None else str(value)


__all__ = ["GuardedMetadata"]
