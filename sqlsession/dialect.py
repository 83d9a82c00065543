"""Dialect model derived from a connection's metadata."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable

from .drivers.base import DatabaseMetadata
from .messages import format_message

ErrorReporter = Callable[[str], object]

# Substrings of the reported product name mapped to sqlglot dialect names.
_SQLGLOT_DIALECTS: tuple[tuple[str, str], ...] = (
    ("postgres", "postgres"),
    ("sqlite", "sqlite"),
    ("mariadb", "mysql"),
    ("mysql", "mysql"),
    ("oracle", "oracle"),
    ("sql server", "tsql"),
    ("snowflake", "snowflake"),
    ("duckdb", "duckdb"),
    ("bigquery", "bigquery"),
    ("redshift", "redshift"),
    ("clickhouse", "clickhouse"),
    ("trino", "trino"),
    ("presto", "presto"),
    ("hive", "hive"),
    ("spark", "spark"),
    ("teradata", "teradata"),
)


@dataclass(frozen=True, slots=True)
class Dialect:
    """SQL surface of a connected database: keywords, quoting and case folding."""

    keywords: frozenset[str] = field(default_factory=frozenset)
    identifier_quote: str | None = None
    product_name: str = ""
    upper_case_identifiers: bool = False
    _folded_keywords: frozenset[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_folded_keywords", frozenset(word.upper() for word in self.keywords))

    @classmethod
    def create(
        cls,
        keywords: Iterable[str],
        identifier_quote: str | None,
        product_name: str,
        upper_case_identifiers: bool,
    ) -> "Dialect":
        cleaned = frozenset(word.strip() for word in keywords if word and word.strip())
        return cls(
            keywords=cleaned,
            identifier_quote=identifier_quote or None,
            product_name=product_name,
            upper_case_identifiers=upper_case_identifiers,
        )

    def is_keyword(self, word: str) -> bool:
        return word.upper() in self._folded_keywords

    def quote_identifier(self, name: str) -> str:
        """Quote ``name`` with the dialect quote character, if it has one."""

        quote = self.identifier_quote
        if not quote:
            return name
        return f"{quote}{name.replace(quote, quote * 2)}{quote}"

    def normalize_identifier(self, name: str) -> str:
        """Fold an unquoted identifier the way the database stores it."""

        return name.upper() if self.upper_case_identifiers else name.lower()

    @property
    def sqlglot_dialect(self) -> str | None:
        product = self.product_name.lower()
        for marker, name in _SQLGLOT_DIALECTS:
            if marker in product:
                return name
        return None


def build_dialect(metadata: DatabaseMetadata, report_error: ErrorReporter) -> Dialect:
    """Read dialect facts from ``metadata``; metadata failures propagate."""

    quote: str | None = metadata.get_identifier_quote_string()
    if quote and len(quote) > 1:
        report_error(format_message("unsupported-quote", quote))
        quote = None
    product_name = metadata.get_database_product_name()
    keywords = (metadata.get_sql_keywords() or "").split(",")
    return Dialect.create(
        keywords,
        quote,
        product_name,
        metadata.stores_upper_case_identifiers(),
    )


__all__ = ["Dialect", "build_dialect"]
