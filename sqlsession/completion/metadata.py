"""Identifier suggestions served from a session's schema cache."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Protocol, Sequence

from anyio import to_thread

from ..dialect import Dialect
from .models import AnalysisResult, Clause, Suggestion, SuggestionType

if TYPE_CHECKING:
    from ..session import DatabaseSession

_PLAIN_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_$]*")

_TABLE_CLAUSES = {Clause.FROM, Clause.INSERT, Clause.UPDATE, Clause.DELETE}


class MetadataProvider(Protocol):
    """Protocol for services that surface identifier suggestions."""

    async def suggestions_for(self, analysis: AnalysisResult) -> Sequence[Suggestion]:
        """Return identifier suggestions tailored to the given analysis result."""


class SchemaMetadataProvider:
    """Table and column suggestions backed by :class:`~sqlsession.schema.Schema`.

    Tables come from the session's cached table list. Columns are loaded
    lazily, and only for the tables the statement already references. Cache
    misses hit the driver, so lookups run on a worker thread.
    """

    def __init__(self, session: "DatabaseSession") -> None:
        self._session = session

    async def suggestions_for(self, analysis: AnalysisResult) -> Sequence[Suggestion]:
        return await to_thread.run_sync(self._lookup, analysis)

    def _lookup(self, analysis: AnalysisResult) -> tuple[Suggestion, ...]:
        dialect = self._session.dialect
        if analysis.clause in _TABLE_CLAUSES:
            return tuple(
                Suggestion(
                    label=table.name,
                    detail="table",
                    type=SuggestionType.TABLE,
                    insert_text=quote_if_needed(table.name, dialect),
                    score=0.7,
                )
                for table in self._session.get_tables()
            )

        suggestions: list[Suggestion] = []
        seen: set[str] = set()
        for reference in analysis.tables:
            table = self._session.get_table(reference.split(".")[-1].replace('"', ""))
            if table is None or table.name in seen:
                continue
            seen.add(table.name)
            for column in self._session.schema.load_columns(table):
                detail = f"{table.name} column"
                if column.is_primary_key:
                    detail += " (primary key)"
                suggestions.append(
                    Suggestion(
                        label=column.name,
                        detail=detail,
                        type=SuggestionType.COLUMN,
                        insert_text=quote_if_needed(column.name, dialect),
                        score=0.65,
                    )
                )
        return tuple(suggestions)


def quote_if_needed(name: str, dialect: Dialect | None) -> str:
    """Quote ``name`` when it would not survive unquoted in ``dialect``."""

    if dialect is None:
        return name
    plain = (
        _PLAIN_IDENTIFIER.fullmatch(name) is not None
        and not dialect.is_keyword(name)
        and dialect.normalize_identifier(name) == name
    )
    return name if plain else dialect.quote_identifier(name)


__all__ = ["MetadataProvider", "SchemaMetadataProvider", "quote_if_needed"]
