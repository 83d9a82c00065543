"""Completion service coordinating parsing and suggestion ranking."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Iterable

from sqlglot import exp, parse_one
from sqlglot.errors import ParseError

from .catalog import KeywordCatalog
from .metadata import MetadataProvider, SchemaMetadataProvider
from .models import AnalysisResult, Clause, Suggestion

if TYPE_CHECKING:
    from ..session import DatabaseSession

MAX_SUGGESTIONS = 50


class SqlCompleter:
    """Facade that wraps sqlglot parsing and feeds the shell with completions."""

    def __init__(
        self,
        metadata_provider: MetadataProvider | None = None,
        keyword_catalog: KeywordCatalog | None = None,
        *,
        dialect: str | None = None,
    ) -> None:
        self._metadata = metadata_provider
        self._keywords = keyword_catalog or KeywordCatalog.default()
        self._dialect = dialect

    @classmethod
    def for_session(cls, session: "DatabaseSession", *, skip_meta: bool = False) -> "SqlCompleter":
        """Build a completer from the session's dialect and, unless skipped, its schema."""

        dialect = session.dialect
        return cls(
            None if skip_meta else SchemaMetadataProvider(session),
            KeywordCatalog.from_dialect(dialect),
            dialect=dialect.sqlglot_dialect if dialect else None,
        )

    @property
    def dialect(self) -> str | None:
        return self._dialect

    @property
    def keywords(self) -> KeywordCatalog:
        return self._keywords

    @property
    def uses_metadata(self) -> bool:
        return self._metadata is not None

    async def analyze(self, buffer: str, cursor: int) -> AnalysisResult:
        """Parse the buffer and derive structural context."""

        clause = _detect_clause(buffer, cursor)
        stripped = buffer.strip()
        ast: exp.Expression | None = None
        errors: list[str] = []
        tables: tuple[str, ...] = ()
        columns: tuple[str, ...] = ()
        if stripped:
            try:
                ast = parse_one(stripped, read=self._dialect)
            except ParseError as exc:
                errors.append(str(exc).strip())
            else:
                tables = tuple(_collect_tables(ast))
                columns = tuple(_collect_columns(ast))
        if not tables:
            tables = tuple(_scan_tables(buffer[:cursor]))

        return AnalysisResult(
            buffer=buffer,
            cursor=cursor,
            clause=clause,
            tables=tables,
            columns=columns,
            ast=ast,
            errors=tuple(errors),
        )

    async def suggest(self, buffer: str, cursor: int) -> list[Suggestion]:
        """Return ordered suggestions for the current cursor location."""

        analysis = await self.analyze(buffer, cursor)
        return await self.suggestions_from_analysis(analysis)

    async def suggestions_from_analysis(self, analysis: AnalysisResult) -> list[Suggestion]:
        """Return suggestions using a precomputed analysis result."""

        suggestions = self._keywords.suggestions_for(analysis.clause)
        if self._metadata is not None:
            suggestions.extend(await self._metadata.suggestions_for(analysis))
        prefix = _word_before(analysis.buffer, analysis.cursor).upper()
        if prefix:
            suggestions = [item for item in suggestions if item.label.upper().startswith(prefix)]
        suggestions.sort(key=lambda item: (-item.score, item.label))
        return suggestions[:MAX_SUGGESTIONS]


_CLAUSE_TOKENS: dict[Clause, tuple[str, ...]] = {
    Clause.DELETE: ("DELETE FROM", "DELETE"),
    Clause.UPDATE: ("UPDATE",),
    Clause.INSERT: ("INSERT INTO", "INSERT"),
    Clause.SELECT: ("SELECT",),
    Clause.FROM: ("FROM", "JOIN"),
    Clause.WHERE: ("WHERE",),
    Clause.GROUP: ("GROUP BY",),
    Clause.HAVING: ("HAVING",),
    Clause.ORDER: ("ORDER BY",),
    Clause.LIMIT: ("LIMIT",),
}

_TABLE_REFERENCE = re.compile(r"\b(?:FROM|JOIN|UPDATE|INTO)\s+([\w.\"$]+)", re.IGNORECASE)
_TRAILING_WORD = re.compile(r"[\w$]+$")


def _detect_clause(buffer: str, cursor: int) -> Clause:
    search = buffer[:cursor].upper()
    if not search.strip():
        return Clause.ANY
    last_clause = Clause.ANY
    last_pos = -1
    for clause, tokens in _CLAUSE_TOKENS.items():
        for token in tokens:
            pos = _rfind_token(search, token)
            if pos > last_pos:
                last_pos = pos
                last_clause = clause
    return last_clause if last_pos >= 0 else Clause.ANY


def _rfind_token(haystack: str, needle: str) -> int:
    pattern = re.compile(rf"\b{re.escape(needle)}\b")
    match_pos = -1
    for match in pattern.finditer(haystack):
        match_pos = match.start()
    return match_pos


def _word_before(buffer: str, cursor: int) -> str:
    match = _TRAILING_WORD.search(buffer[:cursor])
    return match.group(0) if match else ""


def _scan_tables(text: str) -> Iterable[str]:
    # Fallback for statements that do not parse yet (the usual case mid-typing).
    seen: set[str] = set()
    for match in _TABLE_REFERENCE.finditer(text):
        label = match.group(1)
        if label.lower() not in seen:
            seen.add(label.lower())
            yield label


def _collect_tables(expression: exp.Expression) -> Iterable[str]:
    tables: list[str] = []
    seen: set[str] = set()
    for table in expression.find_all(exp.Table):
        schema = table.db
        name = table.name or ""
        label = f"{schema}.{name}" if schema else name
        norm = label.lower()
        if norm and norm not in seen:
            tables.append(label)
            seen.add(norm)
    return tables


def _collect_columns(expression: exp.Expression) -> Iterable[str]:
    columns: list[str] = []
    seen: set[str] = set()
    for column in expression.find_all(exp.Column):
        qualifier = column.table
        label = f"{qualifier}.{column.name}" if qualifier else column.name
        norm = label.lower()
        if norm and norm not in seen:
            columns.append(label)
            seen.add(norm)
    return columns


__all__ = ["MAX_SUGGESTIONS", "SqlCompleter"]
