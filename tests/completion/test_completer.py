"""Tests for the session-aware completion service."""

from __future__ import annotations

import time

import anyio
import pytest

from sqlsession.completion import (
    MAX_SUGGESTIONS,
    Clause,
    KeywordCatalog,
    SqlCompleter,
    SuggestionType,
    quote_if_needed,
)
from sqlsession.dialect import Dialect
from sqlsession.drivers import DriverRegistry
from sqlsession.session import DatabaseSession


def _session(make_driver, make_metadata, shell, **metadata_options) -> DatabaseSession:  # type: ignore[no-untyped-def]
    metadata_options.setdefault("upper", False)
    metadata_options.setdefault("tables", ("accounts", "Order Items"))
    metadata_options.setdefault("columns", {"accounts": ("id", "email")})
    metadata_options.setdefault("primary_keys", {"accounts": ("id",)})
    driver = make_driver("db://", metadata=lambda: make_metadata(**metadata_options))
    registry = DriverRegistry([driver], known_drivers=(), entry_point_group=None)
    session = DatabaseSession("db://test", shell=shell, registry=registry)
    session.connect()
    return session


@pytest.mark.anyio
async def test_analyze_extracts_clause_tables_and_columns() -> None:
    sql = "SELECT account_id FROM public.orders WHERE account_id = 1"
    completer = SqlCompleter()

    analysis = await completer.analyze(sql, len(sql))

    assert analysis.clause is Clause.WHERE
    assert "public.orders" in analysis.tables
    assert {column.split(".")[-1] for column in analysis.columns} == {"account_id"}


@pytest.mark.anyio
async def test_empty_buffer_defaults_to_any_clause() -> None:
    analysis = await SqlCompleter().analyze("", 0)

    assert analysis.clause is Clause.ANY
    assert analysis.tables == ()


@pytest.mark.anyio
async def test_unparsed_statements_still_report_tables() -> None:
    sql = "SELECT * FROM accounts a JOIN orders ON "
    analysis = await SqlCompleter().analyze(sql, len(sql))

    assert "accounts" in analysis.tables
    assert "orders" in analysis.tables


@pytest.mark.anyio
async def test_from_clause_suggests_session_tables(make_driver, make_metadata, shell) -> None:  # type: ignore[no-untyped-def]
    session = _session(make_driver, make_metadata, shell)
    completer = session.set_completions()
    sql = "SELECT * FROM "

    suggestions = await completer.suggest(sql, len(sql))

    tables = {item.label: item.insert_text for item in suggestions if item.type is SuggestionType.TABLE}
    assert tables == {"accounts": "accounts", "Order Items": '"Order Items"'}
    assert session.completer is completer


@pytest.mark.anyio
async def test_columns_of_referenced_tables_are_suggested(make_driver, make_metadata, shell) -> None:  # type: ignore[no-untyped-def]
    session = _session(make_driver, make_metadata, shell)
    completer = SqlCompleter.for_session(session)
    sql = "SELECT * FROM accounts WHERE "

    suggestions = await completer.suggest(sql, len(sql))

    columns = {item.label: item.detail for item in suggestions if item.type is SuggestionType.COLUMN}
    assert columns == {"id": "accounts column (primary key)", "email": "accounts column"}


@pytest.mark.anyio
async def test_prefix_filters_suggestions(make_driver, make_metadata, shell) -> None:  # type: ignore[no-untyped-def]
    session = _session(make_driver, make_metadata, shell)
    completer = SqlCompleter.for_session(session)

    suggestions = await completer.suggest("QUAL", 4)

    assert [item.label for item in suggestions] == ["QUALIFY"]
    assert suggestions[0].detail == "FakeDB keyword"


@pytest.mark.anyio
async def test_skip_meta_leaves_only_keywords(make_driver, make_metadata, shell) -> None:  # type: ignore[no-untyped-def]
    session = _session(make_driver, make_metadata, shell)
    completer = SqlCompleter.for_session(session, skip_meta=True)
    sql = "SELECT * FROM "

    suggestions = await completer.suggest(sql, len(sql))

    assert not completer.uses_metadata
    assert all(item.type is SuggestionType.KEYWORD for item in suggestions)


@pytest.mark.anyio
async def test_suggestions_are_capped() -> None:
    dialect = Dialect.create([f"KW{index:03d}" for index in range(200)], '"', "FakeDB", True)
    completer = SqlCompleter(keyword_catalog=KeywordCatalog.from_dialect(dialect))

    suggestions = await completer.suggest("", 0)

    assert len(suggestions) == MAX_SUGGESTIONS
    assert suggestions[0].label == "SELECT"


def test_catalog_from_dialect_adds_database_keywords() -> None:
    dialect = Dialect.create(["merge", "SELECT"], '"', "FakeDB", True)

    catalog = KeywordCatalog.from_dialect(dialect)

    assert len(catalog) == len(KeywordCatalog.default()) + 1
    labels = [item.label for item in catalog.suggestions_for(Clause.ANY)]
    assert "MERGE" in labels
    assert labels.count("SELECT") == 1
    assert len(KeywordCatalog.from_dialect(None)) == len(KeywordCatalog.default())


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("accounts", "accounts"),
        ("Accounts", '"Accounts"'),
        ("order items", '"order items"'),
        ("merge", '"merge"'),
    ],
)
def test_quote_if_needed(name: str, expected: str) -> None:
    dialect = Dialect.create(["MERGE"], '"', "FakeDB", False)

    assert quote_if_needed(name, dialect) == expected
    assert quote_if_needed(name, None) == name


@pytest.mark.anyio
async def test_schema_lookups_keep_the_event_loop_responsive(make_driver, make_metadata, shell) -> None:  # type: ignore[no-untyped-def]
    class _SlowMetadata(make_metadata):  # type: ignore[misc, valid-type]
        def get_tables(self, *args):  # type: ignore[no-untyped-def, override]
            time.sleep(0.3)
            return super().get_tables(*args)

    session = _session(make_driver, _SlowMetadata, shell)
    completer = SqlCompleter.for_session(session)
    sql = "SELECT * FROM "
    ticks = 0

    async def _tick() -> None:
        nonlocal ticks
        while True:
            await anyio.sleep(0.02)
            ticks += 1

    async with anyio.create_task_group() as group:
        group.start_soon(_tick)
        suggestions = await completer.suggest(sql, len(sql))
        group.cancel_scope.cancel()

    assert ticks >= 5
    assert "accounts" in {item.label for item in suggestions if item.type is SuggestionType.TABLE}
