"""Tests for the schema cache."""

from __future__ import annotations

from sqlsession.drivers import DriverRegistry
from sqlsession.schema import Column, Table
from sqlsession.session import DatabaseSession


def _connected(driver, shell) -> DatabaseSession:  # type: ignore[no-untyped-def]
    registry = DriverRegistry([driver], known_drivers=(), entry_point_group=None)
    session = DatabaseSession("db://test", shell=shell, registry=registry)
    session.connect()
    return session


def test_tables_are_queried_once_and_cached(make_driver, make_metadata, shell) -> None:
    metadata = make_metadata(tables=("orders", "accounts"))
    session = _connected(make_driver("db://", metadata=lambda: metadata), shell)

    first = session.get_tables()
    metadata.tables.append("payments")
    second = session.get_tables()

    assert first is second
    assert [table.name for table in second] == ["orders", "accounts"]
    assert metadata.table_queries == [("main", None, "%", ("TABLE",))]


def test_force_reloads_tables(make_driver, make_metadata, shell) -> None:
    metadata = make_metadata(tables=("orders",))
    session = _connected(make_driver("db://", metadata=lambda: metadata), shell)

    session.get_tables()
    metadata.tables.append("payments")

    assert [table.name for table in session.get_tables(force=True)] == ["orders", "payments"]
    assert session.get_table_names() == ["orders", "payments"]


def test_table_names_are_sorted_and_unique(make_driver, make_metadata, shell) -> None:
    metadata = make_metadata(tables=("orders", "Accounts", "orders", "accounts"))
    session = _connected(make_driver("db://", metadata=lambda: metadata), shell)

    names = session.get_table_names()

    assert names == ["Accounts", "accounts", "orders"]
    assert len(session.get_tables()) == 4
    assert set(names) == {table.name for table in session.get_tables()}


def test_get_table_is_case_insensitive_and_returns_first_match(make_driver, make_metadata, shell) -> None:
    metadata = make_metadata(tables=("foo", "FOO", "bar"))
    session = _connected(make_driver("db://", metadata=lambda: metadata), shell)
    tables = session.get_tables()

    assert session.get_table("Foo") is tables[0]
    assert session.get_table("FOO") is tables[0]
    assert session.get_table("BAR") is tables[2]
    assert session.get_table("baz") is None


def test_table_query_failure_yields_empty_list(make_driver, make_metadata, shell) -> None:
    metadata = make_metadata(fail=("get_tables",))
    session = _connected(make_driver("db://", metadata=lambda: metadata), shell)

    assert session.get_tables() == []
    assert session.get_table_names() == []


def test_catalog_failure_yields_empty_list(make_driver, shell) -> None:
    session = _connected(make_driver("db://", connection_fail=("get_catalog",)), shell)

    assert session.get_tables() == []


def test_schema_is_lazily_allocated_and_replaced_after_close(make_driver, shell) -> None:
    session = _connected(make_driver("db://"), shell)

    schema = session.schema
    assert session.schema is schema
    session.get_tables()

    session.close()

    assert session.schema is not schema


def test_schema_access_connects_on_demand(make_driver, shell) -> None:
    driver = make_driver("db://")
    registry = DriverRegistry([driver], known_drivers=(), entry_point_group=None)
    session = DatabaseSession("db://test", shell=shell, registry=registry)

    names = session.get_table_names()

    assert names == ["accounts", "orders"]
    assert session.is_connected
    assert shell.rebuilds == 1


def test_tables_cached_while_disconnected_reload_after_reconnect(make_driver, make_registry, shell) -> None:
    registry = make_registry()
    session = DatabaseSession("db://test", shell=shell, registry=registry)

    assert session.get_table_names() == []
    assert session.get_table_names() == []
    assert registry.autoload_calls == 1

    registry.register(make_driver("db://"))
    session.reconnect()

    assert session.is_connected
    assert session.get_table_names() == ["accounts", "orders"]


def test_tables_cached_while_disconnected_reload_after_connect(make_driver, make_registry, shell) -> None:
    registry = make_registry()
    session = DatabaseSession("db://test", shell=shell, registry=registry)
    assert session.get_tables() == []

    registry.register(make_driver("db://"))
    session.close()
    session.connect()

    assert session.get_table_names() == ["accounts", "orders"]


def test_tables_start_without_columns(make_driver, shell) -> None:
    session = _connected(make_driver("db://"), shell)

    assert all(table.columns is None for table in session.get_tables())


def test_load_columns_marks_primary_keys(make_driver, make_metadata, shell) -> None:
    metadata = make_metadata(
        tables=("accounts",),
        columns={"accounts": ("id", "email")},
        primary_keys={"accounts": ("id",)},
    )
    session = _connected(make_driver("db://", metadata=lambda: metadata), shell)
    table = session.get_table("accounts")
    assert table is not None

    columns = session.schema.load_columns(table)

    assert columns == [Column("id", True), Column("email", False)]
    assert table.columns is columns
    assert session.schema.load_columns(table) is columns


def test_load_columns_failure_leaves_empty_list(make_driver, make_metadata, shell) -> None:
    metadata = make_metadata(tables=("accounts",), fail=("get_primary_keys",))
    session = _connected(make_driver("db://", metadata=lambda: metadata), shell)

    table = Table("accounts")

    assert session.schema.load_columns(table) == []
    assert table.columns == []
