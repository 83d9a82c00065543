"""Shared fakes for driver, connection, metadata and shell collaborators."""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping, Sequence

import pytest

from sqlsession.drivers import DriverRegistry


class FakeMetadata:
    """Scriptable metadata handle; methods named in ``fail`` raise ``RuntimeError``."""

    def __init__(
        self,
        *,
        quote: str | None = '"',
        product: str = "FakeDB",
        version: str = "1.0",
        keywords: str | None = "MERGE,QUALIFY,MERGE",
        upper: bool = True,
        tables: Sequence[str] = ("accounts", "orders"),
        columns: Mapping[str, Sequence[str]] | None = None,
        primary_keys: Mapping[str, Sequence[str]] | None = None,
        fail: Iterable[str] = (),
    ) -> None:
        self.quote = quote
        self.product = product
        self.version = version
        self.keywords = keywords
        self.upper = upper
        self.tables = list(tables)
        self.columns = dict(columns or {})
        self.primary_keys = dict(primary_keys or {})
        self.fail = set(fail)
        self.table_queries: list[tuple[Any, ...]] = []

    def _check(self, name: str) -> None:
        if name in self.fail:
            raise RuntimeError(f"{name} failed")

    def get_identifier_quote_string(self) -> str | None:
        self._check("get_identifier_quote_string")
        return self.quote

    def get_database_product_name(self) -> str:
        self._check("get_database_product_name")
        return self.product

    def get_database_product_version(self) -> str:
        self._check("get_database_product_version")
        return self.version

    def get_sql_keywords(self) -> str | None:
        self._check("get_sql_keywords")
        return self.keywords

    def stores_upper_case_identifiers(self) -> bool:
        self._check("stores_upper_case_identifiers")
        return self.upper

    def get_driver_name(self) -> str:
        self._check("get_driver_name")
        return "fake"

    def get_driver_version(self) -> str:
        self._check("get_driver_version")
        return "0.1"

    def get_tables(self, catalog, schema_pattern, table_name_pattern, types):  # type: ignore[no-untyped-def]
        self._check("get_tables")
        self.table_queries.append((catalog, schema_pattern, table_name_pattern, tuple(types or ())))
        return [{"TABLE_NAME": name} for name in self.tables]

    def get_columns(self, catalog, schema_pattern, table_name_pattern, column_name_pattern):  # type: ignore[no-untyped-def]
        self._check("get_columns")
        return [{"COLUMN_NAME": name} for name in self.columns.get(table_name_pattern, ())]

    def get_primary_keys(self, catalog, schema, table):  # type: ignore[no-untyped-def]
        self._check("get_primary_keys")
        return [{"COLUMN_NAME": name} for name in self.primary_keys.get(table, ())]


class FakeConnection:
    def __init__(self, metadata: FakeMetadata, *, fail: Iterable[str] = ()) -> None:
        self.metadata = metadata
        self.fail = set(fail)
        self.closed = False
        self.close_calls = 0
        self.auto_commit: bool | None = None
        self.isolation: int | None = None
        self.warnings: list[str] = []

    def _check(self, name: str) -> None:
        if name in self.fail:
            raise RuntimeError(f"{name} failed")

    def get_metadata(self) -> FakeMetadata:
        self._check("get_metadata")
        return self.metadata

    def get_catalog(self) -> str:
        self._check("get_catalog")
        return "main"

    def get_schema(self) -> str:
        self._check("get_schema")
        return "public"

    def set_auto_commit(self, enabled: bool) -> None:
        self._check("set_auto_commit")
        self.auto_commit = enabled

    def get_auto_commit(self) -> bool:
        return bool(self.auto_commit)

    def set_transaction_isolation(self, level: int) -> None:
        self._check("set_transaction_isolation")
        self.isolation = level

    def get_warnings(self) -> Sequence[str]:
        warnings, self.warnings = self.warnings, []
        return warnings

    def is_closed(self) -> bool:
        return self.closed

    def close(self) -> None:
        self.close_calls += 1
        self._check("close")
        self.closed = True


class FakeDriver:
    name = "fake"
    version = "0.1"

    def __init__(
        self,
        prefix: str = "db:",
        *,
        metadata: Callable[[], FakeMetadata] | None = None,
        connection_fail: Iterable[str] = (),
        error: Exception | None = None,
    ) -> None:
        self.prefix = prefix
        self._metadata = metadata or FakeMetadata
        self._connection_fail = tuple(connection_fail)
        self.error = error
        self.connections: list[FakeConnection] = []
        self.properties: list[Mapping[str, str]] = []

    def accepts_url(self, url: str) -> bool:
        return url.startswith(self.prefix)

    def connect(self, url: str, properties: Mapping[str, str]) -> FakeConnection | None:
        if not self.accepts_url(url):
            return None
        if self.error is not None:
            raise self.error
        self.properties.append(dict(properties))
        connection = FakeConnection(self._metadata(), fail=self._connection_fail)
        self.connections.append(connection)
        return connection


class CountingRegistry(DriverRegistry):
    """Registry whose known-driver fallback registers ``fallback`` drivers."""

    def __init__(self, drivers: Iterable[Any] = (), fallback: Iterable[Any] = ()) -> None:
        super().__init__(drivers, known_drivers=(), entry_point_group=None)
        self.fallback = list(fallback)
        self.autoload_calls = 0

    def register_known_drivers(self) -> list[Any]:
        self.autoload_calls += 1
        for driver in self.fallback:
            self.register(driver)
        return list(self.fallback)


class RecordingShell:
    def __init__(self, *, fail: Iterable[str] = ()) -> None:
        self.fail = set(fail)
        self.outputs: list[str] = []
        self.debugs: list[str] = []
        self.errors: list[str | BaseException] = []
        self.exceptions: list[BaseException] = []
        self.isolations: list[str] = []
        self.warnings: list[str] = []
        self.rebuilds = 0

    def output(self, message: str) -> None:
        self.outputs.append(message)

    def debug(self, message: str) -> None:
        self.debugs.append(message)

    def error(self, problem: str | BaseException) -> bool:
        self.errors.append(problem)
        return False

    def handle_exception(self, exc: BaseException) -> None:
        self.exceptions.append(exc)

    def isolation(self, connection: Any, level: str) -> None:
        if "isolation" in self.fail:
            raise RuntimeError("isolation failed")
        self.isolations.append(level)

    def autocommit_status(self, connection: Any) -> None:
        self.outputs.append(f"autocommit={connection.get_auto_commit()}")

    def show_warnings(self, connection: Any) -> None:
        self.warnings.extend(connection.get_warnings())

    def rebuild_completions(self, session: Any) -> None:
        self.rebuilds += 1


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def shell() -> RecordingShell:
    return RecordingShell()


@pytest.fixture
def make_metadata() -> type[FakeMetadata]:
    return FakeMetadata


@pytest.fixture
def make_driver() -> type[FakeDriver]:
    return FakeDriver


@pytest.fixture
def make_registry() -> type[CountingRegistry]:
    return CountingRegistry


@pytest.fixture
def make_shell() -> type[RecordingShell]:
    return RecordingShell
