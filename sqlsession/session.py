"""Database session: one live connection plus its dialect and schema cache."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Generic, Mapping, TypeVar

from .config import ConnectionProfileConfig, SessionOptions
from .dialect import Dialect, build_dialect
from .drivers.base import Connection, Driver
from .drivers.guard import GuardedMetadata
from .drivers.registry import DriverLoadError, DriverNotFoundError, DriverRegistry, default_registry
from .messages import format_message
from .schema import Schema, Table
from .shell import LoggingShell, ShellServices

if TYPE_CHECKING:
    from .completion import SqlCompleter

LOG = logging.getLogger(__name__)

T = TypeVar("T")


class SessionError(RuntimeError):
    """Base class for session failures surfaced to the caller."""


class SessionConnectError(SessionError):
    """Raised when the resolved driver fails to open a connection."""


@dataclass(frozen=True, slots=True)
class Outcome(Generic[T]):
    """Result of a best-effort connect step: a value or the error it raised."""

    value: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def attempt(step: str, func: Callable[[], T]) -> Outcome[T]:
    """Run ``func`` and capture its result or exception as an :class:`Outcome`."""

    try:
        return Outcome(value=func())
    except Exception as exc:
        LOG.debug("Connect step failed", extra={"step": step, "error": str(exc)})
        return Outcome(error=exc)


class DatabaseSession:
    """Holds a database connection, its credentials and derived state.

    Construction performs no I/O. :meth:`connect` resolves a driver through the
    registry (autoloading known drivers when the first probe misses), opens
    the connection, wraps its metadata in :class:`GuardedMetadata` and derives
    the :class:`Dialect`. The session holds at most one connection: every
    connect closes the previous one first, and :meth:`close` always clears the
    handles even when the driver fails to close.

    A session is driven by a single caller at a time; it does no locking.
    """

    def __init__(
        self,
        url: str,
        driver: str | None = None,
        username: str | None = None,
        password: str | None = None,
        properties: Mapping[str, str] | None = None,
        *,
        shell: ShellServices | None = None,
        registry: DriverRegistry | None = None,
        options: SessionOptions | None = None,
        nickname: str | None = None,
    ) -> None:
        self._url = url
        self._driver_name = driver
        self._options = options or SessionOptions()
        self._shell = shell or LoggingShell(skip_meta=self._options.skip_meta)
        self._registry = registry or default_registry()
        self._info: dict[str, str] = dict(properties or {})
        if username is not None:
            self._info["user"] = username
        if password is not None:
            self._info["password"] = password
        self._nickname = nickname
        self._connection: Connection | None = None
        self._metadata: GuardedMetadata | None = None
        self._dialect: Dialect | None = None
        self._schema: Schema | None = None
        self._completer: SqlCompleter | None = None

    @classmethod
    def from_profile(cls, profile: ConnectionProfileConfig, **kwargs: object) -> "DatabaseSession":
        """Build a session for a configured connection profile."""

        kwargs.setdefault("nickname", profile.name)
        return cls(
            profile.url,
            profile.driver,
            profile.user,
            profile.password,
            profile.properties,
            **kwargs,  # type: ignore[arg-type]
        )

    def __str__(self) -> str:
        return self._url

    def __repr__(self) -> str:
        state = "connected" if self.is_connected else "disconnected"
        return f"<DatabaseSession {self._url!r} {state}>"

    @property
    def url(self) -> str:
        return self._url

    @property
    def nickname(self) -> str | None:
        return self._nickname

    @nickname.setter
    def nickname(self, value: str | None) -> None:
        self._nickname = value

    @property
    def options(self) -> SessionOptions:
        return self._options

    @property
    def connection(self) -> Connection | None:
        """Live connection handle, without connecting."""

        return self._connection

    @property
    def metadata(self) -> GuardedMetadata | None:
        """Guarded metadata of the live connection."""

        return self._metadata

    @property
    def dialect(self) -> Dialect | None:
        """Dialect of the live connection; may be ``None`` even when connected."""

        return self._dialect

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    @property
    def schema(self) -> Schema:
        """Schema cache, allocated on first access."""

        if self._schema is None:
            self._schema = Schema(self)
        return self._schema

    @property
    def completer(self) -> "SqlCompleter | None":
        """Completion service built by :meth:`set_completions`."""

        return self._completer

    def connect(self) -> bool:
        """Open a connection for the configured address.

        Returns ``False`` when the named driver cannot be loaded. Raises
        :class:`DriverNotFoundError` when no driver accepts the address and
        :class:`SessionConnectError` when the driver fails to connect; in both
        cases the session is left disconnected. Failures after the connection
        is open are reported to the shell and do not fail the connect.
        """

        if self._driver_name:
            try:
                self._registry.load_driver(self._driver_name)
            except DriverLoadError as exc:
                return self._shell.error(exc)

        driver = self._resolve_driver()
        self.close()
        if driver is None:
            raise DriverNotFoundError(format_message("no-driver", self._url))

        self._open(driver)
        connection = self._connection
        metadata = self._metadata
        assert connection is not None and metadata is not None

        self._report(
            attempt(
                "connected",
                lambda: format_message(
                    "connected",
                    metadata.get_database_product_name(),
                    metadata.get_database_product_version(),
                ),
            ),
            self._shell.debug,
        )
        self._report(
            attempt(
                "driver",
                lambda: format_message(
                    "driver",
                    metadata.get_driver_name(),
                    metadata.get_driver_version(),
                ),
            ),
            self._shell.debug,
        )
        self._report(attempt("auto-commit", lambda: self._apply_auto_commit(connection)))
        self._report(
            attempt("isolation", lambda: self._shell.isolation(connection, self._options.isolation))
        )
        dialect = attempt("dialect", lambda: build_dialect(metadata, self._shell.error))
        self._report(dialect)
        if dialect.ok:
            self._dialect = dialect.value
        self._report(attempt("warnings", lambda: self._shell.show_warnings(connection)))
        LOG.info(
            "Session connected",
            extra={"url": self._url, "driver": type(driver).__name__, "dialect": dialect.ok},
        )
        return True

    def get_connection(self) -> Connection | None:
        """Return the live connection, connecting first if there is none."""

        if self._connection is not None:
            return self._connection
        if self.connect():
            self._shell.rebuild_completions(self)
        return self._connection

    def reconnect(self) -> Connection | None:
        """Close and reopen the connection; failures propagate."""

        self.close()
        return self.get_connection()

    def close(self) -> None:
        """Close the live connection; handles are cleared on every path."""

        connection = self._connection
        try:
            if connection is not None and not connection.is_closed():
                self._shell.output(format_message("closing", type(connection).__name__))
                connection.close()
        except Exception as exc:
            self._shell.handle_exception(exc)
        finally:
            self._connection = None
            self._metadata = None
            self._dialect = None
            if connection is not None:
                self._schema = None
                self._completer = None

    def get_table_names(self, force: bool = False) -> list[str]:
        """Sorted, de-duplicated names of the cached tables."""

        return sorted({table.name for table in self.get_tables(force)})

    def get_tables(self, force: bool = False) -> list[Table]:
        return self.schema.get_tables(force)

    def get_table(self, name: str) -> Table | None:
        return self.schema.get_table(name)

    def current_schema(self) -> str | None:
        """Current schema of the live connection, or ``None`` on any failure."""

        connection = self._connection
        if connection is None:
            return None
        try:
            return connection.get_schema()
        except Exception as exc:
            LOG.debug("Current schema lookup failed", extra={"error": str(exc)})
            return None

    def set_completions(self, skip_meta: bool = False) -> "SqlCompleter":
        """Build the completion service for this session."""

        from .completion import SqlCompleter

        self._completer = SqlCompleter.for_session(self, skip_meta=skip_meta)
        return self._completer

    def _resolve_driver(self) -> Driver | None:
        driver = self._registry.get_driver(self._url)
        if driver is not None:
            return driver
        self._shell.output(format_message("autoloading-known-drivers", self._url))
        self._registry.register_known_drivers()
        return self._registry.get_driver(self._url)

    def _open(self, driver: Driver) -> None:
        # Connect through the driver instance rather than a shared, locked
        # connect path: drivers that probe the registry from another thread
        # while connecting would otherwise deadlock.
        try:
            connection = driver.connect(self._url, dict(self._info))
        except Exception as exc:
            raise SessionConnectError(format_message("connect-failed", self._url, exc)) from exc
        if connection is None:
            raise SessionConnectError(
                format_message("connect-failed", self._url, "driver returned no connection")
            )
        try:
            metadata = GuardedMetadata(connection.get_metadata())
        except Exception as exc:
            self._connection = connection
            self.close()
            raise SessionConnectError(format_message("connect-failed", self._url, exc)) from exc
        self._connection = connection
        self._metadata = metadata

    def _apply_auto_commit(self, connection: Connection) -> None:
        connection.set_auto_commit(self._options.auto_commit)
        self._shell.autocommit_status(connection)

    def _report(self, outcome: Outcome[T], on_value: Callable[[T], object] | None = None) -> None:
        if not outcome.ok:
            assert outcome.error is not None
            self._shell.handle_exception(outcome.error)
        elif on_value is not None and outcome.value is not None:
            on_value(outcome.value)


__all__ = [
    "DatabaseSession",
    "Outcome",
    "SessionConnectError",
    "SessionError",
    "attempt",
]
