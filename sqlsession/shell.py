"""Shell-side services a session reports to and delegates to."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from .drivers.base import Connection, parse_isolation
from .messages import format_message

if TYPE_CHECKING:
    from .session import DatabaseSession

LOG = logging.getLogger(__name__)


@runtime_checkable
class ShellServices(Protocol):
    """Callbacks the interactive shell provides to a session."""

    def output(self, message: str) -> None:
        """Show an informational message."""

    def debug(self, message: str) -> None:
        """Show a diagnostic message (verbose mode only)."""

    def error(self, problem: str | BaseException) -> bool:
        """Report an error; always returns ``False`` so callers can ``return`` it."""

    def handle_exception(self, exc: BaseException) -> None:
        """Report an exception that was contained by the caller."""

    def isolation(self, connection: Connection, level: str) -> None:
        """Apply the configured transaction isolation level."""

    def autocommit_status(self, connection: Connection) -> None:
        """Report the connection's auto-commit mode."""

    def show_warnings(self, connection: Connection) -> None:
        """Surface driver warnings accumulated on ``connection``."""

    def rebuild_completions(self, session: "DatabaseSession") -> None:
        """Rebuild completion state after the session (re)connects."""


class LoggingShell:
    """Headless :class:`ShellServices` implementation that writes to ``logging``."""

    def __init__(self, logger: logging.Logger | None = None, *, skip_meta: bool = False) -> None:
        self._log = logger or LOG
        self._skip_meta = skip_meta

    def output(self, message: str) -> None:
        self._log.info(message)

    def debug(self, message: str) -> None:
        self._log.debug(message)

    def error(self, problem: str | BaseException) -> bool:
        if isinstance(problem, BaseException):
            self._log.error("%s", problem, exc_info=problem)
        else:
            self._log.error(problem)
        return False

    def handle_exception(self, exc: BaseException) -> None:
        self._log.error("%s: %s", type(exc).__name__, exc, exc_info=exc)

    def isolation(self, connection: Connection, level: str) -> None:
        connection.set_transaction_isolation(parse_isolation(level))
        self._log.debug("Transaction isolation set", extra={"isolation": level})

    def autocommit_status(self, connection: Connection) -> None:
        state = "true" if connection.get_auto_commit() else "false"
        self.output(format_message("autocommit-status", state))

    def show_warnings(self, connection: Connection) -> None:
        for warning in connection.get_warnings():
            self._log.warning(format_message("warning", warning))

    def rebuild_completions(self, session: "DatabaseSession") -> None:
        session.set_completions(skip_meta=self._skip_meta)


__all__ = ["LoggingShell", "ShellServices"]
