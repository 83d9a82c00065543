"""Connection session layer for interactive SQL shells."""

from __future__ import annotations

from .config import AppConfig, ConnectionProfileConfig, SessionOptions, load_config
from .dialect import Dialect, build_dialect
from .drivers import DriverLoadError, DriverNotFoundError, DriverRegistry, GuardedMetadata, default_registry
from .schema import Column, Schema, Table
from .session import DatabaseSession, SessionConnectError, SessionError
from .shell import LoggingShell, ShellServices

__version__ = "0.1.0"

__all__ = [
    "AppConfig",
    "Column",
    "ConnectionProfileConfig",
    "DatabaseSession",
    "Dialect",
    "DriverLoadError",
    "DriverNotFoundError",
    "DriverRegistry",
    "GuardedMetadata",
    "LoggingShell",
    "Schema",
    "SessionConnectError",
    "SessionError",
    "SessionOptions",
    "ShellServices",
    "Table",
    "__version__",
    "build_dialect",
    "default_registry",
    "load_config",
]
