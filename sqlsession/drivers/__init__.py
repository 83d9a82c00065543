"""Driver protocols, registry and built-in drivers."""

from __future__ import annotations

from .base import (
    Connection,
    DatabaseMetadata,
    Driver,
    NotSupportedError,
    TRANSACTION_NONE,
    TRANSACTION_READ_COMMITTED,
    TRANSACTION_READ_UNCOMMITTED,
    TRANSACTION_REPEATABLE_READ,
    TRANSACTION_SERIALIZABLE,
    parse_isolation,
)
from .guard import GuardedMetadata
from .registry import (
    DriverLoadError,
    DriverNotFoundError,
    DriverRegistry,
    default_registry,
)

__all__ = [
    "Connection",
    "DatabaseMetadata",
    "Driver",
    "DriverLoadError",
    "DriverNotFoundError",
    "DriverRegistry",
    "GuardedMetadata",
    "NotSupportedError",
    "TRANSACTION_NONE",
    "TRANSACTION_READ_COMMITTED",
    "TRANSACTION_READ_UNCOMMITTED",
    "TRANSACTION_REPEATABLE_READ",
    "TRANSACTION_SERIALIZABLE",
    "default_registry",
    "parse_isolation",
]
