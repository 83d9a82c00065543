"""Driver registry with load-by-name and known-driver autoloading."""

from __future__ import annotations

import importlib
import importlib.metadata as metadata
import inspect
import logging
from typing import Iterable

from .base import Driver

LOG = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "sqlsession.drivers"

KNOWN_DRIVERS: tuple[str, ...] = (
    "sqlsession.drivers.sqlite:SqliteDriver",
    "sqlsession.drivers.postgres:AsyncpgDriver",
)


class DriverNotFoundError(RuntimeError):
    """Raised when no registered driver accepts an address."""


class DriverLoadError(RuntimeError):
    """Raised when a named driver cannot be imported or constructed."""


class DriverRegistry:
    """Ordered collection of drivers probed by address.

    The registry is an explicit object so sessions can be handed an isolated
    instance; :func:`default_registry` returns the shared process-wide one.
    Known drivers are registered lazily, the first time
    :meth:`register_known_drivers` runs.
    """

    def __init__(
        self,
        drivers: Iterable[Driver] | None = None,
        *,
        known_drivers: Iterable[str] = KNOWN_DRIVERS,
        entry_point_group: str | None = ENTRY_POINT_GROUP,
    ) -> None:
        self._drivers: list[Driver] = []
        self._known_drivers = tuple(known_drivers)
        self._entry_point_group = entry_point_group
        self._known_registered = False
        for driver in drivers or ():
            self.register(driver)

    def register(self, driver: Driver) -> None:
        """Append a driver; registering the same instance twice is a no-op."""

        if any(existing is driver for existing in self._drivers):
            return
        self._drivers.append(driver)
        LOG.debug(
            "Driver registered",
            extra={"driver": type(driver).__name__, "driver_name": getattr(driver, "name", None)},
        )

    def deregister(self, driver: Driver) -> None:
        """Remove a driver if present."""

        self._drivers = [existing for existing in self._drivers if existing is not driver]

    def drivers(self) -> tuple[Driver, ...]:
        """Registered drivers in probe order."""

        return tuple(self._drivers)

    def get_driver(self, url: str) -> Driver | None:
        """Return the first registered driver accepting ``url``."""

        for driver in self._drivers:
            try:
                if driver.accepts_url(url):
                    return driver
            except Exception as exc:
                LOG.debug(
                    "Driver probe failed",
                    extra={"driver": type(driver).__name__, "error": str(exc)},
                )
        return None

    def load_driver(self, identifier: str) -> Driver:
        """Import ``pkg.module:Class`` (or ``pkg.module.Class``) and register it."""

        module_name, _, attr = identifier.partition(":")
        if not attr:
            module_name, _, attr = identifier.rpartition(".")
        if not module_name or not attr:
            raise DriverLoadError(f"Invalid driver identifier '{identifier}'.")
        try:
            module = importlib.import_module(module_name)
        except ImportError as exc:
            raise DriverLoadError(f"Cannot import driver module '{module_name}': {exc}") from exc
        target = getattr(module, attr, None)
        if target is None:
            raise DriverLoadError(f"Driver '{attr}' not found in module '{module_name}'.")
        return self._register_target(target, identifier)

    def register_known_drivers(self) -> list[Driver]:
        """Register built-in and entry-point drivers once; return those added."""

        if self._known_registered:
            return []
        self._known_registered = True
        added: list[Driver] = []
        for identifier in self._known_drivers:
            before = len(self._drivers)
            try:
                driver = self.load_driver(identifier)
            except DriverLoadError as exc:
                LOG.warning("Skipping known driver", extra={"driver": identifier, "error": str(exc)})
                continue
            if len(self._drivers) > before:
                added.append(driver)
        for entry_point in self._entry_points():
            before = len(self._drivers)
            try:
                driver = self._register_target(entry_point.load(), entry_point.name)
            except Exception as exc:
                LOG.warning(
                    "Skipping driver entry point",
                    extra={"entry_point": entry_point.name, "error": str(exc)},
                )
                continue
            if len(self._drivers) > before:
                added.append(driver)
        LOG.info("Known drivers registered", extra={"count": len(added)})
        return added

    def _register_target(self, target: object, identifier: str) -> Driver:
        if inspect.isclass(target):
            for existing in self._drivers:
                if type(existing) is target:
                    return existing
            try:
                driver = target()
            except Exception as exc:
                raise DriverLoadError(f"Cannot initialize driver '{identifier}': {exc}") from exc
        else:
            driver = target
        if not isinstance(driver, Driver):
            raise DriverLoadError(f"'{identifier}' does not implement the driver protocol.")
        self.register(driver)
        return driver

    def _entry_points(self) -> list[metadata.EntryPoint]:
        if not self._entry_point_group:
            return []
        group = metadata.entry_points().select(group=self._entry_point_group)
        return sorted(group, key=lambda ep: ep.name)


_DEFAULT_REGISTRY: DriverRegistry | None = None


def default_registry() -> DriverRegistry:
    """Process-wide registry used when a session is not given one."""

    global _DEFAULT_REGISTRY
    if _DEFAULT_REGISTRY is None:
        _DEFAULT_REGISTRY = DriverRegistry()
    return _DEFAULT_REGISTRY


__all__ = [
    "DriverLoadError",
    "DriverNotFoundError",
    "DriverRegistry",
    "ENTRY_POINT_GROUP",
    "KNOWN_DRIVERS",
    "default_registry",
]
