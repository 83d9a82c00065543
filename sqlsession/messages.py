"""User-facing message templates keyed by message id."""

from __future__ import annotations

MESSAGES: dict[str, str] = {
    "autoloading-known-drivers": "No known driver to handle \"{0}\". Searching for known drivers...",
    "connected": "Connected to: {0} (version {1})",
    "driver": "Driver: {0} (version {1})",
    "closing": "Closing: {0}",
    "autocommit-status": "Autocommit status: {0}",
    "no-driver": "No suitable driver found for {0}",
    "connect-failed": "Could not connect to {0}: {1}",
    "warning": "Warning: {0}",
    "unsupported-quote": "Identifier quote string is '{0}'; quote strings longer than 1 char are not supported",
}


def format_message(key: str, *args: object) -> str:
    """Render the template for ``key``; unknown keys render the raw arguments."""

    template = MESSAGES.get(key)
    if template is None:
        return " ".join([key, *(str(arg) for arg in args)])
    return template.format(*args)


__all__ = ["MESSAGES", "format_message"]
