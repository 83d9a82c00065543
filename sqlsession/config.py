"""Session configuration models and TOML loading helpers."""

from __future__ import annotations

from pathlib import Path

import tomllib

from pydantic import BaseModel, Field, ValidationError, field_validator

from .drivers.base import parse_isolation

CONFIG_FILE = Path.home() / ".config" / "sqlsession" / "config.toml"


class SessionOptions(BaseModel):
    """Options applied to every connection a session opens."""

    auto_commit: bool = True
    isolation: str = "TRANSACTION_REPEATABLE_READ"
    skip_meta: bool = False

    @field_validator("isolation")
    @classmethod
    def _known_isolation(cls, value: str) -> str:
        parse_isolation(value)
        return value


class ConnectionProfileConfig(BaseModel):
    """Named connection target stored in config.toml."""

    name: str
    url: str
    driver: str | None = None
    user: str | None = None
    password: str | None = None
    properties: dict[str, str] = Field(default_factory=dict)


class AppConfig(BaseModel):
    """Shape of the configuration file."""

    options: SessionOptions = Field(default_factory=SessionOptions)
    profiles: list[ConnectionProfileConfig] = Field(default_factory=list)
    active_profile: str | None = None

    def profile(self, name: str) -> ConnectionProfileConfig:
        """Return the profile called ``name``."""

        for profile in self.profiles:
            if profile.name == name:
                return profile
        raise ValueError(f"Profile '{name}' not found.")

    def with_active_profile(self, name: str) -> AppConfig:
        """Return a copy with the active profile updated."""

        return self.model_copy(update={"active_profile": name})


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from disk; fall back to defaults if missing or invalid."""

    try:
        data = _read_config_file(path or CONFIG_FILE)
    except FileNotFoundError:
        return AppConfig()
    except (tomllib.TOMLDecodeError, OSError):
        return AppConfig()

    try:
        options = SessionOptions(**data.get("options", {}))
    except ValidationError:
        options = SessionOptions()
    profiles: list[ConnectionProfileConfig] = []
    for entry in data.get("profiles", []):
        try:
            profiles.append(ConnectionProfileConfig(**entry))
        except ValidationError:
            continue
    return AppConfig(
        options=options,
        profiles=profiles,
        active_profile=data.get("active_profile"),
    )


def _read_config_file(path: Path) -> dict[str, object]:
    with path.open("rb") as handle:
        raw = tomllib.load(handle)
    data: dict[str, object] = {}
    options = raw.get("options")
    if isinstance(options, dict):
        data["options"] = {
            key: value
            for key, value in options.items()
            if key in SessionOptions.model_fields
        }
    active_profile = raw.get("active_profile")
    if isinstance(active_profile, str):
        data["active_profile"] = active_profile
    profiles = raw.get("profiles")
    if isinstance(profiles, list):
        parsed_profiles: list[dict[str, object]] = []
        for profile in profiles:
            if not isinstance(profile, dict):
                continue
            parsed: dict[str, object] = {}
            for key in ("name", "url", "driver", "user", "password"):
                value = profile.get(key)
                if isinstance(value, str):
                    parsed[key] = value
            properties = profile.get("properties")
            if isinstance(properties, dict):
                parsed["properties"] = {str(key): str(value) for key, value in properties.items()}
            if parsed.get("name") and parsed.get("url"):
                parsed_profiles.append(parsed)
        data["profiles"] = parsed_profiles
    return data


__all__ = [
    "AppConfig",
    "CONFIG_FILE",
    "ConnectionProfileConfig",
    "SessionOptions",
    "load_config",
]
