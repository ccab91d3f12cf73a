"""Persistent CLI configuration: the active space and the list of known spaces."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import platformdirs
import tomli_w


class ConfigError(Exception):
    """Raised when the configuration cannot be located, read, parsed or written."""


@dataclass
class LegacyAuthConfig:
    """Old ``[auth] space_key = "..."`` section, read only for migration."""

    space_key: str


@dataclass
class Config:
    """CLI configuration.

    ``auth`` is only ever read from old files; it is never written back.
    """

    current_space: str | None = None
    spaces: list[str] = field(default_factory=list)
    auth: LegacyAuthConfig | None = None


def config_path() -> Path:
    """Return the location of the configuration file."""
    try:
        base = platformdirs.user_config_dir()
    except Exception as exc:  # pragma: no cover - platform specific
        raise ConfigError(f"Could not determine config directory: {exc}") from exc
    if not base:
        raise ConfigError("Could not determine config directory")
    return Path(base) / "bl" / "config.toml"


def load() -> Config:
    """Load the configuration from its default location, migrating old formats."""
    config = load_from(config_path())
    migrate(config)
    return config


def save(config: Config) -> None:
    """Write the configuration to its default location."""
    save_to(config_path(), config)


def remove_config_file() -> None:
    """Delete the configuration file if it exists."""
    path = config_path()
    if path.exists():
        try:
            path.unlink()
        except OSError as exc:
            raise ConfigError(f"Failed to remove {path}: {exc}") from exc


def current_space_key() -> str:
    """Resolve the effective space key: ``BL_SPACE`` first, then the config."""
    env_space = os.environ.get("BL_SPACE")
    if env_space:
        return env_space
    current = load().current_space
    if current is None:
        raise ConfigError(
            "No current space set. Run `bl auth login` or `bl auth use <space_key>`."
        )
    return current


def migrate(config: Config) -> None:
    """Move a legacy ``[auth] space_key`` entry into the multi-space fields."""
    if config.current_space is not None or config.auth is None:
        return
    auth, config.auth = config.auth, None
    if auth.space_key not in config.spaces:
        config.spaces.append(auth.space_key)
    config.current_space = auth.space_key


def _require_str(value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"Failed to parse config file: '{name}' must be a string")
    return value


def _from_mapping(data: dict[str, Any]) -> Config:
    current = data.get("current_space")
    if current is not None:
        current = _require_str(current, "current_space")

    raw_spaces = data.get("spaces", [])
    if not isinstance(raw_spaces, list):
        raise ConfigError("Failed to parse config file: 'spaces' must be an array")
    spaces = [_require_str(item, "spaces") for item in raw_spaces]

    auth = None
    raw_auth = data.get("auth")
    if raw_auth is not None:
        if not isinstance(raw_auth, dict) or "space_key" not in raw_auth:
            raise ConfigError("Failed to parse config file: missing field 'space_key'")
        auth = LegacyAuthConfig(_require_str(raw_auth["space_key"], "space_key"))

    return Config(current_space=current, spaces=spaces, auth=auth)


def load_from(path: str | os.PathLike[str]) -> Config:
    """Read a configuration file; a missing file yields the default config."""
    path = Path(path)
    if not path.exists():
        return Config()
    try:
        contents = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read config from {path}: {exc}") from exc
    try:
        data = tomllib.loads(contents)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse config file: {exc}") from exc
    return _from_mapping(data)


def save_to(path: str | os.PathLike[str], config: Config) -> None:
    """Write a configuration file, creating parent directories as needed."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigError(
            f"Failed to create config directory {path.parent}: {exc}"
        ) from exc

    data: dict[str, Any] = {}
    if config.current_space is not None:
        data["current_space"] = config.current_space
    data["spaces"] = list(config.spaces)
    contents = tomli_w.dumps(data)

    try:
        path.write_text(contents, encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to write config to {path}: {exc}") from exc