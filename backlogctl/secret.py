"""Storage of API keys and OAuth tokens for Backlog spaces."""

from __future__ import annotations

import os
import sys
import tomllib
from abc import ABC, abstractmethod
from collections.abc import Sequence
from enum import Enum
from pathlib import Path
from typing import Any

import tomli_w
from termcolor import colored

from backlogctl.config import config_path
from backlogctl.oauth import OAuthError, OAuthTokens


class CredentialError(Exception):
    """Raised when credentials cannot be stored, found or removed."""


class Backend(Enum):
    """Where a credential came from or was written to."""

    KEYRING = "System keyring"
    FILE = "Credentials file"
    ENV = "Environment variable"

    def __str__(self) -> str:
        return self.value


class CredentialStore(ABC):
    """A place that can hold one API key per space."""

    backend: Backend

    @abstractmethod
    def set(self, space_key: str, api_key: str) -> None:
        """Store the API key for a space."""

    @abstractmethod
    def get(self, space_key: str) -> str:
        """Return the API key for a space or raise ``CredentialError``."""

    @abstractmethod
    def delete(self, space_key: str) -> None:
        """Remove the API key for a space; a missing key is not an error."""


def _read_toml(path: Path, what: str) -> dict[str, Any]:
    try:
        contents = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CredentialError(f"Failed to read {what} from {path}: {exc}") from exc
    try:
        return tomllib.loads(contents)
    except tomllib.TOMLDecodeError as exc:
        raise CredentialError(f"Failed to parse {what} file: {exc}") from exc


def _write_private_toml(path: Path, data: dict[str, Any], what: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise CredentialError(
            f"Failed to create config directory {path.parent}: {exc}"
        ) from exc
    contents = tomli_w.dumps(data)
    try:
        path.write_text(contents, encoding="utf-8")
    except OSError as exc:
        raise CredentialError(f"Failed to write {what} to {path}: {exc}") from exc
    if os.name == "posix":
        try:
            path.chmod(0o600)
        except OSError as exc:
            raise CredentialError(f"Failed to set {what} file permissions: {exc}") from exc


class FileStore(CredentialStore):
    """API keys kept in a private TOML file under a ``[keys]`` table."""

    backend = Backend.FILE

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def load(self) -> dict[str, str]:
        """Return the stored keys; a missing file holds none."""
        if not self.path.exists():
            return {}
        data = _read_toml(self.path, "credentials")
        keys = data.get("keys", {})
        if not isinstance(keys, dict) or not all(
            isinstance(value, str) for value in keys.values()
        ):
            raise CredentialError("Failed to parse credentials file: 'keys' must map to strings")
        return dict(keys)

    def save(self, credentials: dict[str, str]) -> None:
        """Write the keys, readable only by the owner."""
        _write_private_toml(self.path, {"keys": dict(credentials)}, "credentials")

    def set(self, space_key: str, api_key: str) -> None:
        try:
            credentials = self.load()
        except CredentialError:
            credentials = {}
        credentials[space_key] = api_key
        self.save(credentials)

    def get(self, space_key: str) -> str:
        credentials = self.load()
        try:
            return credentials[space_key]
        except KeyError:
            raise CredentialError(f"API key not found for space '{space_key}'") from None

    def delete(self, space_key: str) -> None:
        if not self.path.exists():
            return
        credentials = self.load()
        credentials.pop(space_key, None)
        self.save(credentials)


def credentials_path() -> Path:
    """Return the location of the credentials file."""
    return config_path().parent / "credentials.toml"


def oauth_tokens_path() -> Path:
    """Return the location of the OAuth tokens file."""
    return config_path().parent / "oauth_tokens.toml"


def default_stores() -> list[CredentialStore]:
    """Return the credential stores tried, in order."""
    return [FileStore(credentials_path())]


def _warn(message: str) -> None:
    label = "WARNING"
    isatty = getattr(sys.stderr, "isatty", None)
    if not os.environ.get("NO_COLOR") and isatty and isatty():
        label = colored(label, "yellow", force_color=True)
    print(f"{label}: {message}", file=sys.stderr)


def set_api_key(
    space_key: str, api_key: str, stores: Sequence[CredentialStore] | None = None
) -> Backend:
    """Store the key in the first store that accepts it and return its backend."""
    stores = default_stores() if stores is None else list(stores)
    last_error: Exception = CredentialError("No credential store available")
    for position, store in enumerate(stores):
        try:
            store.set(space_key, api_key)
        except Exception as exc:
            if position + 1 < len(stores):
                _warn(f"{store.backend} unavailable ({exc}), falling back to next store.")
            last_error = exc
        else:
            return store.backend
    if isinstance(last_error, CredentialError):
        raise last_error
    raise CredentialError(str(last_error)) from last_error


def get_api_key(
    space_key: str, stores: Sequence[CredentialStore] | None = None
) -> tuple[str, Backend]:
    """Return the key from the first store that has it, with that store's backend."""
    stores = default_stores() if stores is None else list(stores)
    last_error: Exception = CredentialError(
        "API key not found. Run `bl auth login` to authenticate."
    )
    for store in stores:
        try:
            return store.get(space_key), store.backend
        except Exception as exc:
            last_error = exc
    if isinstance(last_error, CredentialError):
        raise last_error
    raise CredentialError(str(last_error)) from last_error


def delete_api_key(space_key: str, stores: Sequence[CredentialStore] | None = None) -> None:
    """Remove the key from every store, ignoring stores that fail."""
    stores = default_stores() if stores is None else list(stores)
    for store in stores:
        try:
            store.delete(space_key)
        except Exception:
            pass


def current_api_key(space_key: str) -> tuple[str, Backend]:
    """Resolve the effective API key: ``BL_API_KEY`` first, then the stores."""
    env_key = os.environ.get("BL_API_KEY")
    if env_key:
        return env_key, Backend.ENV
    return get_api_key(space_key)


def remove_credentials_file() -> None:
    """Delete the credentials file if it exists."""
    path = credentials_path()
    if path.exists():
        try:
            path.unlink()
        except OSError as exc:
            raise CredentialError(f"Failed to remove {path}: {exc}") from exc


def _load_oauth_file(path: Path) -> dict[str, OAuthTokens]:
    if not path.exists():
        return {}
    data = _read_toml(path, "oauth_tokens.toml")
    raw_tokens = data.get("tokens", {})
    if not isinstance(raw_tokens, dict):
        raise CredentialError("Failed to parse oauth_tokens.toml: 'tokens' must be a table")
    result = {}
    for space_key, entry in raw_tokens.items():
        if not isinstance(entry, dict):
            raise CredentialError(f"Failed to parse oauth_tokens.toml: bad entry '{space_key}'")
        try:
            result[space_key] = OAuthTokens.from_dict(entry)
        except OAuthError as exc:
            raise CredentialError(f"Failed to parse oauth_tokens.toml: {exc}") from exc
    return result


def _save_oauth_file(path: Path, tokens: dict[str, OAuthTokens]) -> None:
    data = {"tokens": {key: value.to_dict() for key, value in tokens.items()}}
    _write_private_toml(path, data, "oauth_tokens.toml")


def get_oauth_tokens(
    space_key: str, path: str | os.PathLike[str] | None = None
) -> tuple[OAuthTokens, Backend]:
    """Return the stored OAuth tokens for a space."""
    file_path = oauth_tokens_path() if path is None else Path(path)
    tokens = _load_oauth_file(file_path)
    try:
        return tokens[space_key], Backend.FILE
    except KeyError:
        raise CredentialError(f"OAuth tokens not found for space '{space_key}'") from None


def set_oauth_tokens(
    space_key: str, tokens: OAuthTokens, path: str | os.PathLike[str] | None = None
) -> None:
    """Store the OAuth tokens for a space."""
    file_path = oauth_tokens_path() if path is None else Path(path)
    stored = _load_oauth_file(file_path)
    stored[space_key] = tokens
    _save_oauth_file(file_path, stored)


def delete_oauth_tokens(space_key: str, path: str | os.PathLike[str] | None = None) -> None:
    """Remove the OAuth tokens for a space; a missing entry is not an error."""
    file_path = oauth_tokens_path() if path is None else Path(path)
    if not file_path.exists():
        return
    stored = _load_oauth_file(file_path)
    stored.pop(space_key, None)
    _save_oauth_file(file_path, stored)