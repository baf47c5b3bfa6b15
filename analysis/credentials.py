"""
Credential storage and resolution.

The API key lives behind a small key-value ``CredentialProvider`` so the
core never touches global state: callers read the key once and pass the
value to ``AnalysisClient.run``.
"""

from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Optional, Union

from utils.exceptions import AuthError

logger = logging.getLogger(__name__)

# Fixed key under which the API key is persisted.
CREDENTIAL_KEY = "gemini_api_key"

_CREDENTIALS_FILE_ENV = "FORMULA_ANALYST_CREDENTIALS_FILE"


class CredentialProvider(ABC):
    @abstractmethod
    def get(self) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, value: str) -> None:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...


class InMemoryCredentialProvider(CredentialProvider):
    def __init__(self, value: Optional[str] = None) -> None:
        self._value = value

    def get(self) -> Optional[str]:
        return self._value

    def set(self, value: str) -> None:
        self._value = value

    def clear(self) -> None:
        self._value = None


def default_credentials_path() -> Path:
    override = os.getenv(_CREDENTIALS_FILE_ENV)
    if override:
        return Path(override)
    return Path.home() / ".config" / "formula-analyst" / "credentials.json"


class FileCredentialProvider(CredentialProvider):
    """
    Persists the key in a small JSON document, ``{"gemini_api_key": "..."}``.

    The file is created with owner-only permissions.  An unreadable file
    is treated as holding no key.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None) -> None:
        self._path = Path(path) if path is not None else default_credentials_path()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict:
        if not self._path.is_file():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            logger.warning("Ignoring unreadable credentials file %s", self._path, exc_info=True)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.chmod(self._path, 0o600)

    def get(self) -> Optional[str]:
        value = self._load().get(CREDENTIAL_KEY)
        return value if isinstance(value, str) else None

    def set(self, value: str) -> None:
        data = self._load()
        data[CREDENTIAL_KEY] = value
        self._save(data)
        logger.info("API key saved to %s", self._path)

    def clear(self) -> None:
        data = self._load()
        if data.pop(CREDENTIAL_KEY, None) is not None:
            self._save(data)
            logger.info("API key removed from %s", self._path)


def resolve_credential(explicit: Optional[str], env_vars: Iterable[str]) -> str:
    """
    Return the caller-supplied key if it is non-blank, otherwise the
    first non-blank environment variable in *env_vars*.

    Raises ``AuthError`` when neither source has a key.
    """
    if explicit and explicit.strip():
        return explicit.strip()

    for name in env_vars:
        value = os.getenv(name)
        if value and value.strip():
            logger.debug("Using API key from $%s", name)
            return value.strip()

    raise AuthError(
        "No API key supplied and none found in the environment",
        user_message="Please enter an API key in the settings to use this feature.",
    )
