"""Persistence of the circ token pair between runs."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

from sharealyzer.exceptions import ConfigError

_logger = logging.getLogger(__name__)


class TokenStore(Protocol):
    """Loads and stores the access/refresh token pair."""

    def load(self) -> tuple[str, str] | None:
        ...

    def store(self, access_token: str, refresh_token: str) -> None:
        ...


class MemoryTokenStore:
    """Keeps tokens for the lifetime of the process only."""

    def __init__(self, access_token: str = "", refresh_token: str = "") -> None:
        self._tokens = (access_token, refresh_token) if access_token and refresh_token else None

    def load(self) -> tuple[str, str] | None:
        return self._tokens

    def store(self, access_token: str, refresh_token: str) -> None:
        self._tokens = (access_token, refresh_token)


class FileTokenStore:
    """Stores tokens as a small JSON document.

    The document layout is ``{"AccessToken": ..., "RefreshToken": ...}`` so
    token files written by earlier scraper versions keep working.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> tuple[str, str] | None:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigError(f"Could not read token file {self._path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"Token file {self._path} does not contain an object")
        access_token = data.get("AccessToken") or ""
        refresh_token = data.get("RefreshToken") or ""
        if not access_token or not refresh_token:
            _logger.warning("Token file %s is incomplete, ignoring it", self._path)
            return None
        return str(access_token), str(refresh_token)

    def store(self, access_token: str, refresh_token: str) -> None:
        payload = {"AccessToken": access_token, "RefreshToken": refresh_token}
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        tmp_path.write_text(json.dumps(payload), encoding="utf-8")
        tmp_path.replace(self._path)
        _logger.debug("Tokens written to %s", self._path)
