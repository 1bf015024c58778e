"""Durable local key-value storage shared with the login flow."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

USERNAME_KEY = "username"


class IdentityError(Exception):
    """Raised when the local identity store cannot be read or written."""


class LocalKeyValueStore:
    """JSON file holding string keys such as the logged-in username."""

    def __init__(self, path: str | Path, logger: Optional[logging.Logger] = None):
        self._path = Path(path).expanduser()
        self._logger = logger or logging.getLogger("identity")

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> Optional[str]:
        value = self._load().get(key)
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, key: str) -> bool:
        data = self._load()
        if key not in data:
            return False
        del data[key]
        self._save(data)
        return True

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as error:
            raise IdentityError(f"Failed to read identity store {self._path}: {error}") from error
        if not isinstance(raw, dict):
            raise IdentityError(f"Identity store {self._path} must contain a JSON object")
        return raw

    def _save(self, data: dict[str, Any]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, sort_keys=True)
            os.replace(tmp_name, self._path)
        except OSError as error:
            raise IdentityError(f"Failed to write identity store {self._path}: {error}") from error
        self._logger.debug("Identity store updated: %s", self._path)


def current_username(store: LocalKeyValueStore) -> Optional[str]:
    return store.get(USERNAME_KEY)
