"""
Persisted client identity: the bearer token and the remembered username.

Both values live under their own key and can be set or cleared on their own;
nothing keeps them consistent with each other.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

TOKEN_KEY = "site_token"
USER_KEY = "site_user"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class MemoryStore:
    def __init__(self, values: Optional[dict] = None):
        self.values: dict[str, str] = dict(values or {})

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value

    def remove(self, key: str) -> None:
        self.values.pop(key, None)


class FileStore:
    """Key/value strings kept in a small JSON file, rewritten on every change."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable session file %s", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def get(self, key: str) -> Optional[str]:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._save(data)


class Session:
    """
    Explicit identity handed to the controllers instead of reading global
    storage ad hoc.
    """

    def __init__(self, store: Optional[KeyValueStore] = None):
        self.store = store if store is not None else MemoryStore()

    @property
    def token(self) -> Optional[str]:
        return self.store.get(TOKEN_KEY)

    @token.setter
    def token(self, value: Optional[str]) -> None:
        if value:
            self.store.set(TOKEN_KEY, value)
        else:
            self.store.remove(TOKEN_KEY)

    @property
    def username(self) -> Optional[str]:
        return self.store.get(USER_KEY)

    @username.setter
    def username(self, value: Optional[str]) -> None:
        if value:
            self.store.set(USER_KEY, value)
        else:
            self.store.remove(USER_KEY)

    @property
    def logged_in(self) -> bool:
        return bool(self.token and self.username)

    def owns(self, entry: dict) -> bool:
        """True when the remembered username matches the entry's owner name."""
        return bool(self.username) and entry.get("ownerName") == self.username
