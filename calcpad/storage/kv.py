from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from calcpad.storage import repo


# Failures a store may raise that callers treat as "persistence unavailable".
PERSISTENCE_ERRORS = (SQLAlchemyError, OSError, ValueError, TypeError)


class KeyValueStore(ABC):
    """String blobs keyed by a namespace string.

    Implementations may raise on I/O failure; callers decide how to recover.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...


class MemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()
        self.writes = 0

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value
            self.writes += 1

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class SqlKeyValueStore(KeyValueStore):
    """Key-value store on a single SQLAlchemy table.

    The schema is created on first use so that an unreachable database only
    fails the operation that touches it, not construction.
    """

    def __init__(self, database_url: str) -> None:
        self.database_url = database_url
        self._ready = False
        self._lock = threading.Lock()

    def _ensure_schema(self) -> None:
        if self._ready:
            return
        with self._lock:
            if not self._ready:
                repo.init_db(self.database_url)
                self._ready = True

    def get(self, key: str) -> Optional[str]:
        self._ensure_schema()
        return repo.get_value(self.database_url, key)

    def set(self, key: str, value: str) -> None:
        self._ensure_schema()
        repo.set_value(self.database_url, key, value)

    def delete(self, key: str) -> None:
        self._ensure_schema()
        repo.delete_value(self.database_url, key)
