"""
Key-value storage backends.

A ``KeyValueStore`` is the synchronous string→string store the dashboard
state is mirrored into (the counterpart of a browser's local storage).
Two backends:

  - MemoryKeyValueStore — dict, lives as long as the process (tests, demos)
  - SqlKeyValueStore    — ``storage_entries`` table via Flask-SQLAlchemy;
                          needs an application context

Backends raise on failure. Fail-soft handling lives one layer up in
``StoreAdapter``.
"""

import logging
from abc import ABC, abstractmethod

from pmassist.models import db
from pmassist.models.storage import StorageEntry

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Abstract synchronous key-value store of strings."""

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        """Return the stored text, or None if the key is absent."""

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete ``key``. Missing keys are ignored."""

    @abstractmethod
    def keys(self) -> list[str]:
        ...

    def clear(self) -> None:
        for key in self.keys():
            self.remove_item(key)


class MemoryKeyValueStore(KeyValueStore):
    """Plain dict store."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get_item(self, key):
        return self._data.get(key)

    def set_item(self, key, value):
        self._data[key] = value

    def remove_item(self, key):
        self._data.pop(key, None)

    def keys(self):
        return list(self._data)


class SqlKeyValueStore(KeyValueStore):
    """One row per key in ``storage_entries``.

    Every write commits immediately; there is no batching.
    """

    def get_item(self, key):
        entry = db.session.get(StorageEntry, key)
        return entry.value if entry is not None else None

    def set_item(self, key, value):
        try:
            entry = db.session.get(StorageEntry, key)
            if entry is None:
                db.session.add(StorageEntry(key=key, value=value))
            else:
                entry.value = value
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    def remove_item(self, key):
        try:
            entry = db.session.get(StorageEntry, key)
            if entry is not None:
                db.session.delete(entry)
                db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    def keys(self):
        rows = db.session.execute(db.select(StorageEntry.key).order_by(StorageEntry.key))
        return [row[0] for row in rows]


def build_key_value_store(backend: str) -> KeyValueStore:
    """Construct the backend named by the ``STORAGE_BACKEND`` config value."""
    match (backend or "").lower():
        case "memory":
            return MemoryKeyValueStore()
        case "sql":
            return SqlKeyValueStore()
        case _:
            raise ValueError(f"Unknown storage backend: {backend!r}. Must be one of: memory, sql.")
