"""
Persistent store adapter — typed JSON get/set over a ``KeyValueStore``.

Contract:
    get(key, default) -> value   never raises; absent or unreadable → default
    set(key, value)   -> bool    never raises; False when the write failed
    remove(key)       -> bool

A malformed stored value behaves exactly like an absent key. Write
failures are logged and reported to the caller; whatever the caller holds
in memory stays authoritative for the rest of the session.
"""

import json
import logging
from typing import Any

from pmassist.storage.backends import KeyValueStore

logger = logging.getLogger(__name__)


class StoreAdapter:
    def __init__(self, store: KeyValueStore):
        self.store = store

    def get(self, key: str, default: Any = None) -> Any:
        try:
            raw = self.store.get_item(key)
        except Exception as exc:
            logger.warning(
                "Storage read failed key=%s: %s", key, exc,
                extra={"storage_key": key},
            )
            return default
        if raw is None or raw == "":
            return default
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as exc:
            logger.warning(
                "Discarding malformed stored value key=%s: %s", key, exc,
                extra={"storage_key": key},
            )
            return default

    def set(self, key: str, value: Any) -> bool:
        try:
            raw = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            logger.error(
                "Storage serialisation failed key=%s: %s", key, exc,
                extra={"storage_key": key},
            )
            return False
        try:
            self.store.set_item(key, raw)
        except Exception as exc:
            logger.error(
                "Storage write failed key=%s: %s", key, exc,
                extra={"storage_key": key},
            )
            return False
        return True

    def remove(self, key: str) -> bool:
        try:
            self.store.remove_item(key)
        except Exception as exc:
            logger.error(
                "Storage delete failed key=%s: %s", key, exc,
                extra={"storage_key": key},
            )
            return False
        return True

    def has(self, key: str) -> bool:
        try:
            return self.store.get_item(key) is not None
        except Exception as exc:
            logger.warning("Storage read failed key=%s: %s", key, exc, extra={"storage_key": key})
            return False
