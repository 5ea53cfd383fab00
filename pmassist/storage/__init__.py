"""
Program Management Assistant
Storage package — key-value backends and the fail-soft JSON adapter.
"""

from pmassist.storage.adapter import StoreAdapter
from pmassist.storage.backends import (
    KeyValueStore,
    MemoryKeyValueStore,
    SqlKeyValueStore,
    build_key_value_store,
)

__all__ = [
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SqlKeyValueStore",
    "StoreAdapter",
    "build_key_value_store",
]
