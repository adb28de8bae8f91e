"""Storage - key-value backends, persisted models and the durable state store"""

from __future__ import annotations

from grammarguard.storage.kv import (
    InMemoryStorage,
    KeyValueStorage,
    QuotaExceededError,
    SqliteStorage,
    StorageError,
)
from grammarguard.storage.state_store import StateStore

__all__ = [
    "InMemoryStorage",
    "KeyValueStorage",
    "QuotaExceededError",
    "SqliteStorage",
    "StateStore",
    "StorageError",
]
