"""
Key-value storage backends for the durable state store.

The store receives one of these at construction instead of reaching for a
global namespace:

- InMemoryStorage: tests and throwaway sessions; optional byte quota to
  exercise capacity failures.
- SqliteStorage: the CLI's on-disk store, one row per key in a single table.

Every backend replaces a value wholesale per set(); nothing is patched in place.
Failures surface as StorageError so the state store can catch one type.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Protocol

from grammarguard.observability.logging import get_logger

logger = get_logger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""


class StorageError(RuntimeError):
    """Raised when a backend cannot read or write a value."""


class QuotaExceededError(StorageError):
    """Raised when a write would exceed the backend's capacity."""


class KeyValueStorage(Protocol):
    """String-keyed, string-valued synchronous storage."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class InMemoryStorage:
    def __init__(self, quota_bytes: int | None = None):
        self._data: dict[str, str] = {}
        self.quota_bytes = quota_bytes

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StorageError(f"value for {key!r} must be str, got {type(value).__name__}")
        if self.quota_bytes is not None:
            used = sum(len(k) + len(v) for k, v in self._data.items() if k != key)
            if used + len(key) + len(value) > self.quota_bytes:
                raise QuotaExceededError(f"quota of {self.quota_bytes} bytes exceeded writing {key!r}")
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class SqliteStorage:
    """
    SQLite-backed key-value storage.

    Each set() runs in its own transaction, so a failed write leaves the
    previous value intact.
    """

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        if str(db_path) != ":memory:":
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute(_SCHEMA)
        self._conn.commit()

    @contextmanager
    def _transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Commit on success, roll back and re-raise as StorageError on failure.

        Side Effects:
            - Commits or rolls back the connection's current transaction
        """
        try:
            yield self._conn
            self._conn.commit()
        except sqlite3.Error as e:
            try:
                self._conn.rollback()
            except sqlite3.Error as rollback_error:
                logger.warning("kv_store rollback failed: %s", rollback_error)
            logger.error("kv_store transaction failed: %s", e)
            raise StorageError(str(e)) from e

    def get(self, key: str) -> str | None:
        try:
            row = self._conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO kv_store (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )

    def remove(self, key: str) -> None:
        with self._transaction() as conn:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))

    def close(self) -> None:
        self._conn.close()
