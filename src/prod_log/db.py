"""Key-value persistence for tracker state.

The core treats storage as an opaque "get/set blob by key" store. The SQLite
implementation keeps every blob in a single table of the application
database; the in-memory one backs tests and throwaway sessions.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Protocol

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[bytes]:
        ...

    def set(self, key: str, value: bytes) -> None:
        ...


def open_database(path: Path, *, check_same_thread: bool = True) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(
        path,
        isolation_level=None,
        check_same_thread=check_same_thread,
    )
    conn.row_factory = sqlite3.Row
    initialize_schema(conn)
    return conn


@contextmanager
def database_connection(
    path: Path, *, check_same_thread: bool = True
) -> Iterator[sqlite3.Connection]:
    conn = open_database(path, check_same_thread=check_same_thread)
    try:
        yield conn
    finally:
        conn.close()


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS kv_store (
            key TEXT PRIMARY KEY,
            value BLOB NOT NULL,
            updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now'))
        );
        """
    )


class SQLiteKeyValueStore:
    """Blob store backed by the ``kv_store`` table."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        # Timer threads read through the same connection.
        self._conn = open_database(self.db_path, check_same_thread=False)

    def get(self, key: str) -> Optional[bytes]:
        row = self._conn.execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return None
        value = row["value"]
        if isinstance(value, str):
            return value.encode("utf-8")
        return bytes(value)

    def set(self, key: str, value: bytes) -> None:
        self._conn.execute(
            """
            INSERT INTO kv_store (key, value, updated_at)
            VALUES (?, ?, strftime('%Y-%m-%d %H:%M:%f', 'now'))
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (key, sqlite3.Binary(value)),
        )

    def keys(self) -> list[str]:
        return [row["key"] for row in self._conn.execute("SELECT key FROM kv_store ORDER BY key")]

    def close(self) -> None:
        self._conn.close()


class MemoryKeyValueStore:
    """Dictionary-backed store."""

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}

    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)

    def keys(self) -> list[str]:
        return sorted(self._data)

    def close(self) -> None:
        self._data.clear()


def load_blob(store: KeyValueStore, key: str) -> Optional[bytes]:
    """Read ``key``, treating a failing store as missing data."""
    try:
        return store.get(key)
    except Exception:
        logger.exception("Failed to read %s from the store; using defaults.", key)
        return None


def save_blob(store: KeyValueStore, key: str, value: bytes) -> bool:
    """Write ``key``; failures are logged and reported, never raised."""
    try:
        store.set(key, value)
    except Exception:
        logger.exception("Failed to persist %s; state remains in memory only.", key)
        return False
    logger.debug("Persisted %s (%d bytes).", key, len(value))
    return True
