"""SQLite implementation of the key-value backend."""

import asyncio
import sqlite3
import threading
from collections.abc import Iterable

from tubeshelf.config import settings
from tubeshelf.storage.backend import KeyValueBackend


class SQLiteBackend(KeyValueBackend):
    """SQLite-backed key-value storage.

    Implements KeyValueBackend using stdlib sqlite3. Each key is one row,
    so a single set() is atomic; remove_many() runs in one transaction.
    Blocking calls are pushed to a worker thread so the event loop keeps
    running while the disk is busy.
    """

    _CREATE_TABLE = """
        CREATE TABLE IF NOT EXISTS kv (
            key   TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
    """

    def __init__(self, db_path: str | None = None) -> None:
        """Initialize the backend.

        Args:
            db_path: Path to SQLite database file. Defaults to settings.db_path.
                     Use ":memory:" for testing.
        """
        self._db_path = db_path or str(settings.db_path)
        self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
        self._lock = threading.Lock()
        self._init_db()

    def _init_db(self) -> None:
        """Create tables if they don't exist."""
        self._conn.execute(self._CREATE_TABLE)
        self._conn.commit()

    async def get(self, key: str) -> str | None:
        return await asyncio.to_thread(self._get, key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._set, key, value)

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._remove_many, [key])

    async def remove_many(self, keys: Iterable[str]) -> None:
        await asyncio.to_thread(self._remove_many, list(keys))

    async def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _get(self, key: str) -> str | None:
        sql = "SELECT value FROM kv WHERE key = ?"
        with self._lock:
            row = self._conn.execute(sql, (key,)).fetchone()
        return None if row is None else row[0]

    def _set(self, key: str, value: str) -> None:
        sql = """
            INSERT INTO kv (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value
        """
        with self._lock, self._conn:
            self._conn.execute(sql, (key, value))

    def _remove_many(self, keys: list[str]) -> None:
        sql = "DELETE FROM kv WHERE key = ?"
        with self._lock, self._conn:
            self._conn.executemany(sql, [(k,) for k in keys])
