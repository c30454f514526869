"""SQLite shared store adapter: implements SharedStorePort.

One small SQLite file that both processes open. Each set is its own
transaction, which gives per-key last-write-wins and nothing more; callers
must not assume two keys written back to back are seen together.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from hydrosync.ports.shared_store_port import SharedStoreError

logger = logging.getLogger(__name__)

# Reads are polls: give up quickly if the other process holds the lock
_BUSY_TIMEOUT_SECONDS = 0.5


class SQLiteSharedStore:
    """SQLite implementation of SharedStorePort."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from hydrosync.config import settings
            db_path = settings.SHARED_STORE_PATH

        self._db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self._db_path, timeout=_BUSY_TIMEOUT_SECONDS)

    def _init_db(self) -> None:
        try:
            with self._connect() as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS shared_defaults (
                        key   TEXT PRIMARY KEY,
                        value TEXT NOT NULL
                    )
                """)
        except sqlite3.Error as exc:
            raise SharedStoreError(f"Cannot open shared store at {self._db_path}: {exc}") from exc
        logger.debug("Shared store initialized at %s", self._db_path)

    def _read(self, key: str) -> str | None:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT value FROM shared_defaults WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as exc:
            raise SharedStoreError(f"Failed to read {key!r}: {exc}") from exc
        return None if row is None else row[0]

    def _write(self, key: str, value: str) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO shared_defaults (key, value) VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value
                    """,
                    (key, value),
                )
        except sqlite3.Error as exc:
            raise SharedStoreError(f"Failed to write {key!r}: {exc}") from exc
        logger.debug("Shared store: %s = %s", key, value)

    def get_int(self, key: str) -> int | None:
        raw = self._read(key)
        if raw is None:
            return None
        try:
            return int(float(raw))
        except ValueError as exc:
            raise SharedStoreError(f"Value for {key!r} is not a number: {raw!r}") from exc

    def get_bool(self, key: str) -> bool | None:
        raw = self._read(key)
        return None if raw is None else raw == "1"

    def get_str(self, key: str) -> str | None:
        return self._read(key)

    def set_int(self, key: str, value: int) -> None:
        self._write(key, str(int(value)))

    def set_bool(self, key: str, value: bool) -> None:
        self._write(key, "1" if value else "0")

    def set_str(self, key: str, value: str) -> None:
        self._write(key, value)
