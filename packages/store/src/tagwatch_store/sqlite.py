"""SQLiteStore: local file-based store for development and self-hosted runs.

Schema:
  kv  one row per key, the value is the raw blob text.
"""

from __future__ import annotations

import logging
import sqlite3

from tagwatch_store.base import BaseStore

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    key    TEXT PRIMARY KEY,
    value  TEXT NOT NULL
);
"""


class SQLiteStore(BaseStore):
    """Stores blobs in a local SQLite database file.

    The database file path defaults to `.tagwatch.db` in the current working
    directory. Configure via .tagwatch.yml: `store_path: /path/to/tagwatch.db`.
    """

    def __init__(self, db_path: str = ".tagwatch.db"):
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def get(self, key: str) -> str | None:
        row = self._conn.execute("SELECT value FROM kv WHERE key=?", (key,)).fetchone()
        return row["value"] if row else None

    def put(self, key: str, value: str) -> None:
        self._conn.execute(
            "INSERT INTO kv (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
            (key, value),
        )
        self._conn.commit()
        logger.debug("Wrote %d bytes under %r", len(value), key)

    def close(self) -> None:
        self._conn.close()
