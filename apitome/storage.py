"""SQLite-backed durable key-value store.

This module provides the persistent, synchronous key-value facility the
session store, rate limiter and legacy migration share. Values are opaque
strings; :meth:`DurableStore.load` and :meth:`DurableStore.save` add a JSON
layer on top. Every write is a whole-value replacement committed in its own
transaction.
"""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, List, Optional, Union

logger = logging.getLogger(__name__)

MEMORY = ":memory:"


class DurableStore:
    """Persistent key-value store using SQLite.

    Attributes:
        db_path: Path to the SQLite database file, or ``":memory:"``.
    """

    def __init__(self, db_path: Union[str, Path] = MEMORY) -> None:
        """Initialize the store.

        Args:
            db_path: Path to the SQLite database file. Parent directories are
                created as needed. ``":memory:"`` keeps everything in process.
        """
        self.db_path = str(db_path)
        if self.db_path != MEMORY:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn: Optional[sqlite3.Connection] = None
        self._init_db()

    @property
    def conn(self) -> sqlite3.Connection:
        """Get the database connection, creating it if necessary."""
        if self._conn is None:
            self._init_db()
        return self._conn

    def _init_db(self) -> None:
        """Open the database and create the key-value table."""
        self._conn = sqlite3.connect(self.db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );
        """)
        self._conn.commit()

    def get_item(self, key: str) -> Optional[str]:
        """Return the raw value stored under ``key``, or ``None``."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row["value"] if row else None

    def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        with self.conn:
            self.conn.execute(
                """
                INSERT OR REPLACE INTO kv_store (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                """,
                (key, value),
            )

    def remove_item(self, key: str) -> None:
        """Delete ``key``. Removing a missing key is a no-op."""
        with self.conn:
            self.conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))

    def has_item(self, key: str) -> bool:
        return self.get_item(key) is not None

    def keys(self) -> List[str]:
        """Return all stored keys in alphabetical order."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT key FROM kv_store ORDER BY key")
        return [row["key"] for row in cursor.fetchall()]

    def load(self, key: str, default: Any = None) -> Any:
        """Read and JSON-decode the value under ``key``.

        Args:
            key: Key to read.
            default: Returned when the key is absent.

        Returns:
            The decoded value, or ``default``.

        Raises:
            json.JSONDecodeError: If the stored value is not valid JSON.
        """
        raw = self.get_item(key)
        if raw is None:
            return default
        return json.loads(raw)

    def save(self, key: str, value: Any) -> None:
        """JSON-encode ``value`` and store it under ``key``."""
        self.set_item(key, json.dumps(value))

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "DurableStore":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
