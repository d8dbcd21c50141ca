"""
SQLite-based cache backend.

Keeps cached extractions across application restarts and lets several
worker processes on one host share them.
"""

import sqlite3
import time
from typing import Callable, Optional

from .base import CacheBackend


class SQLiteCacheBackend(CacheBackend):
    """
    SQLite-backed key/value store with per-entry expiry.

    Features:
    - Persistent storage across application restarts
    - Lazy expiry on read plus periodic sweep() from the sweeper thread
    - Thread-safe operations (via SQLite's built-in locking)
    """

    def __init__(
        self,
        db_path: str = "extraction_cache.db",
        sweep_interval_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize backend with database path.

        Args:
            db_path: Path to SQLite database file (default: extraction_cache.db)
            sweep_interval_seconds: Period of the background sweep thread
            clock: Wall-clock source in seconds; expiry survives restarts so
                this must not be a monotonic clock
        """
        self.db_path = db_path
        self.sweep_interval_seconds = sweep_interval_seconds
        self._clock = clock
        self._init_database()

    def _init_database(self):
        """Create cache_entries table if it doesn't exist"""
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS cache_entries (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                created_at REAL NOT NULL,
                expires_at REAL NOT NULL
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_cache_expires_at
            ON cache_entries(expires_at)
        """)

        conn.commit()
        conn.close()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection with row factory"""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def get(self, key: str) -> Optional[str]:
        now = self._clock()
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("""
                SELECT value, expires_at
                FROM cache_entries
                WHERE key = ?
            """, (key,))
            row = cursor.fetchone()

            if row is None:
                return None

            if now >= row["expires_at"]:
                cursor.execute("DELETE FROM cache_entries WHERE key = ?", (key,))
                conn.commit()
                return None

            return row["value"]
        finally:
            conn.close()

    def set(self, key: str, value: str, ttl_seconds: float) -> None:
        now = self._clock()
        conn = self._get_connection()
        try:
            conn.execute("""
                INSERT INTO cache_entries (key, value, created_at, expires_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    created_at = excluded.created_at,
                    expires_at = excluded.expires_at
            """, (key, value, now, now + ttl_seconds))
            conn.commit()
        finally:
            conn.close()

    def delete(self, key: str) -> bool:
        conn = self._get_connection()
        try:
            cursor = conn.execute("DELETE FROM cache_entries WHERE key = ?", (key,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def clear(self, prefix: Optional[str] = None) -> int:
        conn = self._get_connection()
        try:
            if prefix is None:
                cursor = conn.execute("DELETE FROM cache_entries")
            else:
                # substr comparison avoids LIKE wildcards in the prefix
                marker = f"{prefix}:"
                cursor = conn.execute(
                    "DELETE FROM cache_entries WHERE substr(key, 1, ?) = ?",
                    (len(marker), marker),
                )
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()

    def sweep(self) -> int:
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                "DELETE FROM cache_entries WHERE expires_at <= ?", (self._clock(),)
            )
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()

    def size(self) -> int:
        conn = self._get_connection()
        try:
            row = conn.execute("SELECT COUNT(*) AS n FROM cache_entries").fetchone()
            return row["n"]
        finally:
            conn.close()
