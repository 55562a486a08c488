"""
SQLite key-value store using aiosqlite.

Values live in a single two-column table; the file and its parent
directories are created on connect.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional, List

import aiosqlite

from crudzaso.store.interface import KeyValueStore, check_revision

logger = logging.getLogger(__name__)

TABLE_NAME = "kv_store"

UPSERT_SQL = f"""
    INSERT INTO {TABLE_NAME} (key, value, updated_at)
    VALUES (?, ?, datetime('now'))
    ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
"""


class SQLiteStore(KeyValueStore):
    """
    SQLite-backed store.

    Uses aiosqlite for async database operations.
    Automatically creates the database file and parent directories.
    """

    def __init__(self, db_path: str = "~/.crudzaso/crudzaso.db"):
        """
        Initialize SQLite store.

        Args:
            db_path: Path to SQLite database file.
                    Supports ~ expansion for home directory.
        """
        self.db_path = Path(db_path).expanduser()
        self._conn: Optional[aiosqlite.Connection] = None
        # One connection is shared, so writes must not interleave with a transaction
        self._write_lock = asyncio.Lock()

    async def connect(self) -> None:
        """Initialize database connection and create file if needed."""
        if self._conn is not None:
            return

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        # Connect (creates file if doesn't exist)
        self._conn = await aiosqlite.connect(str(self.db_path))

        # Use WAL mode for better concurrent access
        await self._conn.execute("PRAGMA journal_mode = WAL")

        await self.ensure_schema()

        logger.info(f"SQLite store connected: {self.db_path}")

    async def ensure_schema(self) -> None:
        """Create the key-value table if needed."""
        await self._conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT DEFAULT (datetime('now'))
            )
            """
        )
        await self._conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("SQLite store closed")

    async def _get_conn(self) -> aiosqlite.Connection:
        """Get or create connection."""
        if self._conn is None:
            await self.connect()
        return self._conn

    async def get(self, key: str) -> str | None:
        conn = await self._get_conn()
        cursor = await conn.execute(f"SELECT value FROM {TABLE_NAME} WHERE key = ?", (key,))
        row = await cursor.fetchone()
        return row[0] if row else None

    async def set(self, key: str, value: str) -> None:
        conn = await self._get_conn()
        async with self._write_lock:
            await conn.execute(UPSERT_SQL, (key, value))
            await conn.commit()

    async def delete(self, key: str) -> bool:
        conn = await self._get_conn()
        async with self._write_lock:
            cursor = await conn.execute(f"DELETE FROM {TABLE_NAME} WHERE key = ?", (key,))
            await conn.commit()
        return cursor.rowcount > 0

    async def keys(self, prefix: str = "") -> List[str]:
        conn = await self._get_conn()
        # substr comparison avoids LIKE wildcard escaping for '_' in key names
        cursor = await conn.execute(
            f"SELECT key FROM {TABLE_NAME} WHERE substr(key, 1, ?) = ? ORDER BY key",
            (len(prefix), prefix),
        )
        rows = await cursor.fetchall()
        return [row[0] for row in rows]

    async def compare_and_set(self, key: str, value: str, revision_key: str, expected: int) -> int:
        """
        Check the revision and write both keys in one IMMEDIATE transaction.

        BEGIN IMMEDIATE takes the database write lock up front, so another
        connection on the same file waits (up to the busy timeout) and then
        sees the bumped revision.
        """
        conn = await self._get_conn()
        async with self._write_lock:
            await conn.execute("BEGIN IMMEDIATE")
            committed = False
            try:
                cursor = await conn.execute(f"SELECT value FROM {TABLE_NAME} WHERE key = ?", (revision_key,))
                row = await cursor.fetchone()
                found = check_revision(key, row[0] if row else None, expected)

                await conn.execute(UPSERT_SQL, (key, value))
                await conn.execute(UPSERT_SQL, (revision_key, str(found + 1)))
                await conn.commit()
                committed = True
            finally:
                if not committed:
                    await conn.rollback()
        return found + 1

    @property
    def backend(self) -> str:
        return "sqlite"
