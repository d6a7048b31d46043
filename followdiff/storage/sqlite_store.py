"""SQLite-backed key-value store."""

import json
import time
from pathlib import Path
from typing import Any

import aiosqlite

from followdiff.exceptions import StorageError
from followdiff.storage.base import KeyValueStore


class SQLiteStore(KeyValueStore):
    """Local key-value store using aiosqlite, one JSON document per key."""

    def __init__(self, db_path: str = ".followdiff.db"):
        """
        Initialize SQLite store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self._db: aiosqlite.Connection | None = None

    async def _ensure_db(self) -> aiosqlite.Connection:
        """Ensure database connection and schema exist."""
        if self._db is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._db = await aiosqlite.connect(self.db_path)
            await self._db.execute("""
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value_json TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
            """)
            await self._db.commit()
        return self._db

    async def get(self, key: str) -> Any | None:
        db = await self._ensure_db()
        async with db.execute("SELECT value_json FROM kv WHERE key = ?", (key,)) as cursor:
            row = await cursor.fetchone()

        if row is None:
            return None

        try:
            return json.loads(row[0])
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt value stored under {key!r}: {e}") from e

    async def set(self, key: str, value: Any) -> None:
        db = await self._ensure_db()
        await db.execute(
            """
            INSERT OR REPLACE INTO kv (key, value_json, updated_at)
            VALUES (?, ?, ?)
            """,
            (key, json.dumps(value), time.time()),
        )
        await db.commit()

    async def delete(self, key: str) -> None:
        db = await self._ensure_db()
        await db.execute("DELETE FROM kv WHERE key = ?", (key,))
        await db.commit()

    async def keys(self) -> list[str]:
        """List every stored key."""
        db = await self._ensure_db()
        async with db.execute("SELECT key FROM kv ORDER BY key") as cursor:
            rows = await cursor.fetchall()
        return [row[0] for row in rows]

    async def close(self) -> None:
        """Close database connection."""
        if self._db is not None:
            await self._db.close()
            self._db = None
