"""Persistence port and its bundled adapters.

The memory tiers read and write JSON-serializable blobs by string key through
PersistencePort. Any durable store can sit behind it.
"""

import json
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from mentora.core.logging import get_logger

logger = get_logger("memory.persistence")

JSONValue = dict[str, Any] | list[Any] | str | int | float | bool | None


class PersistencePort(ABC):
    """Abstract async key/value persistence of JSON blobs."""

    @abstractmethod
    async def get(self, key: str) -> JSONValue:
        """Return the stored value, or None if absent."""
        ...

    @abstractmethod
    async def set(self, key: str, value: JSONValue) -> None:
        """Store value under key, replacing any previous value."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete key. Deleting a missing key is not an error."""
        ...

    @abstractmethod
    async def list_keys_with_prefix(self, prefix: str) -> list[str]:
        """List stored keys starting with prefix."""
        ...


class InMemoryPersistence(PersistencePort):
    """Dict-backed port. Values are stored JSON-encoded, so reads return copies."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> JSONValue:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: JSONValue) -> None:
        self._data[key] = json.dumps(value, ensure_ascii=False)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def list_keys_with_prefix(self, prefix: str) -> list[str]:
        return sorted(k for k in self._data if k.startswith(prefix))


SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


class SQLitePersistence(PersistencePort):
    """SQLite-backed port (single key/value table)."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Initialize database connection and schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(self.db_path)
        await self._conn.executescript(SCHEMA)
        await self._conn.commit()
        logger.info(f"Connected to persistence store: {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Persistence store not connected. Call connect() first.")
        return self._conn

    async def get(self, key: str) -> JSONValue:
        async with self.conn.execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,)
        ) as cursor:
            row = await cursor.fetchone()
            return json.loads(row[0]) if row else None

    async def set(self, key: str, value: JSONValue) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        now = datetime.now().isoformat()
        await self.conn.execute(
            """INSERT INTO kv_store (key, value, updated_at)
               VALUES (?, ?, ?)
               ON CONFLICT(key) DO UPDATE SET value=?, updated_at=?""",
            (key, payload, now, payload, now),
        )
        await self.conn.commit()

    async def delete(self, key: str) -> None:
        await self.conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        await self.conn.commit()

    async def list_keys_with_prefix(self, prefix: str) -> list[str]:
        async with self.conn.execute(
            "SELECT key FROM kv_store WHERE substr(key, 1, length(?)) = ? ORDER BY key",
            (prefix, prefix),
        ) as cursor:
            return [row[0] async for row in cursor]

