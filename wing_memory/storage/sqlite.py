"""
SQLite storage backend for memories.

Uses aiosqlite for async operations.
"""

import json
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator

import aiosqlite

from wing_memory.config import StorageConfig
from wing_memory.models import BaseMemory, MemoryCategory, memory_class_for
from wing_memory.storage.base import BaseStorage, StorageError


# SQL Schema
SCHEMA = """
-- Main memories table
CREATE TABLE IF NOT EXISTS memories (
    id TEXT PRIMARY KEY,
    category TEXT NOT NULL,

    -- Temporal
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,

    -- Provenance (JSON list of journal entry ids)
    source_entry_ids_json TEXT NOT NULL DEFAULT '[]',

    -- Category-specific fields (stored as JSON)
    data_json TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_category ON memories(category);
CREATE INDEX IF NOT EXISTS idx_created_at ON memories(created_at);
"""

_BASE_FIELDS = {"id", "category", "created_at", "updated_at", "source_entry_ids"}


def _serialize_datetime(dt: datetime) -> str:
    """Serialize datetime to ISO format string."""
    return dt.isoformat()


def _deserialize_datetime(s: str) -> datetime:
    """Deserialize datetime from ISO format string."""
    return datetime.fromisoformat(s)


class SQLiteStorage(BaseStorage):
    """
    SQLite-based storage for memories.

    Shared fields get their own columns; category-specific fields live in a
    JSON column so the three categories share one table.
    """

    def __init__(self, config: StorageConfig | None = None):
        """
        Initialize SQLite storage.

        Args:
            config: Storage configuration
        """
        self.config = config or StorageConfig()
        self.db_path = self.config.sqlite_path
        self._connection: aiosqlite.Connection | None = None
        self._connected = False
        self._in_transaction = False

    async def connect(self) -> None:
        """Initialize connection and create schema."""
        try:
            # Ensure directory exists
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

            self._connection = await aiosqlite.connect(str(self.db_path))
            self._connection.row_factory = aiosqlite.Row

            # Create schema
            await self._connection.executescript(SCHEMA)
            await self._connection.commit()

            self._connected = True
        except Exception as e:
            raise StorageError(f"Failed to connect to SQLite: {e}") from e

    async def disconnect(self) -> None:
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None
        self._connected = False

    async def is_connected(self) -> bool:
        """Check if storage is connected."""
        return self._connected and self._connection is not None

    def _ensure_connected(self) -> None:
        """Raise error if not connected."""
        if not self._connected:
            raise StorageError("Not connected to database")

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Commit everything in the block at once, or roll all of it back."""
        self._ensure_connected()
        if self._in_transaction:
            # Nested blocks join the outer transaction
            yield
            return

        self._in_transaction = True
        try:
            yield
            await self._connection.commit()
        except BaseException:
            await self._connection.rollback()
            raise
        finally:
            self._in_transaction = False

    async def _commit(self) -> None:
        if not self._in_transaction:
            await self._connection.commit()

    async def _rollback(self) -> None:
        # Inside a transaction the enclosing block rolls back
        if not self._in_transaction:
            await self._connection.rollback()

    def _memory_to_row(self, memory: BaseMemory) -> dict[str, Any]:
        """Convert a memory object to a database row."""
        data = memory.model_dump(mode="json", exclude=_BASE_FIELDS)

        return {
            "id": memory.id,
            "category": memory.category.value,
            "created_at": _serialize_datetime(memory.created_at),
            "updated_at": _serialize_datetime(memory.updated_at),
            "source_entry_ids_json": json.dumps(memory.source_entry_ids),
            "data_json": json.dumps(data, ensure_ascii=False),
        }

    def _row_to_memory(self, row: aiosqlite.Row) -> BaseMemory:
        """Convert a database row to a memory object."""
        try:
            memory_class = memory_class_for(MemoryCategory(row["category"]))

            data = json.loads(row["data_json"]) if row["data_json"] else {}
            if not isinstance(data, dict):
                raise ValueError(f"data_json holds {type(data).__name__}, expected an object")
            data.update(
                {
                    "id": row["id"],
                    "created_at": _deserialize_datetime(row["created_at"]),
                    "updated_at": _deserialize_datetime(row["updated_at"]),
                    "source_entry_ids": json.loads(row["source_entry_ids_json"] or "[]"),
                }
            )
            return memory_class.model_validate(data)
        except (ValueError, TypeError) as e:
            # JSONDecodeError and pydantic ValidationError are ValueErrors
            raise StorageError(
                f"Corrupt memory row {row['id']}: {e}", {"memory_id": row["id"]}
            ) from e

    async def _fetch(self, query: str, params: tuple = ()) -> list[BaseMemory]:
        memories = []
        try:
            async with self._connection.execute(query, params) as cursor:
                async for row in cursor:
                    memories.append(self._row_to_memory(row))
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to query memories: {e}") from e
        return memories

    # CRUD Operations
    async def create(self, memory: BaseMemory) -> str:
        """Create a new memory in storage."""
        self._ensure_connected()

        row = self._memory_to_row(memory)

        columns = ", ".join(row.keys())
        placeholders = ", ".join(["?" for _ in row])

        query = f"INSERT INTO memories ({columns}) VALUES ({placeholders})"

        try:
            await self._connection.execute(query, list(row.values()))
            await self._commit()
            return memory.id
        except Exception as e:
            await self._rollback()
            raise StorageError(f"Failed to create memory: {e}") from e

    async def read(self, memory_id: str) -> BaseMemory | None:
        """Read a memory by ID."""
        self._ensure_connected()

        memories = await self._fetch("SELECT * FROM memories WHERE id = ?", (memory_id,))
        return memories[0] if memories else None

    async def update(self, memory: BaseMemory) -> bool:
        """Update an existing memory."""
        self._ensure_connected()

        row = self._memory_to_row(memory)
        del row["id"]  # Don't update ID
        del row["created_at"]

        set_clause = ", ".join([f"{k} = ?" for k in row.keys()])
        query = f"UPDATE memories SET {set_clause} WHERE id = ?"

        try:
            cursor = await self._connection.execute(query, list(row.values()) + [memory.id])
            await self._commit()
            return cursor.rowcount > 0
        except Exception as e:
            await self._rollback()
            raise StorageError(f"Failed to update memory: {e}") from e

    async def delete(self, memory_id: str) -> bool:
        """Delete a memory by ID."""
        return await self.delete_many([memory_id]) > 0

    async def delete_many(self, memory_ids: list[str]) -> int:
        """Delete multiple memories by IDs."""
        self._ensure_connected()

        if not memory_ids:
            return 0

        placeholders = ", ".join(["?" for _ in memory_ids])
        query = f"DELETE FROM memories WHERE id IN ({placeholders})"

        try:
            cursor = await self._connection.execute(query, list(memory_ids))
            await self._commit()
            return cursor.rowcount
        except Exception as e:
            await self._rollback()
            raise StorageError(f"Failed to delete memories: {e}") from e

    # Query Operations
    async def query_by_category(self, category: MemoryCategory) -> list[BaseMemory]:
        """Query memories of one category, oldest first."""
        self._ensure_connected()

        query = """
            SELECT * FROM memories
            WHERE category = ?
            ORDER BY created_at ASC, id ASC
        """
        return await self._fetch(query, (MemoryCategory(category).value,))

    async def query_all(self) -> list[BaseMemory]:
        """Query every memory, oldest first."""
        self._ensure_connected()

        return await self._fetch("SELECT * FROM memories ORDER BY created_at ASC, id ASC")

    # Statistics
    async def count(self, category: MemoryCategory | None = None) -> int:
        """Count memories in storage."""
        self._ensure_connected()

        if category:
            query = "SELECT COUNT(*) FROM memories WHERE category = ?"
            params = (MemoryCategory(category).value,)
        else:
            query = "SELECT COUNT(*) FROM memories"
            params = ()

        try:
            async with self._connection.execute(query, params) as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to count memories: {e}") from e

    async def clear(self, category: MemoryCategory | None = None) -> int:
        """Delete all memories, or all of one category."""
        self._ensure_connected()

        if category:
            query = "DELETE FROM memories WHERE category = ?"
            params = (MemoryCategory(category).value,)
        else:
            query = "DELETE FROM memories"
            params = ()

        try:
            cursor = await self._connection.execute(query, params)
            await self._commit()
            return cursor.rowcount
        except Exception as e:
            await self._rollback()
            raise StorageError(f"Failed to clear memories: {e}") from e

    async def get_stats(self) -> dict[str, Any]:
        """Get storage statistics."""
        stats = await super().get_stats()

        # DB file size
        if self.db_path.exists():
            stats["db_size_bytes"] = self.db_path.stat().st_size

        return stats
