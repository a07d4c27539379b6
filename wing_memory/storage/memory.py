"""
In-process storage backend.

Keeps memories in a dict. Useful for tests and for hosts that persist
elsewhere; it honors the same transaction contract as SQLiteStorage.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from wing_memory.models import BaseMemory, MemoryCategory
from wing_memory.storage.base import BaseStorage, StorageError


class InMemoryStorage(BaseStorage):
    """Dict-backed storage. Stored and returned memories are copies."""

    def __init__(self):
        self._records: dict[str, BaseMemory] = {}
        self._connected = False
        self._in_transaction = False

    async def connect(self) -> None:
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False

    async def is_connected(self) -> bool:
        return self._connected

    def _ensure_connected(self) -> None:
        if not self._connected:
            raise StorageError("Storage is not connected")

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        self._ensure_connected()
        if self._in_transaction:
            yield
            return

        # Records are replaced, never mutated in place, so a shallow copy is a full snapshot
        snapshot = dict(self._records)
        self._in_transaction = True
        try:
            yield
        except BaseException:
            self._records = snapshot
            raise
        finally:
            self._in_transaction = False

    @staticmethod
    def _sorted(memories) -> list[BaseMemory]:
        return [m.model_copy(deep=True) for m in sorted(memories, key=lambda m: m.sort_key())]

    async def create(self, memory: BaseMemory) -> str:
        self._ensure_connected()
        if memory.id in self._records:
            raise StorageError(f"Failed to create memory: id {memory.id} already exists")
        self._records[memory.id] = memory.model_copy(deep=True)
        return memory.id

    async def read(self, memory_id: str) -> BaseMemory | None:
        self._ensure_connected()
        memory = self._records.get(memory_id)
        return memory.model_copy(deep=True) if memory else None

    async def update(self, memory: BaseMemory) -> bool:
        self._ensure_connected()
        if memory.id not in self._records:
            return False
        self._records[memory.id] = memory.model_copy(deep=True)
        return True

    async def delete(self, memory_id: str) -> bool:
        return await self.delete_many([memory_id]) > 0

    async def delete_many(self, memory_ids: list[str]) -> int:
        self._ensure_connected()
        deleted = 0
        for memory_id in dict.fromkeys(memory_ids):
            if self._records.pop(memory_id, None) is not None:
                deleted += 1
        return deleted

    async def query_by_category(self, category: MemoryCategory) -> list[BaseMemory]:
        self._ensure_connected()
        category = MemoryCategory(category)
        return self._sorted(m for m in self._records.values() if m.category == category)

    async def query_all(self) -> list[BaseMemory]:
        self._ensure_connected()
        return self._sorted(self._records.values())

    async def count(self, category: MemoryCategory | None = None) -> int:
        self._ensure_connected()
        if category is None:
            return len(self._records)
        category = MemoryCategory(category)
        return sum(1 for m in self._records.values() if m.category == category)

    async def clear(self, category: MemoryCategory | None = None) -> int:
        self._ensure_connected()
        if category is None:
            deleted = len(self._records)
            self._records = {}
            return deleted
        category = MemoryCategory(category)
        doomed = [mid for mid, m in self._records.items() if m.category == category]
        return await self.delete_many(doomed)
