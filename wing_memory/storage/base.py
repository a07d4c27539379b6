"""
Abstract base classes for storage backends.

Defines the interface that all storage backends must implement.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Any

from wing_memory.exceptions import MemoryNotFoundError, StorageError
from wing_memory.models import BaseMemory, MemoryCategory

__all__ = ["BaseStorage", "MemoryNotFoundError", "StorageError"]


class BaseStorage(ABC):
    """
    Abstract base class for memory storage backends.

    Provides CRUD operations, per-category queries and transactions.
    Operations called inside `transaction()` commit or roll back together;
    outside it each operation commits on its own.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Initialize connection to storage backend."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close connection to storage backend."""
        pass

    @abstractmethod
    async def is_connected(self) -> bool:
        """Check if storage is connected."""
        pass

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[None]:
        """
        Group operations into one atomic unit.

        Usage:
            async with storage.transaction():
                await storage.update(keeper)
                await storage.delete_many(absorbed_ids)

        Any exception inside the block rolls back every change made in it.
        """
        pass

    # CRUD Operations
    @abstractmethod
    async def create(self, memory: BaseMemory) -> str:
        """
        Create a new memory in storage.

        Args:
            memory: The memory to store

        Returns:
            The ID of the created memory
        """
        pass

    @abstractmethod
    async def read(self, memory_id: str) -> BaseMemory | None:
        """
        Read a memory by ID.

        Args:
            memory_id: The ID of the memory to read

        Returns:
            The memory if found, None otherwise
        """
        pass

    @abstractmethod
    async def update(self, memory: BaseMemory) -> bool:
        """
        Update an existing memory.

        Args:
            memory: The memory to update (must have existing ID)

        Returns:
            True if updated, False if not found
        """
        pass

    @abstractmethod
    async def delete(self, memory_id: str) -> bool:
        """
        Delete a memory by ID.

        Returns:
            True if deleted, False if not found
        """
        pass

    @abstractmethod
    async def delete_many(self, memory_ids: list[str]) -> int:
        """
        Delete multiple memories by IDs.

        Returns:
            Number of memories deleted
        """
        pass

    # Query Operations
    @abstractmethod
    async def query_by_category(self, category: MemoryCategory) -> list[BaseMemory]:
        """All memories of one category, oldest first."""
        pass

    @abstractmethod
    async def query_all(self) -> list[BaseMemory]:
        """All memories, oldest first."""
        pass

    @abstractmethod
    async def count(self, category: MemoryCategory | None = None) -> int:
        """Count memories, optionally of one category."""
        pass

    @abstractmethod
    async def clear(self, category: MemoryCategory | None = None) -> int:
        """
        Delete every memory, or every memory of one category.

        Returns:
            Number of memories deleted
        """
        pass

    async def get_stats(self) -> dict[str, Any]:
        """Get storage statistics."""
        stats: dict[str, Any] = {
            "total_memories": await self.count(),
            "by_category": {},
        }
        for category in MemoryCategory:
            stats["by_category"][category.value] = await self.count(category)
        return stats

    # Context manager support
    async def __aenter__(self) -> "BaseStorage":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()
