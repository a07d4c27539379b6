"""
Storage backends for the memory engine.

Provides:
- SQLite storage for durable, structured persistence
- In-process storage for tests and embedding hosts
"""

from wing_memory.storage.base import BaseStorage, MemoryNotFoundError, StorageError
from wing_memory.storage.memory import InMemoryStorage
from wing_memory.storage.sqlite import SQLiteStorage

__all__ = [
    "BaseStorage",
    "StorageError",
    "MemoryNotFoundError",
    "SQLiteStorage",
    "InMemoryStorage",
]
