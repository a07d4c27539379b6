"""
Deduplicating memory store and its concurrency control.
"""

from wing_memory.store.locks import ReadWriteLock
from wing_memory.store.memory_store import IngestReport, MemoryStore

__all__ = [
    "IngestReport",
    "MemoryStore",
    "ReadWriteLock",
]
