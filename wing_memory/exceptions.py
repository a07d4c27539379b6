"""
Custom exceptions for the memory engine.

Malformed extraction input is reported per item and never raised from the
normalizer; these exceptions cover the failures a caller must see.
"""


class MemoryEngineError(Exception):
    """Base exception for all memory engine errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class StorageError(MemoryEngineError):
    """Persistence backend unavailable or an operation failed and was rolled back."""

    pass


class MemoryNotFoundError(StorageError):
    """Raised when a memory id does not exist in the store."""

    def __init__(self, memory_id: str):
        super().__init__(f"Memory '{memory_id}' not found", {"memory_id": memory_id})
        self.memory_id = memory_id


class ExtractionParseError(MemoryEngineError):
    """Raw extraction output could not be decoded into the expected shape."""

    pass


class MergeError(MemoryEngineError):
    """A merge request is inconsistent (mixed categories, unknown keeper, ...)."""

    pass


class MergeGroupNotFoundError(MergeError):
    """The group id is unknown, usually because the store changed since grouping."""

    def __init__(self, group_id: str):
        super().__init__(
            f"Merge group '{group_id}' not found; regroup and try again",
            {"group_id": group_id},
        )
        self.group_id = group_id
