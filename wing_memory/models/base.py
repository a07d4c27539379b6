"""
Base memory models and types.

Defines the fields every stored memory shares: identity, timestamps and
provenance.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from ulid import ULID


def _utcnow() -> datetime:
    """Get current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


class MemoryCategory(str, Enum):
    """The three kinds of long-term memory."""

    SEMANTIC = "semantic"  # Facts: key/value
    EPISODIC = "episodic"  # Dated events
    PROCEDURAL = "procedural"  # Behavioral patterns


class BaseMemory(BaseModel, ABC):
    """
    Abstract base class for all stored memories.

    Carries identity, timestamps and the list of journal entries that
    contributed evidence to the memory.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(
        default_factory=lambda: str(ULID()),
        description="Unique memory identifier (ULID for time-ordering)",
    )
    category: MemoryCategory = Field(description="Memory category")

    created_at: datetime = Field(
        default_factory=_utcnow,
        description="When the memory was created",
        frozen=True,
    )
    updated_at: datetime = Field(
        default_factory=_utcnow,
        description="When the memory was last mutated",
    )

    source_entry_ids: list[str] = Field(
        default_factory=list,
        description="IDs of journal entries that contributed to this memory",
    )

    @property
    @abstractmethod
    def primary_text(self) -> str:
        """The text that identifies this memory in review and matching."""

    @abstractmethod
    def set_primary_text(self, text: str) -> None:
        """Replace the primary text (used when a merge is resolved)."""

    def touch(self) -> None:
        """Advance updated_at, strictly, even if the clock has not moved."""
        now = _utcnow()
        if now <= self.updated_at:
            now = self.updated_at + timedelta(microseconds=1)
        self.updated_at = now

    def add_sources(self, entry_ids: list[str]) -> bool:
        """
        Union entry ids into provenance, keeping first-seen order.

        Returns:
            True if any id was new
        """
        added = [eid for eid in dict.fromkeys(entry_ids) if eid not in self.source_entry_ids]
        if added:
            self.source_entry_ids = self.source_entry_ids + added
        return bool(added)

    def sort_key(self) -> tuple[datetime, str]:
        """Stable age ordering: oldest first, id as tie-break."""
        return (self.created_at, self.id)

    def to_dict(self) -> dict[str, Any]:
        """Convert memory to a JSON-compatible dictionary."""
        return self.model_dump(mode="json")

    def __str__(self) -> str:
        return f"{self.category.value}[{self.id[-8:]}]: {self.primary_text[:50]}"
