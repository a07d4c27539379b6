"""
Episodic memory model.

Episodic memory stores significant dated events from the journal,
optionally with the dominant emotion and some context.
"""

from datetime import date

from pydantic import Field, field_validator

from wing_memory.models.base import BaseMemory, MemoryCategory


def parse_day(value: str) -> date | None:
    """Parse a YYYY-MM-DD string, returning None when it is not one."""
    try:
        return date.fromisoformat(value.strip()[:10])
    except (AttributeError, ValueError):
        return None


class EpisodicMemory(BaseMemory):
    """A single event that happened on a calendar day."""

    category: MemoryCategory = Field(default=MemoryCategory.EPISODIC, frozen=True)

    event: str = Field(description="What happened")
    date: str = Field(description="Calendar day of the event (YYYY-MM-DD)")
    emotion: str | None = Field(default=None, description="Dominant emotion")
    context: str | None = Field(default=None, description="Brief context or significance")

    @field_validator("date")
    @classmethod
    def _validate_date(cls, value: str) -> str:
        parsed = parse_day(value)
        if parsed is None or len(value.strip()) < 10:
            raise ValueError(f"date must be YYYY-MM-DD, got {value!r}")
        return parsed.isoformat()

    @property
    def primary_text(self) -> str:
        return self.event

    def set_primary_text(self, text: str) -> None:
        self.event = text
