"""
Procedural memory model.

Procedural memory captures behavioral regularities inferred from the way
the user writes: habits, interaction preferences and what triggers them.
"""

from pydantic import Field

from wing_memory.models.base import BaseMemory, MemoryCategory


class ProceduralMemory(BaseMemory):
    """A recurring pattern and the preference it implies."""

    category: MemoryCategory = Field(default=MemoryCategory.PROCEDURAL, frozen=True)

    pattern: str = Field(description="Behavioral regularity, e.g. 'Late night writing'")
    preference: str = Field(default="", description="Preference the pattern implies")
    trigger: str | None = Field(default=None, description="Condition under which it applies")
    frequency: int = Field(default=1, description="Times this pattern was observed", ge=1)

    @property
    def primary_text(self) -> str:
        return self.pattern

    def set_primary_text(self, text: str) -> None:
        self.pattern = text

    def record_occurrence(self) -> None:
        """Count one more observation of the pattern."""
        self.frequency += 1
