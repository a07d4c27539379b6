"""
Semantic memory model.

Semantic memory stores stable facts about the user, such as names,
places, relationships and preferences, as key/value pairs.
"""

from pydantic import Field

from wing_memory.models.base import BaseMemory, MemoryCategory


class SemanticMemory(BaseMemory):
    """
    A fact about the user.

    Matching identity is the case-insensitive key; confidence grows each
    time new evidence repeats the fact.
    """

    category: MemoryCategory = Field(default=MemoryCategory.SEMANTIC, frozen=True)

    key: str = Field(description="Short fact label, e.g. 'user_name' or 'current_city'")
    value: str = Field(description="The fact content")
    confidence: float = Field(
        default=0.5,
        description="Confidence in this fact (0-1)",
        ge=0.0,
        le=1.0,
    )

    @property
    def primary_text(self) -> str:
        return self.value

    def set_primary_text(self, text: str) -> None:
        self.value = text

    @property
    def match_key(self) -> str:
        """Normalized key used for equality matching."""
        return self.key.strip().casefold()

    def strengthen(self, boost: float, floor: float = 0.0) -> None:
        """Raise confidence from at least `floor` by `boost`, capped at 1.0."""
        self.confidence = min(1.0, max(self.confidence, floor) + boost)
