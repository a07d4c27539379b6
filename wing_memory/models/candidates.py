"""
Extraction candidates.

A candidate is one fact, event or pattern proposed by the extraction step
and already cleaned by the normalizer, but not yet committed to the store.
"""

from pydantic import BaseModel, Field

from wing_memory.models.base import MemoryCategory


class SemanticCandidate(BaseModel):
    """A proposed semantic fact."""

    category: MemoryCategory = Field(default=MemoryCategory.SEMANTIC, frozen=True)
    key: str = Field(min_length=1)
    value: str = Field(min_length=1)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    source_entry_id: str

    @property
    def primary_text(self) -> str:
        return self.value


class EpisodicCandidate(BaseModel):
    """A proposed dated event."""

    category: MemoryCategory = Field(default=MemoryCategory.EPISODIC, frozen=True)
    event: str = Field(min_length=1)
    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    emotion: str | None = None
    context: str | None = None
    source_entry_id: str

    @property
    def primary_text(self) -> str:
        return self.event


class ProceduralCandidate(BaseModel):
    """A proposed behavioral pattern."""

    category: MemoryCategory = Field(default=MemoryCategory.PROCEDURAL, frozen=True)
    pattern: str = Field(min_length=1)
    preference: str = ""
    trigger: str | None = None
    source_entry_id: str

    @property
    def primary_text(self) -> str:
        return self.pattern


MemoryCandidate = SemanticCandidate | EpisodicCandidate | ProceduralCandidate


class ExtractionBatch(BaseModel):
    """Cleaned candidates from one extraction run, grouped by category."""

    semantic: list[SemanticCandidate] = Field(default_factory=list)
    episodic: list[EpisodicCandidate] = Field(default_factory=list)
    procedural: list[ProceduralCandidate] = Field(default_factory=list)

    def candidates(self) -> list[MemoryCandidate]:
        """All candidates in ingestion order: semantic, episodic, procedural."""
        return [*self.semantic, *self.episodic, *self.procedural]

    def __len__(self) -> int:
        return len(self.semantic) + len(self.episodic) + len(self.procedural)
