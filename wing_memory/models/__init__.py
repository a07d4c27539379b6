"""
Memory data models for the Wing memory engine.

This module contains Pydantic models for all memory categories:
- BaseMemory: Shared identity, timestamps and provenance
- SemanticMemory: Key/value facts with confidence
- EpisodicMemory: Dated events
- ProceduralMemory: Behavioral patterns with frequency
- Candidates: Normalized extraction output awaiting deduplication
"""

from wing_memory.models.base import BaseMemory, MemoryCategory
from wing_memory.models.semantic import SemanticMemory
from wing_memory.models.episodic import EpisodicMemory, parse_day
from wing_memory.models.procedural import ProceduralMemory
from wing_memory.models.candidates import (
    EpisodicCandidate,
    ExtractionBatch,
    MemoryCandidate,
    ProceduralCandidate,
    SemanticCandidate,
)


def memory_class_for(category: MemoryCategory) -> type[BaseMemory]:
    """Map a memory category to its record class."""
    mapping = {
        MemoryCategory.SEMANTIC: SemanticMemory,
        MemoryCategory.EPISODIC: EpisodicMemory,
        MemoryCategory.PROCEDURAL: ProceduralMemory,
    }
    return mapping[MemoryCategory(category)]


__all__ = [
    # Base
    "BaseMemory",
    "MemoryCategory",
    "memory_class_for",
    # Records
    "SemanticMemory",
    "EpisodicMemory",
    "ProceduralMemory",
    "parse_day",
    # Candidates
    "SemanticCandidate",
    "EpisodicCandidate",
    "ProceduralCandidate",
    "MemoryCandidate",
    "ExtractionBatch",
]
