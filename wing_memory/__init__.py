"""
Wing Memory - Long-term memory for a personal journaling assistant

A memory engine implementing:
- Three memory categories (semantic facts, episodic events, procedural patterns)
- Normalization of language-model extraction output
- Insert-time deduplication and reinforcement
- Transitive grouping of stored duplicates for manual merging
- Budgeted retrieval for the journal generation prompt

Quick Start:
    from wing_memory import MemoryCategory, MemoryConfig, MemoryEngine

    config = MemoryConfig()
    config.features.enable_long_term_memory = True

    async with await MemoryEngine.open(config) as engine:
        report = await engine.process_extraction(
            {"semantic": [{"key": "user_name", "value": "Alice", "confidence": 0.9}]},
            entry_id="entry-1",
            entry_date="2026-02-05",
        )
        groups = await engine.find_merge_candidates(MemoryCategory.EPISODIC)
        context = await engine.retrieve_context()
"""

from wing_memory.config import MemoryConfig
from wing_memory.models import (
    BaseMemory,
    EpisodicMemory,
    MemoryCategory,
    ProceduralMemory,
    SemanticMemory,
)
from wing_memory.exceptions import (
    ExtractionParseError,
    MemoryEngineError,
    MemoryNotFoundError,
    MergeError,
    MergeGroupNotFoundError,
    StorageError,
)
from wing_memory.api.memory_engine import MemoryEngine
from wing_memory.store import IngestReport, MemoryStore

__version__ = "0.1.0"

__all__ = [
    # Main entry points
    "MemoryEngine",
    "MemoryStore",
    "IngestReport",
    # Configuration
    "MemoryConfig",
    # Memory types
    "MemoryCategory",
    "BaseMemory",
    "SemanticMemory",
    "EpisodicMemory",
    "ProceduralMemory",
    # Errors
    "MemoryEngineError",
    "StorageError",
    "MemoryNotFoundError",
    "ExtractionParseError",
    "MergeError",
    "MergeGroupNotFoundError",
]
