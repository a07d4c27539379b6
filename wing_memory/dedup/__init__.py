"""
Duplicate detection for memories.

Provides:
- Normalized edit-distance similarity
- Insert-time deduplication policy
"""

from wing_memory.dedup.policy import DedupAction, DedupDecision, DeduplicationPolicy
from wing_memory.dedup.similarity import levenshtein_distance, similarity

__all__ = [
    "DedupAction",
    "DedupDecision",
    "DeduplicationPolicy",
    "levenshtein_distance",
    "similarity",
]
