"""
Consolidation of duplicates that are already stored.

Provides:
- Transitive grouping of likely duplicates for review
- Merging a confirmed group into one record
"""

from wing_memory.consolidation.grouper import (
    MergeCandidateGroup,
    MergeCandidateGrouper,
    make_group_id,
)
from wing_memory.consolidation.merger import MemoryMerger, MergeResult

__all__ = [
    # Grouper
    "MergeCandidateGroup",
    "MergeCandidateGrouper",
    "make_group_id",
    # Merger
    "MergeResult",
    "MemoryMerger",
]
