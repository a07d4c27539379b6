"""
Batch grouping of stored duplicates for manual review.

Insert-time deduplication only compares a candidate with what is already
stored, so near-duplicates can still slip in (thresholds changed, records
were edited, or two weak matches bridge each other). The grouper re-applies
the same match rules to every stored pair and clusters the matches
transitively, so A~B and B~C put A, B and C in one group.
"""

import hashlib
import logging

from pydantic import BaseModel, Field

from wing_memory.dedup.policy import DeduplicationPolicy
from wing_memory.models import (
    BaseMemory,
    EpisodicMemory,
    MemoryCategory,
    ProceduralMemory,
    SemanticMemory,
)

logger = logging.getLogger(__name__)


class MergeCandidateGroup(BaseModel):
    """A cluster of stored memories that look like duplicates of each other."""

    group_id: str = Field(description="Stable id derived from the category and member ids")
    category: MemoryCategory
    group_key: str = Field(description="Semantic key, episodic date or procedural pattern")
    memory_ids: list[str] = Field(description="Members, oldest first")
    suggested_content: str = Field(description="Advisory content for the merged record")
    suggested_keeping_id: str = Field(description="Member whose content is suggested")

    @property
    def size(self) -> int:
        return len(self.memory_ids)


class _UnionFind:
    def __init__(self, size: int):
        self.parent = list(range(size))

    def find(self, i: int) -> int:
        root = i
        while self.parent[root] != root:
            root = self.parent[root]
        # Path compression
        while self.parent[i] != root:
            self.parent[i], i = root, self.parent[i]
        return root

    def union(self, a: int, b: int) -> None:
        root_a, root_b = self.find(a), self.find(b)
        if root_a != root_b:
            # Lower index stays root so a group's root is its oldest member
            self.parent[max(root_a, root_b)] = min(root_a, root_b)


def make_group_id(category: MemoryCategory, memory_ids: list[str]) -> str:
    """Deterministic group id: same members, same id."""
    material = f"{MemoryCategory(category).value}:{','.join(sorted(memory_ids))}"
    return hashlib.sha256(material.encode("utf-8")).hexdigest()[:16]


class MergeCandidateGrouper:
    """Finds groups of stored memories that should probably be merged."""

    def __init__(self, policy: DeduplicationPolicy | None = None):
        self.policy = policy or DeduplicationPolicy()

    def find_groups(
        self,
        category: MemoryCategory,
        records: list[BaseMemory],
    ) -> list[MergeCandidateGroup]:
        """
        Cluster matching records of one category.

        Args:
            category: Category to group
            records: Stored records; other categories are ignored

        Returns:
            Groups of two or more members, ordered by their oldest member
        """
        category = MemoryCategory(category)
        members = sorted(
            (r for r in records if r.category == category),
            key=lambda r: r.sort_key(),
        )

        uf = _UnionFind(len(members))
        for i in range(len(members)):
            for j in range(i + 1, len(members)):
                if self.policy.match_score(members[i], members[j]) is not None:
                    uf.union(i, j)

        clusters: dict[int, list[BaseMemory]] = {}
        for index, record in enumerate(members):
            clusters.setdefault(uf.find(index), []).append(record)

        groups = [
            self._build_group(category, cluster)
            for _, cluster in sorted(clusters.items())
            if len(cluster) > 1
        ]
        logger.debug("Found %d %s merge groups among %d records", len(groups), category.value, len(members))
        return groups

    def _build_group(self, category: MemoryCategory, cluster: list[BaseMemory]) -> MergeCandidateGroup:
        oldest = cluster[0]
        suggested = self._suggest(cluster)
        ids = [r.id for r in cluster]

        if isinstance(oldest, SemanticMemory):
            group_key = oldest.key
        elif isinstance(oldest, EpisodicMemory):
            group_key = oldest.date
        else:
            group_key = oldest.pattern

        return MergeCandidateGroup(
            group_id=make_group_id(category, ids),
            category=category,
            group_key=group_key,
            memory_ids=ids,
            suggested_content=suggested.primary_text,
            suggested_keeping_id=suggested.id,
        )

    @staticmethod
    def _suggest(cluster: list[BaseMemory]) -> BaseMemory:
        # max() keeps the first of equal items, i.e. the oldest
        first = cluster[0]
        if isinstance(first, SemanticMemory):
            return max(cluster, key=lambda r: r.confidence)
        if isinstance(first, ProceduralMemory):
            return max(cluster, key=lambda r: (r.frequency, len(r.pattern)))
        return max(cluster, key=lambda r: len(r.primary_text))
