"""
Memory merging.

Folds a group of duplicate memories into one keeper record. Persisting
the result (update the keeper, delete the rest) is the store's job; the
merger only computes it.
"""

import logging
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from wing_memory.exceptions import MergeError
from wing_memory.models import (
    BaseMemory,
    EpisodicMemory,
    ProceduralMemory,
    SemanticMemory,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    """Get current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


class MergeResult(BaseModel):
    """Result of a merge operation."""

    success: bool
    merged_ids: list[str]
    result_id: str | None = None
    absorbed_ids: list[str] = Field(default_factory=list)
    reason: str | None = None
    merged_at: datetime = Field(default_factory=_utcnow)


class MemoryMerger:
    """
    Merges duplicate memories into the oldest (or a chosen) member.

    Handles:
    - Unioning provenance
    - Keeping the strongest evidence (max confidence, summed frequency)
    - Filling missing optional fields from absorbed records
    """

    def merge(
        self,
        memories: list[BaseMemory],
        keeping_id: str | None = None,
        resolved_content: str | None = None,
    ) -> tuple[BaseMemory, MergeResult]:
        """
        Merge memories of one category.

        Args:
            memories: Members of the group, two or more
            keeping_id: Member that survives; defaults to the oldest
            resolved_content: Replaces the keeper's primary text when given

        Returns:
            The updated keeper and a MergeResult naming the absorbed ids

        Raises:
            MergeError: If the members are inconsistent
        """
        if len(memories) < 2:
            raise MergeError("A merge needs at least two memories")

        categories = {m.category for m in memories}
        if len(categories) > 1:
            raise MergeError(
                "Cannot merge memories of different categories",
                {"categories": sorted(c.value for c in categories)},
            )

        ordered = sorted(memories, key=lambda m: m.sort_key())
        if keeping_id is None:
            keeping_id = ordered[0].id
        keeper = next((m for m in ordered if m.id == keeping_id), None)
        if keeper is None:
            raise MergeError(
                f"Keeper {keeping_id} is not part of the merge",
                {"keeping_id": keeping_id},
            )

        absorbed = [m for m in ordered if m.id != keeping_id]
        merged = keeper.model_copy(deep=True)

        if isinstance(merged, SemanticMemory):
            self._merge_semantic(merged, absorbed)
        elif isinstance(merged, EpisodicMemory):
            self._merge_episodic(merged, absorbed)
        elif isinstance(merged, ProceduralMemory):
            self._merge_procedural(merged, absorbed)

        for memory in absorbed:
            merged.add_sources(memory.source_entry_ids)

        if resolved_content is not None:
            resolved_content = resolved_content.strip()
            if not resolved_content:
                raise MergeError("Resolved content must not be empty")
            merged.set_primary_text(resolved_content)

        merged.touch()

        absorbed_ids = [m.id for m in absorbed]
        logger.debug("Merged %s into %s", absorbed_ids, merged.id)
        return merged, MergeResult(
            success=True,
            merged_ids=[m.id for m in ordered],
            result_id=merged.id,
            absorbed_ids=absorbed_ids,
            reason=f"Merged {len(ordered)} {merged.category.value} memories into one",
        )

    def _merge_semantic(self, keeper: SemanticMemory, others: list[SemanticMemory]) -> None:
        keeper.confidence = max([keeper.confidence] + [m.confidence for m in others])

    def _merge_episodic(self, keeper: EpisodicMemory, others: list[EpisodicMemory]) -> None:
        for memory in others:
            if keeper.emotion is None and memory.emotion:
                keeper.emotion = memory.emotion
            if keeper.context is None and memory.context:
                keeper.context = memory.context

    def _merge_procedural(self, keeper: ProceduralMemory, others: list[ProceduralMemory]) -> None:
        keeper.frequency = keeper.frequency + sum(m.frequency for m in others)
        keeper.preference = max(
            [keeper.preference] + [m.preference for m in others],
            key=len,
        )
        if keeper.trigger is None:
            keeper.trigger = next((m.trigger for m in others if m.trigger), None)
