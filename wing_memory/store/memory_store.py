"""
The memory store.

Single owner of the stored memories. Every mutation (ingest, insert, edit,
delete, clear, merge) runs under the exclusive side of a reader/writer
lock, so deciding on a match and applying it happen atomically with
respect to other callers. Reads take the shared side and only ever see
committed state.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field

from wing_memory.config import DeduplicationConfig
from wing_memory.consolidation import (
    MemoryMerger,
    MergeCandidateGroup,
    MergeCandidateGrouper,
    MergeResult,
)
from wing_memory.dedup import DedupAction, DedupDecision, DeduplicationPolicy
from wing_memory.exceptions import (
    MemoryNotFoundError,
    MergeError,
    MergeGroupNotFoundError,
    StorageError,
)
from wing_memory.extraction import ItemRejection, NormalizedBatch
from wing_memory.hooks import HookContext, HookEvent, HookRegistry, memory_event
from wing_memory.models import (
    BaseMemory,
    ExtractionBatch,
    MemoryCandidate,
    MemoryCategory,
)
from wing_memory.storage.base import BaseStorage
from wing_memory.store.locks import ReadWriteLock

logger = logging.getLogger(__name__)

# Fields a user may not edit directly
_PROTECTED_FIELDS = {"id", "category", "created_at", "updated_at", "source_entry_ids"}


class IngestReport(BaseModel):
    """What happened to each candidate of one ingested batch."""

    inserted_ids: list[str] = Field(default_factory=list)
    reinforced_ids: list[str] = Field(default_factory=list)
    rejections: list[ItemRejection] = Field(
        default_factory=list,
        description="Items dropped by normalization or by the dedup policy",
    )
    failures: list[ItemRejection] = Field(
        default_factory=list,
        description="Items that could not be stored; nothing of theirs was committed",
    )
    error: str | None = None

    @property
    def processed(self) -> int:
        return len(self.inserted_ids) + len(self.reinforced_ids)


class MemoryStore:
    """
    Deduplicating memory store.

    Usage:
        store = MemoryStore(storage)
        report = await store.ingest(normalizer.normalize(payload, entry_id, entry_date))
        groups = await store.find_merge_candidates(MemoryCategory.EPISODIC)
        await store.merge(groups[0].group_id)
    """

    def __init__(
        self,
        storage: BaseStorage,
        config: DeduplicationConfig | None = None,
        hooks: HookRegistry | None = None,
    ):
        self.storage = storage
        self.policy = DeduplicationPolicy(config)
        self.grouper = MergeCandidateGrouper(self.policy)
        self.merger = MemoryMerger()
        self.hooks = hooks or HookRegistry()
        self._lock = ReadWriteLock()

    async def _emit(self, events: list[HookContext]) -> None:
        # Called after the lock is released so hooks may read the store
        for context in events:
            await self.hooks.trigger_async(context)

    # =========================================================================
    # Ingestion
    # =========================================================================

    async def ingest(self, batch: ExtractionBatch) -> IngestReport:
        """
        Apply a batch of candidates: insert, reinforce or reject each one.

        Each candidate commits in its own transaction. A candidate that fails
        to store is recorded in the report and does not stop the others.
        """
        report = IngestReport()
        if isinstance(batch, NormalizedBatch):
            report.rejections.extend(batch.rejections)
            report.error = batch.error

        events: list[HookContext] = []
        async with self._lock.write():
            for category, candidates in (
                (MemoryCategory.SEMANTIC, batch.semantic),
                (MemoryCategory.EPISODIC, batch.episodic),
                (MemoryCategory.PROCEDURAL, batch.procedural),
            ):
                if not candidates:
                    continue
                existing = await self.storage.query_by_category(category)

                for index, candidate in enumerate(candidates):
                    try:
                        decision, record = await self._apply(candidate, existing)
                    except (StorageError, ValueError) as e:
                        logger.error(
                            "Failed to store %s candidate %d from entry %s: %s",
                            category.value,
                            index,
                            candidate.source_entry_id,
                            e,
                        )
                        report.failures.append(
                            ItemRejection(category=category, index=index, reason=str(e))
                        )
                        continue

                    if decision.action == DedupAction.REJECT:
                        logger.warning(
                            "Rejected %s candidate %d: %s", category.value, index, decision.reason
                        )
                        report.rejections.append(
                            ItemRejection(category=category, index=index, reason=decision.reason)
                        )
                    elif decision.action == DedupAction.REINFORCE:
                        existing = [record if m.id == record.id else m for m in existing]
                        report.reinforced_ids.append(record.id)
                        events.append(
                            memory_event(HookEvent.MEMORY_REINFORCED, record, score=decision.score)
                        )
                    else:
                        existing.append(record)
                        report.inserted_ids.append(record.id)
                        events.append(memory_event(HookEvent.MEMORY_CREATED, record))

        logger.info(
            "Ingested batch: %d inserted, %d reinforced, %d rejected, %d failed",
            len(report.inserted_ids),
            len(report.reinforced_ids),
            len(report.rejections),
            len(report.failures),
        )
        events.append(
            HookContext(event=HookEvent.INGEST_COMPLETED, data={"report": report.model_dump()})
        )
        await self._emit(events)
        return report

    async def insert_candidate(self, candidate: MemoryCandidate) -> BaseMemory | None:
        """
        Apply a single candidate.

        Returns:
            The inserted or reinforced record, or None if it was rejected
        """
        async with self._lock.write():
            existing = await self.storage.query_by_category(candidate.category)
            decision, record = await self._apply(candidate, existing)

        if decision.action == DedupAction.REJECT:
            logger.warning("Rejected %s candidate: %s", candidate.category.value, decision.reason)
            return None

        event = (
            HookEvent.MEMORY_REINFORCED
            if decision.action == DedupAction.REINFORCE
            else HookEvent.MEMORY_CREATED
        )
        await self._emit([memory_event(event, record)])
        return record

    async def _apply(
        self,
        candidate: MemoryCandidate,
        existing: list[BaseMemory],
    ) -> tuple[DedupDecision, BaseMemory | None]:
        decision = self.policy.decide(candidate, existing)

        if decision.action == DedupAction.REJECT:
            return decision, None

        if decision.action == DedupAction.REINFORCE:
            record = self.policy.reinforce(decision.match, candidate)
            async with self.storage.transaction():
                if not await self.storage.update(record):
                    raise MemoryNotFoundError(record.id)
            logger.debug("Reinforced %s", record)
            return decision, record

        record = self.policy.build_record(candidate)
        async with self.storage.transaction():
            await self.storage.create(record)
        logger.debug("Inserted %s", record)
        return decision, record

    # =========================================================================
    # Reads
    # =========================================================================

    async def get(self, record_id: str) -> BaseMemory:
        """
        Get one memory.

        Raises:
            MemoryNotFoundError: If no memory has this id
        """
        async with self._lock.read():
            record = await self.storage.read(record_id)
        if record is None:
            raise MemoryNotFoundError(record_id)
        return record

    async def list_memories(self, category: MemoryCategory | None = None) -> list[BaseMemory]:
        """Memories of one category, or all of them, oldest first."""
        async with self._lock.read():
            if category is None:
                records = await self.storage.query_all()
            else:
                records = await self.storage.query_by_category(category)
        return sorted(records, key=lambda r: r.sort_key())

    async def count(self, category: MemoryCategory | None = None) -> int:
        """Number of stored memories."""
        async with self._lock.read():
            return await self.storage.count(category)

    async def snapshot(self) -> dict[MemoryCategory, list[BaseMemory]]:
        """A consistent view of every category, taken under one read lock."""
        async with self._lock.read():
            return {
                category: sorted(
                    await self.storage.query_by_category(category),
                    key=lambda r: r.sort_key(),
                )
                for category in MemoryCategory
            }

    async def get_stats(self) -> dict[str, Any]:
        """Storage statistics."""
        async with self._lock.read():
            return await self.storage.get_stats()

    # =========================================================================
    # User edits
    # =========================================================================

    async def update(self, record_id: str, **changes: Any) -> BaseMemory:
        """
        Edit a memory's fields directly.

        This is the one path that may lower confidence or frequency.

        Raises:
            MemoryNotFoundError: If no memory has this id
            ValueError: If a field is unknown, protected, or fails validation
        """
        async with self._lock.write():
            record = await self.storage.read(record_id)
            if record is None:
                raise MemoryNotFoundError(record_id)

            updated = record.model_copy(deep=True)
            for name, value in changes.items():
                if name in _PROTECTED_FIELDS or name not in type(record).model_fields:
                    raise ValueError(f"Field '{name}' cannot be edited on {record.category.value} memories")
                setattr(updated, name, value)
            updated.touch()

            async with self.storage.transaction():
                if not await self.storage.update(updated):
                    raise MemoryNotFoundError(record_id)

        logger.info("Updated memory %s: %s", record_id, sorted(changes))
        await self._emit([memory_event(HookEvent.MEMORY_UPDATED, updated, fields=sorted(changes))])
        return updated

    async def delete(self, record_id: str) -> bool:
        """Delete one memory. Returns False if it did not exist."""
        return await self.delete_all([record_id]) > 0

    async def delete_all(self, record_ids: list[str]) -> int:
        """
        Delete the given memories in one transaction.

        Returns:
            Number of memories deleted; unknown ids are ignored
        """
        async with self._lock.write():
            doomed = []
            for record_id in dict.fromkeys(record_ids):
                record = await self.storage.read(record_id)
                if record is not None:
                    doomed.append(record)
            async with self.storage.transaction():
                deleted = await self.storage.delete_many([r.id for r in doomed])

        logger.info("Deleted %d memories", deleted)
        await self._emit([memory_event(HookEvent.MEMORY_DELETED, r) for r in doomed])
        return deleted

    async def clear_all(self, category: MemoryCategory | None = None) -> int:
        """
        Delete every memory, or every memory of one category.

        Returns:
            Number of memories deleted
        """
        async with self._lock.write():
            async with self.storage.transaction():
                deleted = await self.storage.clear(category)

        logger.info("Cleared %d memories (category: %s)", deleted, category or "all")
        await self._emit(
            [
                HookContext(
                    event=HookEvent.MEMORIES_CLEARED,
                    category=MemoryCategory(category) if category else None,
                    data={"deleted": deleted},
                )
            ]
        )
        return deleted

    # =========================================================================
    # Consolidation
    # =========================================================================

    async def find_merge_candidates(self, category: MemoryCategory) -> list[MergeCandidateGroup]:
        """Group stored duplicates of one category for review."""
        async with self._lock.read():
            records = await self.storage.query_by_category(category)
        return self.grouper.find_groups(category, records)

    async def merge(
        self,
        group_id: str,
        resolved_content: str | None = None,
        keeping_id: str | None = None,
    ) -> MergeResult:
        """
        Merge a group returned by `find_merge_candidates`.

        Groups are recomputed under the write lock, so a group that no
        longer exists (the store changed since it was shown) is refused.

        Raises:
            MergeGroupNotFoundError: If the group id is unknown or stale
        """
        async with self._lock.write():
            group = None
            records: list[BaseMemory] = []
            for category in MemoryCategory:
                records = await self.storage.query_by_category(category)
                group = next(
                    (g for g in self.grouper.find_groups(category, records) if g.group_id == group_id),
                    None,
                )
                if group is not None:
                    break

            if group is None:
                raise MergeGroupNotFoundError(group_id)

            members = [r for r in records if r.id in group.memory_ids]
            merged, result = await self._merge_unlocked(members, keeping_id, resolved_content)

        await self._emit([memory_event(HookEvent.MEMORIES_MERGED, merged, result=result.model_dump())])
        return result

    async def merge_records(
        self,
        category: MemoryCategory,
        keeping_id: str,
        discarding_ids: list[str],
        resolved_content: str | None = None,
    ) -> MergeResult:
        """
        Merge explicitly chosen memories into `keeping_id`.

        Raises:
            MemoryNotFoundError: If any id is unknown
            MergeError: If a record is of another category
        """
        category = MemoryCategory(category)
        ids = list(dict.fromkeys([keeping_id, *discarding_ids]))

        async with self._lock.write():
            members = []
            for record_id in ids:
                record = await self.storage.read(record_id)
                if record is None:
                    raise MemoryNotFoundError(record_id)
                if record.category != category:
                    raise MergeError(
                        f"Memory {record_id} is {record.category.value}, not {category.value}",
                        {"memory_id": record_id},
                    )
                members.append(record)

            merged, result = await self._merge_unlocked(members, keeping_id, resolved_content)

        await self._emit([memory_event(HookEvent.MEMORIES_MERGED, merged, result=result.model_dump())])
        return result

    async def _merge_unlocked(
        self,
        members: list[BaseMemory],
        keeping_id: str | None,
        resolved_content: str | None,
    ) -> tuple[BaseMemory, MergeResult]:
        merged, result = self.merger.merge(members, keeping_id, resolved_content)

        async with self.storage.transaction():
            if not await self.storage.update(merged):
                raise MemoryNotFoundError(merged.id)
            await self.storage.delete_many(result.absorbed_ids)

        logger.info("Merged %d memories into %s", len(result.merged_ids), merged.id)
        return merged, result
