"""
Memory Engine orchestrator.

The main entry point for the Wing memory engine.
Ties together storage, deduplication, consolidation and retrieval into a
single interface for the journaling host.
"""

import logging
from datetime import date
from typing import Any, Awaitable, Callable

from wing_memory.config import MemoryConfig
from wing_memory.consolidation import MergeCandidateGroup, MergeResult
from wing_memory.exceptions import MemoryEngineError, StorageError
from wing_memory.extraction import (
    ExtractionNormalizer,
    JournalLanguage,
    build_extraction_input,
    build_extraction_instruction,
)
from wing_memory.hooks import AsyncHookCallback, HookCallback, HookEvent, HookRegistry
from wing_memory.models import BaseMemory, MemoryCategory
from wing_memory.retrieval import RetrievalSelector, format_for_prompt, render_background_context
from wing_memory.storage import BaseStorage, SQLiteStorage
from wing_memory.store import IngestReport, MemoryStore

logger = logging.getLogger(__name__)

# (system instruction, user input) -> raw model reply or decoded payload
Extractor = Callable[[str, str], Awaitable[str | dict[str, Any]]]


class MemoryEngine:
    """
    The main Memory Engine orchestrator.

    Provides a unified interface for all memory operations:
    - Turning extraction output into deduplicated memories
    - Reviewing and merging stored duplicates
    - Selecting memories for the generation prompt

    Usage:
        async with await MemoryEngine.open(config) as engine:
            report = await engine.process_extraction(payload, entry_id, "2026-02-05")
            context = await engine.retrieve_context()
    """

    def __init__(
        self,
        config: MemoryConfig | None = None,
        storage: BaseStorage | None = None,
        hooks: HookRegistry | None = None,
    ):
        self.config = config or MemoryConfig()
        self.storage = storage or SQLiteStorage(self.config.storage)
        self.hooks = hooks or HookRegistry()

        self.store = MemoryStore(self.storage, self.config.dedup, self.hooks)
        self.normalizer = ExtractionNormalizer()
        self.selector = RetrievalSelector(self.store, self.config.retrieval)

        self._initialized = False

    @classmethod
    async def open(
        cls,
        config: MemoryConfig | None = None,
        storage: BaseStorage | None = None,
    ) -> "MemoryEngine":
        """Create an engine and connect its storage."""
        engine = cls(config, storage)
        await engine.initialize()
        return engine

    async def initialize(self) -> None:
        """Connect the storage backend."""
        if self._initialized:
            return

        await self.storage.connect()
        self._initialized = True
        logger.info("Memory engine ready (%s)", type(self.storage).__name__)

    async def close(self) -> None:
        """Close the storage backend."""
        if self._initialized:
            await self.storage.disconnect()
            self._initialized = False

    async def __aenter__(self) -> "MemoryEngine":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise MemoryEngineError("Memory engine is not initialized; call initialize() first")

    # =========================================================================
    # Extraction
    # =========================================================================

    async def process_extraction(
        self,
        payload: dict[str, Any] | str,
        entry_id: str,
        entry_date: date | str | None = None,
    ) -> IngestReport:
        """
        Normalize an extraction result and ingest it.

        Args:
            payload: Extraction output (object, JSON text, or fenced model reply)
            entry_id: Journal entry the output came from
            entry_date: Entry date, used for events with an unusable date

        Returns:
            IngestReport; when long-term memory is disabled nothing is stored
        """
        if not self.config.features.enable_long_term_memory:
            logger.debug("Long-term memory disabled; extraction for %s ignored", entry_id)
            return IngestReport(error="Long-term memory is disabled")

        self._require_initialized()
        batch = self.normalizer.normalize(payload, entry_id, entry_date)
        return await self.store.ingest(batch)

    async def extract_memories(
        self,
        entry_id: str,
        content: str,
        entry_date: date | str,
        extractor: Extractor,
        language: JournalLanguage | str = JournalLanguage.AUTO,
    ) -> IngestReport:
        """
        Run the host's extractor on one journal entry and ingest the result.

        The extractor performs the model call; its failures are logged and
        reported, never raised.
        """
        if not self.config.features.enable_long_term_memory:
            return IngestReport(error="Long-term memory is disabled")
        if not content or not content.strip():
            logger.debug("Entry %s is empty; nothing to extract", entry_id)
            return IngestReport()

        day = entry_date.isoformat() if isinstance(entry_date, date) else str(entry_date)
        instruction = build_extraction_instruction(language)
        try:
            payload = await extractor(instruction, build_extraction_input(content, day))
        except Exception as e:
            logger.error("Memory extraction failed for entry %s: %s", entry_id, e)
            return IngestReport(error=f"Extraction failed: {e}")

        return await self.process_extraction(payload, entry_id, entry_date)

    async def on_journal_saved(
        self,
        entry_id: str,
        content: str,
        entry_date: date | str,
        extractor: Extractor,
        language: JournalLanguage | str = JournalLanguage.AUTO,
    ) -> IngestReport | None:
        """
        Automatic extraction after a journal entry is synthesized.

        Returns None when automatic extraction is turned off.
        """
        if not self.config.features.memory_extraction_auto:
            return None
        return await self.extract_memories(entry_id, content, entry_date, extractor, language)

    # =========================================================================
    # Retrieval
    # =========================================================================

    async def retrieve(self, budget: int | None = None) -> list[BaseMemory]:
        """Select memories for one generation, or nothing if retrieval is off."""
        if not self.config.features.memory_retrieval_enabled:
            return []
        return await self.selector.select(budget)

    async def retrieve_context(self, budget: int | None = None) -> list[str]:
        """Selected memories formatted as prompt strings."""
        return format_for_prompt(await self.retrieve(budget))

    async def build_background_context(self, budget: int | None = None) -> str:
        """The "Background Context" prompt block, or "" when there is none."""
        return render_background_context(await self.retrieve(budget))

    # =========================================================================
    # Review
    # =========================================================================

    async def list_memories(self, category: MemoryCategory | None = None) -> list[BaseMemory]:
        return await self.store.list_memories(category)

    async def get_memory(self, memory_id: str) -> BaseMemory:
        return await self.store.get(memory_id)

    async def update_memory(self, memory_id: str, **changes: Any) -> BaseMemory:
        return await self.store.update(memory_id, **changes)

    async def delete_memory(self, memory_id: str) -> bool:
        return await self.store.delete(memory_id)

    async def delete_memories(self, memory_ids: list[str]) -> int:
        return await self.store.delete_all(memory_ids)

    async def clear_memories(self, category: MemoryCategory | None = None) -> int:
        return await self.store.clear_all(category)

    async def find_merge_candidates(self, category: MemoryCategory) -> list[MergeCandidateGroup]:
        return await self.store.find_merge_candidates(category)

    async def merge_group(
        self,
        group_id: str,
        resolved_content: str | None = None,
        keeping_id: str | None = None,
    ) -> MergeResult:
        return await self.store.merge(group_id, resolved_content, keeping_id)

    async def merge_memories(
        self,
        category: MemoryCategory,
        keeping_id: str,
        discarding_ids: list[str],
        resolved_content: str | None = None,
    ) -> MergeResult:
        return await self.store.merge_records(category, keeping_id, discarding_ids, resolved_content)

    async def get_statistics(self) -> dict[str, Any]:
        """Get engine statistics."""
        try:
            stats = await self.store.get_stats()
        except StorageError as e:
            logger.warning("Could not read storage statistics: %s", e)
            stats = {}

        stats["features"] = self.config.features.model_dump()
        stats["hooks_registered"] = self.hooks.get_hook_count()
        return stats

    def register_hook(
        self,
        event: HookEvent,
        callback: HookCallback | AsyncHookCallback,
        is_async: bool = False,
    ) -> None:
        """Register a hook for memory events."""
        if is_async:
            self.hooks.register_async(event, callback)
        else:
            self.hooks.register(event, callback)
