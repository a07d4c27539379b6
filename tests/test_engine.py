"""
Tests for the MemoryEngine orchestrator.
"""

import json

import pytest

from wing_memory import MemoryConfig, MemoryEngine
from wing_memory.config import FeatureFlags, RetrievalConfig
from wing_memory.exceptions import MemoryEngineError
from wing_memory.hooks import HookEvent
from wing_memory.models import MemoryCategory, SemanticMemory
from wing_memory.retrieval import BACKGROUND_HEADER
from wing_memory.storage import InMemoryStorage

EXTRACTION = {
    "semantic": [{"key": "user_name", "value": "Alice", "confidence": 0.9}],
    "episodic": [{"event": "去公园散步", "date": "2026-02-05", "emotion": "放松"}],
    "procedural": [{"pattern": "Late night writing", "preference": "Soothing tone"}],
}


def make_config(**features) -> MemoryConfig:
    flags = {"enable_long_term_memory": True, "memory_retrieval_enabled": True, **features}
    return MemoryConfig(
        features=FeatureFlags(**flags),
        retrieval=RetrievalConfig(min_total_memories=0),
    )


@pytest.fixture
async def engine():
    engine = MemoryEngine(make_config(), storage=InMemoryStorage())
    await engine.initialize()
    yield engine
    await engine.close()


class FakeExtractor:
    """Stands in for the host's model call."""

    def __init__(self, reply):
        self.reply = reply
        self.calls = []

    async def __call__(self, instruction, user_input):
        self.calls.append((instruction, user_input))
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


class TestLifecycle:
    """Tests for engine setup and teardown."""

    @pytest.mark.asyncio
    async def test_sqlite_open_and_close(self, temp_db_path):
        config = make_config()
        config.storage.sqlite_path = temp_db_path

        async with await MemoryEngine.open(config) as engine:
            await engine.process_extraction(EXTRACTION, "e1", "2026-02-05")

        async with MemoryEngine(config) as engine:
            assert len(await engine.list_memories()) == 3

    @pytest.mark.asyncio
    async def test_requires_initialization(self):
        engine = MemoryEngine(make_config(), storage=InMemoryStorage())
        with pytest.raises(MemoryEngineError):
            await engine.process_extraction(EXTRACTION, "e1", "2026-02-05")

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, engine):
        await engine.initialize()
        assert await engine.storage.is_connected()


class TestExtraction:
    """Tests for turning extraction output into memories."""

    @pytest.mark.asyncio
    async def test_process_extraction(self, engine):
        report = await engine.process_extraction(EXTRACTION, "e1", "2026-02-05")

        assert report.processed == 3
        assert report.error is None
        assert len(await engine.list_memories(MemoryCategory.EPISODIC)) == 1

    @pytest.mark.asyncio
    async def test_disabled(self):
        engine = MemoryEngine(make_config(enable_long_term_memory=False), storage=InMemoryStorage())
        await engine.initialize()

        report = await engine.process_extraction(EXTRACTION, "e1", "2026-02-05")

        assert report.processed == 0
        assert report.error is not None
        assert await engine.list_memories() == []

    @pytest.mark.asyncio
    async def test_extract_memories_with_fenced_reply(self, engine):
        extractor = FakeExtractor(f"```json\n{json.dumps(EXTRACTION, ensure_ascii=False)}\n```")

        report = await engine.extract_memories("e1", "今天去公园散步了。", "2026-02-05", extractor, "zh")

        assert report.processed == 3
        instruction, user_input = extractor.calls[0]
        assert "JSON" in instruction
        assert user_input.startswith("Entry date: 2026-02-05")
        assert user_input.endswith("今天去公园散步了。")

    @pytest.mark.asyncio
    async def test_extractor_failure_is_reported(self, engine):
        extractor = FakeExtractor(TimeoutError("model timed out"))

        report = await engine.extract_memories("e1", "Went hiking.", "2026-02-05", extractor)

        assert "model timed out" in report.error
        assert await engine.list_memories() == []

    @pytest.mark.asyncio
    async def test_unparseable_reply(self, engine):
        extractor = FakeExtractor("I could not find anything to remember.")

        report = await engine.extract_memories("e1", "Went hiking.", "2026-02-05", extractor)

        assert report.error is not None
        assert report.processed == 0

    @pytest.mark.asyncio
    async def test_oversized_number_is_reported(self, engine):
        reply = '{"semantic": [{"key": "k", "value": "v", "confidence": ' + "9" * 5000 + "}]}"

        report = await engine.process_extraction(reply, "e1", "2026-02-05")

        assert report.error is not None
        assert await engine.list_memories() == []

    @pytest.mark.asyncio
    async def test_empty_entry_skips_extractor(self, engine):
        extractor = FakeExtractor(EXTRACTION)

        report = await engine.extract_memories("e1", "   ", "2026-02-05", extractor)

        assert report.processed == 0
        assert extractor.calls == []

    @pytest.mark.asyncio
    async def test_on_journal_saved(self, engine):
        extractor = FakeExtractor(EXTRACTION)
        report = await engine.on_journal_saved("e1", "Went hiking.", "2026-02-05", extractor)
        assert report.processed == 3

    @pytest.mark.asyncio
    async def test_on_journal_saved_when_auto_is_off(self):
        engine = MemoryEngine(make_config(memory_extraction_auto=False), storage=InMemoryStorage())
        await engine.initialize()
        extractor = FakeExtractor(EXTRACTION)

        assert await engine.on_journal_saved("e1", "Went hiking.", "2026-02-05", extractor) is None
        assert extractor.calls == []


class TestRetrieval:
    """Tests for prompt-context retrieval through the engine."""

    @pytest.mark.asyncio
    async def test_retrieve_context(self, engine):
        await engine.process_extraction(EXTRACTION, "e1", "2026-02-05")

        lines = await engine.retrieve_context()

        assert lines == [
            "[Fact] user_name: Alice",
            "[Event 2026-02-05] 去公园散步 (放松)",
            "[Pattern] Late night writing; preference: Soothing tone",
        ]

    @pytest.mark.asyncio
    async def test_background_context(self, engine):
        await engine.process_extraction(EXTRACTION, "e1", "2026-02-05")

        context = await engine.build_background_context(budget=1)

        assert context == f"{BACKGROUND_HEADER}\n\n[Fact] user_name: Alice"

    @pytest.mark.asyncio
    async def test_retrieval_disabled(self):
        engine = MemoryEngine(make_config(memory_retrieval_enabled=False), storage=InMemoryStorage())
        await engine.initialize()
        await engine.process_extraction(EXTRACTION, "e1", "2026-02-05")

        assert await engine.retrieve() == []
        assert await engine.build_background_context() == ""


class TestReview:
    """Tests for the review passthroughs."""

    @pytest.mark.asyncio
    async def test_edit_and_delete(self, engine):
        await engine.process_extraction(EXTRACTION, "e1", "2026-02-05")
        fact = (await engine.list_memories(MemoryCategory.SEMANTIC))[0]

        await engine.update_memory(fact.id, value="Alicia")
        assert (await engine.get_memory(fact.id)).value == "Alicia"

        assert await engine.delete_memory(fact.id) is True
        assert await engine.clear_memories(MemoryCategory.EPISODIC) == 1
        assert len(await engine.list_memories()) == 1

    @pytest.mark.asyncio
    async def test_merge_group(self, engine, at):
        for minutes in (0, 1):
            await engine.storage.create(SemanticMemory(key="user_name", value="Alice", created_at=at(minutes)))

        groups = await engine.find_merge_candidates(MemoryCategory.SEMANTIC)
        result = await engine.merge_group(groups[0].group_id)

        assert result.success
        assert len(await engine.list_memories()) == 1

    @pytest.mark.asyncio
    async def test_merge_memories(self, engine, at):
        a = SemanticMemory(key="user_name", value="Alice", created_at=at(0))
        b = SemanticMemory(key="nickname", value="Al", created_at=at(1))
        for memory in (a, b):
            await engine.storage.create(memory)

        await engine.merge_memories(MemoryCategory.SEMANTIC, a.id, [b.id], resolved_content="Alice (Al)")

        assert (await engine.get_memory(a.id)).value == "Alice (Al)"
        assert await engine.delete_memories([a.id, b.id]) == 1

    @pytest.mark.asyncio
    async def test_statistics_and_hooks(self, engine):
        seen = []
        engine.register_hook(HookEvent.MEMORY_CREATED, seen.append)

        async def on_ingest(context):
            seen.append(context)

        engine.register_hook(HookEvent.INGEST_COMPLETED, on_ingest, is_async=True)
        await engine.process_extraction(EXTRACTION, "e1", "2026-02-05")

        stats = await engine.get_statistics()

        assert len(seen) == 4
        assert stats["total_memories"] == 3
        assert stats["by_category"]["procedural"] == 1
        assert stats["features"]["enable_long_term_memory"] is True
        assert stats["hooks_registered"] == 2
