"""
Tests for the command-line tool.
"""

import asyncio
import json

import pytest

from wing_memory.cli import main
from wing_memory.config import StorageConfig
from wing_memory.models import EpisodicMemory
from wing_memory.storage import SQLiteStorage

EXTRACTION = {
    "semantic": [{"key": "user_name", "value": "Alice", "confidence": 0.9}],
    "episodic": [{"event": "", "date": "2026-02-05"}],
    "procedural": [{"pattern": "Late night writing"}],
}


@pytest.fixture
def extraction_file(temp_directory):
    path = temp_directory / "extraction.json"
    path.write_text(json.dumps(EXTRACTION), encoding="utf-8")
    return path


def seed(db_path, *memories):
    async def _seed():
        async with SQLiteStorage(StorageConfig(sqlite_path=db_path)) as storage:
            for memory in memories:
                await storage.create(memory)

    asyncio.run(_seed())


class TestCLI:
    """Tests for the wing-memory subcommands."""

    def test_ingest_and_stats(self, temp_db_path, extraction_file, capsys):
        code = main(
            ["--db", str(temp_db_path), "ingest", str(extraction_file), "--entry-id", "e1", "--date", "2026-02-05"]
        )
        assert code == 0
        assert "Inserted 2, reinforced 0, rejected 1, failed 0" in capsys.readouterr().out

        assert main(["--db", str(temp_db_path), "stats"]) == 0
        out = capsys.readouterr().out
        assert "Total memories: 2" in out
        assert "procedural" in out

    def test_ingest_unparseable_file(self, temp_db_path, temp_directory, capsys):
        path = temp_directory / "reply.txt"
        path.write_text("no memories today", encoding="utf-8")

        code = main(["--db", str(temp_db_path), "ingest", str(path), "--entry-id", "e1", "--date", "2026-02-05"])

        assert code == 1
        assert "Error" in capsys.readouterr().err

    def test_ingest_missing_file(self, temp_db_path, temp_directory, capsys):
        missing = temp_directory / "missing.json"
        code = main(["--db", str(temp_db_path), "ingest", str(missing), "--entry-id", "e1", "--date", "2026-02-05"])
        assert code == 1

    def test_list(self, temp_db_path, extraction_file, capsys):
        main(["--db", str(temp_db_path), "ingest", str(extraction_file), "--entry-id", "e1", "--date", "2026-02-05"])
        capsys.readouterr()

        assert main(["--db", str(temp_db_path), "list", "--category", "semantic"]) == 0

        out = capsys.readouterr().out
        assert "[Fact] user_name: Alice" in out
        assert "Late night writing" not in out

    def test_groups_and_merge(self, temp_db_path, at, capsys):
        a = EpisodicMemory(event="去公园散步", date="2026-02-05", created_at=at(0))
        b = EpisodicMemory(event="去公园里散步", date="2026-02-05", created_at=at(1))
        seed(temp_db_path, a, b)

        assert main(["--db", str(temp_db_path), "groups", "episodic"]) == 0
        out = capsys.readouterr().out
        group_id = out.split()[0]
        assert a.id in out and b.id in out

        assert main(["--db", str(temp_db_path), "merge", group_id, "--content", "傍晚去公园散步"]) == 0
        assert f"Merged 2 memories into {a.id}" in capsys.readouterr().out

        main(["--db", str(temp_db_path), "list"])
        assert "傍晚去公园散步" in capsys.readouterr().out

    def test_merge_unknown_group(self, temp_db_path, capsys):
        assert main(["--db", str(temp_db_path), "merge", "0000000000000000"]) == 1
        assert "0000000000000000" in capsys.readouterr().err

    def test_delete_and_clear(self, temp_db_path, extraction_file, capsys):
        main(["--db", str(temp_db_path), "ingest", str(extraction_file), "--entry-id", "e1", "--date", "2026-02-05"])
        main(["--db", str(temp_db_path), "list", "--category", "semantic"])
        fact_id = capsys.readouterr().out.strip().splitlines()[-1].split()[0]

        assert main(["--db", str(temp_db_path), "delete", fact_id, "missing-id"]) == 0
        assert "Deleted 1 memories" in capsys.readouterr().out

        assert main(["--db", str(temp_db_path), "clear"]) == 0
        assert "Cleared 1 memories" in capsys.readouterr().out

    def test_retrieve_below_minimum(self, temp_db_path, extraction_file, capsys):
        main(["--db", str(temp_db_path), "ingest", str(extraction_file), "--entry-id", "e1", "--date", "2026-02-05"])
        capsys.readouterr()

        assert main(["--db", str(temp_db_path), "retrieve"]) == 0
        assert capsys.readouterr().out == ""

    def test_retrieve_with_config(self, temp_db_path, temp_directory, extraction_file, capsys):
        config_path = temp_directory / "config.json"
        config_path.write_text(json.dumps({"retrieval": {"min_total_memories": 0}}), encoding="utf-8")
        main(["--db", str(temp_db_path), "ingest", str(extraction_file), "--entry-id", "e1", "--date", "2026-02-05"])
        capsys.readouterr()

        assert main(["--config", str(config_path), "--db", str(temp_db_path), "retrieve", "--budget", "5"]) == 0

        out = capsys.readouterr().out
        assert "[Fact] user_name: Alice" in out
        assert "[Pattern] Late night writing" in out

    def test_unsupported_config_format(self, temp_db_path, temp_directory, capsys):
        config_path = temp_directory / "config.yaml"
        config_path.write_text("retrieval: {}", encoding="utf-8")

        assert main(["--config", str(config_path), "--db", str(temp_db_path), "stats"]) == 1

    def test_command_required(self):
        with pytest.raises(SystemExit):
            main([])
