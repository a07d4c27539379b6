"""
Pytest configuration and shared fixtures.
"""

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from wing_memory.config import StorageConfig
from wing_memory.storage import InMemoryStorage, SQLiteStorage
from wing_memory.store import MemoryStore

BASE_TIME = datetime(2026, 2, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def temp_directory():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_db_path(temp_directory):
    """A database path inside a temporary directory."""
    return temp_directory / "test_memory.db"


@pytest.fixture
def storage_config(temp_db_path):
    """Create a storage config with temp path."""
    return StorageConfig(sqlite_path=temp_db_path)


@pytest.fixture
async def sqlite_storage(storage_config):
    """Create and connect a SQLite storage instance."""
    storage = SQLiteStorage(storage_config)
    await storage.connect()
    yield storage
    await storage.disconnect()


@pytest.fixture
async def memory_storage():
    """Create and connect an in-process storage instance."""
    storage = InMemoryStorage()
    await storage.connect()
    yield storage
    await storage.disconnect()


@pytest.fixture
def store(memory_storage):
    """A memory store over in-process storage."""
    return MemoryStore(memory_storage)


@pytest.fixture
def at():
    """Build deterministic timestamps: at(5) is five minutes after a fixed base."""

    def _at(minutes: int) -> datetime:
        return BASE_TIME + timedelta(minutes=minutes)

    return _at


@pytest.fixture
def sample_entry_ids():
    """Provide sample journal entry ids."""
    return ["entry-2026-02-05", "entry-2026-02-06", "entry-2026-02-07"]
