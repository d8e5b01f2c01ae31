"""
Pytest configuration for the personal agent test suite.

Async tests run under the anyio plugin on the asyncio backend (aiosqlite
and the OpenAI client are asyncio-only).
"""

import pytest

from personal_agent.memory.store import MemoryStore


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def store(tmp_path, anyio_backend) -> MemoryStore:
    """An initialised note store backed by a fresh SQLite file."""
    note_store = MemoryStore(str(tmp_path / "notes.db"))
    await note_store.initialize()
    return note_store
