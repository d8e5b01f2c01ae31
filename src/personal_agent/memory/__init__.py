"""Long-term note storage for the personal agent."""

from personal_agent.memory.models import Note
from personal_agent.memory.store import MemoryStore, PersistenceError

__all__ = ["MemoryStore", "Note", "PersistenceError"]
