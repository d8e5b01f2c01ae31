"""
Personal Agent - a console chat agent with long-term memory and tools.

The agent augments an LLM chat session (any OpenAI-compatible endpoint,
Ollama by default) with durable notes stored in SQLite and a small set of
callable tools:

- Memory tools: store, search, list, delete and count notes
- Math tools: add and subtract
- Date/time tools: current time in any timezone, days until a date, ...

Quick Start:
    >>> from personal_agent.memory import MemoryStore
    >>> from personal_agent.conversation.tools import build_default_registry
    >>> from personal_agent.conversation import AgentOrchestrator, OpenAICompatibleProvider
    >>> store = MemoryStore("notes.db")
    >>> await store.initialize()
    >>> orchestrator = AgentOrchestrator(
    ...     provider=OpenAICompatibleProvider(model="qwen3:8b"),
    ...     registry=build_default_registry(store, get_settings()),
    ... )
    >>> result = await orchestrator.process("Remember I go to the gym on Mondays", print)
"""

from personal_agent.config import Settings, get_settings

__version__ = "0.1.0"
__all__ = ["Settings", "get_settings"]
