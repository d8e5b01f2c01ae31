"""
Built-in tools for the personal agent conversation loop.

Each tool module exposes a tool class with:
- ``ToolDefinition`` class attributes describing every tool it provides.
- One async handler per tool: ``(args: dict) -> str``.
- A ``registrations()`` method returning ``(definition, handler)`` pairs.

``build_default_registry()`` assembles the fixed registration list used by
the application. The registry cannot change after it is built.

Quick-start example::

    from personal_agent.conversation.tools import build_default_registry

    registry = build_default_registry(store, settings)
    registry.describe()                        # declarations for the LLM
    await registry.invoke("GetNoteCount", {})  # ToolResult
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from personal_agent.conversation.tools.datetime_tool import DateTimeTools
from personal_agent.conversation.tools.math_tools import MathTools
from personal_agent.conversation.tools.memory_tools import MemoryTools
from personal_agent.conversation.tools.registry import (
    AsyncToolHandler,
    ToolArgumentError,
    ToolRegistry,
    ToolResult,
    UnknownToolError,
)

if TYPE_CHECKING:
    from personal_agent.config import Settings
    from personal_agent.memory.store import MemoryStore


def build_default_registry(store: MemoryStore, settings: Settings) -> ToolRegistry:
    """Build the application's tool registry: memory, math, then date/time tools."""
    memory = MemoryTools(
        store,
        max_search_results=settings.max_search_results,
        max_list_results=settings.max_list_results,
    )
    clock = DateTimeTools(timezone_name=settings.timezone)
    return ToolRegistry(
        [
            *memory.registrations(),
            *MathTools().registrations(),
            *clock.registrations(),
        ],
        timeout=settings.tool_timeout,
    )


__all__ = [
    "AsyncToolHandler",
    "DateTimeTools",
    "MathTools",
    "MemoryTools",
    "ToolArgumentError",
    "ToolRegistry",
    "ToolResult",
    "UnknownToolError",
    "build_default_registry",
]
