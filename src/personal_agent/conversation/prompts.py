"""System policy prompt for the personal agent.

The policy is re-sent as a system turn with every user turn so the model
always sees the current persona, the memory rules and the tool catalogue.
"""

from __future__ import annotations

from typing import Iterable

from personal_agent.conversation.providers import ToolDefinition

DEFAULT_PERSONA = (
    "You are a helpful personal assistant with long-term memory. "
    "Answer concisely and naturally. "
    "Do not make up information; if you don't know, say so."
)

MEMORY_POLICY = """\
Based on the user's latest message, decide whether you need to:
1. Store information using StoreNote if they want you to remember something, or \
share a lasting fact about themselves (schedules, preferences, plans).
2. Search information using SearchNotes before answering questions about things \
they told you earlier.
3. List all notes using ListNotes if they want to see everything you remember.
4. Delete a note using DeleteNote if they want something forgotten (find its ID first).
5. Use the math and date/time tools for calculations and questions about dates.
6. Otherwise, just have a conversation.
Tool results are for you; summarise them for the user instead of pasting them."""


def build_system_prompt(
    tools: Iterable[ToolDefinition],
    persona: str = DEFAULT_PERSONA,
) -> str:
    """Compose persona, memory policy and the enumerated tool catalogue."""
    catalogue = "\n".join(f"- {tool.name}: {tool.description}" for tool in tools)
    return f"{persona}\n\n{MEMORY_POLICY}\n\nAvailable tools:\n{catalogue}"
