"""
Memory tools: let the model store, search, list and delete the user's notes.

All five tools delegate to a shared `MemoryStore` and turn its structured
results into short text the model can read back to the user. Storage
failures are not caught here; ``ToolRegistry.invoke`` reports them to the
model as error results.
"""

from __future__ import annotations

import logging
from typing import Any

from personal_agent.conversation.providers import ToolDefinition
from personal_agent.conversation.tools.registry import ToolRegistration, require_text
from personal_agent.memory.models import Note
from personal_agent.memory.store import MemoryStore

logger = logging.getLogger(__name__)

NO_MATCHES = "No matching notes found."
NO_NOTES = "No notes stored yet."

_NO_PARAMETERS: dict[str, Any] = {"type": "object", "properties": {}, "required": []}


class MemoryTools:
    """StoreNote / SearchNotes / ListNotes / DeleteNote / GetNoteCount.

    Args:
        store: The note store the tools operate on.
        max_search_results: Result cap for ``SearchNotes``.
        max_list_results: Result cap for ``ListNotes``.
    """

    STORE_NOTE = ToolDefinition(
        name="StoreNote",
        description=(
            "Store a note in long-term memory. Use this whenever the user asks "
            "you to remember something or shares a lasting fact about "
            "themselves (schedules, preferences, plans)."
        ),
        parameters={
            "type": "object",
            "properties": {
                "content": {
                    "type": "string",
                    "description": "The content to remember, written as a self-contained note.",
                }
            },
            "required": ["content"],
        },
    )

    SEARCH_NOTES = ToolDefinition(
        name="SearchNotes",
        description=(
            "Search stored notes for text containing the query (case-insensitive). "
            "Use this before answering questions about things the user told you earlier."
        ),
        parameters={
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "A word or phrase to look for, e.g. 'gym'.",
                }
            },
            "required": ["query"],
        },
    )

    LIST_NOTES = ToolDefinition(
        name="ListNotes",
        description="List all stored notes, most recent first.",
        parameters=_NO_PARAMETERS,
    )

    DELETE_NOTE = ToolDefinition(
        name="DeleteNote",
        description=(
            "Delete a note by its ID. Search or list notes first to find the ID."
        ),
        parameters={
            "type": "object",
            "properties": {
                "noteId": {
                    "type": "string",
                    "description": "The ID of the note to delete, e.g. 'note_20250101_120000_ab12cd34'.",
                }
            },
            "required": ["noteId"],
        },
    )

    GET_NOTE_COUNT = ToolDefinition(
        name="GetNoteCount",
        description="Get the total number of stored notes.",
        parameters=_NO_PARAMETERS,
    )

    def __init__(
        self,
        store: MemoryStore,
        max_search_results: int = 10,
        max_list_results: int = 50,
    ) -> None:
        self.store = store
        self.max_search_results = max_search_results
        self.max_list_results = max_list_results

    # ------------------------------------------------------------------
    # Tool handlers
    # ------------------------------------------------------------------

    async def store_note(self, args: dict[str, Any]) -> str:
        content = require_text(args, "content").strip()
        note_id = await self.store.store(content)
        return f"Successfully stored note with ID: {note_id}"

    async def search_notes(self, args: dict[str, Any]) -> str:
        query = str(args.get("query") or "").strip()
        notes = await self.store.search(query, self.max_search_results)
        if not notes:
            logger.info("No matching notes found for query: %r", query)
            return NO_MATCHES
        return _format_notes(notes)

    async def list_notes(self, args: dict[str, Any]) -> str:
        notes = await self.store.list(self.max_list_results)
        if not notes:
            return NO_NOTES
        return _format_notes(notes)

    async def delete_note(self, args: dict[str, Any]) -> str:
        note_id = require_text(args, "noteId").strip()
        if await self.store.delete(note_id):
            return f"Successfully deleted note with ID: {note_id}"
        return f"No note found with ID: {note_id}"

    async def get_note_count(self, args: dict[str, Any]) -> str:
        count = await self.store.count()
        return f"Total notes stored: {count}"

    def registrations(self) -> list[ToolRegistration]:
        """Return the ``(definition, handler)`` pairs for ``ToolRegistry``."""
        return [
            (self.STORE_NOTE, self.store_note),
            (self.SEARCH_NOTES, self.search_notes),
            (self.LIST_NOTES, self.list_notes),
            (self.DELETE_NOTE, self.delete_note),
            (self.GET_NOTE_COUNT, self.get_note_count),
        ]


def _format_notes(notes: list[Note]) -> str:
    return "\n".join(note.format_line() for note in notes)
