"""Data types for stored memory notes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Note:
    """A single stored memory item.

    Notes are immutable: correcting one means deleting it and storing a new
    one.

    Attributes:
        id: Unique note ID, e.g. ``"note_20261019_141500_3fa85f64"``.
        content: The remembered text (never empty).
        created_at: Insertion time (timezone-aware, UTC), set by the store.
        tags: Optional tags. Stored but not used by any query.
    """

    id: str
    content: str
    created_at: datetime
    tags: tuple[str, ...] | None = None

    def format_line(self) -> str:
        """Render the note as the one-line form shown to the LLM (local time)."""
        created = self.created_at.astimezone()
        return f"ID: {self.id} | {self.content} (Created: {created:%Y-%m-%d %H:%M})"
