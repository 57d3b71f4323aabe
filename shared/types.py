"""
Entry kinds and related constants used on both sides of the API.
"""

from __future__ import annotations

from enum import Enum


class EntryKind(str, Enum):
    """The fixed content category of an entry."""

    THOUGHT = "thought"
    LEARNING = "learning"
    NOTE = "note"

    @classmethod
    def parse(cls, value: str | None) -> "EntryKind | None":
        """Return the matching kind, or None for unknown values."""
        try:
            return cls(value)
        except ValueError:
            return None


ENTRY_KINDS: tuple[str, ...] = tuple(kind.value for kind in EntryKind)
