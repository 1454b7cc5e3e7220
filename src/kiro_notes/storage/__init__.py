"""Storage layer for Kiro Notes."""

from kiro_notes.storage.note_repository import NoteRepository

__all__ = [
    "NoteRepository",
]
