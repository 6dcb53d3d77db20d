"""AnkiConnect bridge and request types."""

from obsidian_flashcards.anki.bridge import AnkiBridge, BridgeResult
from obsidian_flashcards.anki.models import AnkiNote, NoteField, NoteInfo

__all__ = ["AnkiBridge", "AnkiNote", "BridgeResult", "NoteField", "NoteInfo"]
