"""Typed views of AnkiConnect note payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DEFAULT_NOTE_OPTIONS: dict[str, Any] = {
    "allowDuplicate": False,
    "duplicateScope": "deck",
    "duplicateScopeOptions": {
        "deckName": "Default",
        "checkChildren": False,
        "checkAllModels": False,
    },
}


def default_note_options() -> dict[str, Any]:
    """Fresh copy of the duplicate policy sent with every addNote."""
    options = dict(DEFAULT_NOTE_OPTIONS)
    options["duplicateScopeOptions"] = dict(DEFAULT_NOTE_OPTIONS["duplicateScopeOptions"])
    return options


@dataclass
class AnkiNote:
    """A note as Anki should hold it after the sync.

    ``id`` is None until the note has been created remotely.
    """

    deck_name: str
    model_name: str
    fields: dict[str, str]
    tags: list[str] = field(default_factory=list)
    options: dict[str, Any] = field(default_factory=default_note_options)
    id: int | None = None

    def to_add_params(self) -> dict[str, Any]:
        """Parameters of the ``addNote`` action."""
        return {
            "note": {
                "deckName": self.deck_name,
                "modelName": self.model_name,
                "fields": dict(self.fields),
                "tags": list(self.tags),
                "options": self.options,
            }
        }


@dataclass(frozen=True)
class NoteField:
    """One field of a note as stored in Anki."""

    value: str
    order: int = 0


@dataclass
class NoteInfo:
    """Remote metadata returned by ``notesInfo`` for one note."""

    note_id: int
    model_name: str
    fields: dict[str, NoteField]
    tags: list[str] = field(default_factory=list)
    cards: list[int] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> NoteInfo | None:
        """Parse one ``notesInfo`` entry.

        AnkiConnect answers ``{}`` (or ``null``) for ids that no longer exist;
        those parse to None.
        """
        if not data or data.get("noteId") is None:
            return None

        fields = {
            name: NoteField(
                value=str(raw.get("value", "")), order=int(raw.get("order", 0))
            )
            for name, raw in (data.get("fields") or {}).items()
        }
        return cls(
            note_id=int(data["noteId"]),
            model_name=str(data.get("modelName", "")),
            fields=fields,
            tags=list(data.get("tags") or []),
            cards=[int(card_id) for card_id in data.get("cards") or []],
        )

    def field_value(self, name: str) -> str | None:
        """Value of a field, or None when the note type lacks it."""
        note_field = self.fields.get(name)
        return note_field.value if note_field else None
