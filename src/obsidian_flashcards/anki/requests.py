"""AnkiConnect actions used by the sync.

Each request knows its action name, its parameters and how to turn the raw
``result`` value into a typed one. The bridge sends them one at a time or
bundled in a single ``multi`` call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

from obsidian_flashcards.anki.models import AnkiNote, NoteInfo
from obsidian_flashcards.error_codes import ErrorCode
from obsidian_flashcards.exceptions import AnkiConnectError

ANKI_CONNECT_VERSION = 6


class AnkiRequest:
    """Base class for AnkiConnect actions."""

    action: ClassVar[str]

    def params(self) -> dict[str, Any]:
        return {}

    def parse_result(self, raw: Any) -> Any:
        return raw

    def to_payload(self) -> dict[str, Any]:
        """JSON body of the request (also the shape of a ``multi`` item)."""
        return {
            "action": self.action,
            "version": ANKI_CONNECT_VERSION,
            "params": self.params(),
        }


@dataclass
class VersionRequest(AnkiRequest):
    action: ClassVar[str] = "version"

    def parse_result(self, raw: Any) -> int:
        return int(raw)


@dataclass
class CreateDeckRequest(AnkiRequest):
    """Create a deck; a no-op for decks that already exist."""

    action: ClassVar[str] = "createDeck"

    deck: str

    def params(self) -> dict[str, Any]:
        return {"deck": self.deck}


@dataclass
class AddNoteRequest(AnkiRequest):
    """Create one note; the result is the new note id."""

    action: ClassVar[str] = "addNote"

    note: AnkiNote

    def params(self) -> dict[str, Any]:
        return self.note.to_add_params()

    def parse_result(self, raw: Any) -> int:
        if raw is None:
            msg = "addNote returned no note id"
            raise AnkiConnectError(msg, error_code=ErrorCode.ANK_CREATE_FAILED.value)
        return int(raw)


@dataclass
class UpdateNoteFieldsRequest(AnkiRequest):
    action: ClassVar[str] = "updateNoteFields"

    note_id: int
    fields: dict[str, str]

    def params(self) -> dict[str, Any]:
        return {"note": {"id": self.note_id, "fields": dict(self.fields)}}


@dataclass
class ChangeDeckRequest(AnkiRequest):
    """Move cards to a deck, creating the deck when it is missing."""

    action: ClassVar[str] = "changeDeck"

    card_ids: list[int]
    deck: str

    def params(self) -> dict[str, Any]:
        return {"cards": list(self.card_ids), "deck": self.deck}


@dataclass
class NotesInfoRequest(AnkiRequest):
    """Metadata for notes, positionally aligned with ``note_ids``."""

    action: ClassVar[str] = "notesInfo"

    note_ids: list[int]

    def params(self) -> dict[str, Any]:
        return {"notes": list(self.note_ids)}

    def parse_result(self, raw: Any) -> list[NoteInfo | None]:
        if not isinstance(raw, list) or len(raw) != len(self.note_ids):
            msg = (
                f"notesInfo returned {type(raw).__name__} for "
                f"{len(self.note_ids)} requested notes"
            )
            raise AnkiConnectError(msg, error_code=ErrorCode.ANK_PROTOCOL_ERROR.value)
        return [
            NoteInfo.from_dict(item if isinstance(item, dict) else None)
            for item in raw
        ]


@dataclass
class GetMediaFileNamesRequest(AnkiRequest):
    action: ClassVar[str] = "getMediaFilesNames"

    pattern: str = "*"

    def params(self) -> dict[str, Any]:
        return {"pattern": self.pattern}

    def parse_result(self, raw: Any) -> list[str]:
        if not isinstance(raw, list):
            msg = f"getMediaFilesNames returned {type(raw).__name__}"
            raise AnkiConnectError(msg, error_code=ErrorCode.ANK_PROTOCOL_ERROR.value)
        return [str(name) for name in raw]


@dataclass
class StoreMediaFileRequest(AnkiRequest):
    """Upload base64 file content under ``filename``, replacing any old copy."""

    action: ClassVar[str] = "storeMediaFile"

    filename: str
    data: str
    delete_existing: bool = True

    def params(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "data": self.data,
            "deleteExisting": self.delete_existing,
        }


@dataclass
class DeleteNotesRequest(AnkiRequest):
    action: ClassVar[str] = "deleteNotes"

    note_ids: list[int] = field(default_factory=list)

    def params(self) -> dict[str, Any]:
        return {"notes": list(self.note_ids)}
