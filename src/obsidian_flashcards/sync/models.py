"""Data models for the reconciliation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from obsidian_flashcards.anki.models import AnkiNote
from obsidian_flashcards.models import Card, MediaRef


@dataclass
class CardRecord:
    """A local card paired with the note Anki should hold for it."""

    card: Card
    note: AnkiNote
    media: list[MediaRef] = field(default_factory=list)
    card_ids: list[int] = field(default_factory=list)

    @property
    def label(self) -> str:
        return self.card.label

    @property
    def note_id(self) -> int | None:
        return self.note.id

    def without_id(self) -> CardRecord:
        """Copy of the record that will be created as a new note."""
        return CardRecord(
            card=self.card,
            note=replace(self.note, id=None),
            media=list(self.media),
            card_ids=[],
        )


@dataclass
class SyncPartition:
    """What the sync has to do with every local record and label map entry."""

    to_create: list[CardRecord] = field(default_factory=list)
    to_update: list[CardRecord] = field(default_factory=list)
    to_ignore: list[CardRecord] = field(default_factory=list)
    to_delete: list[tuple[str, int]] = field(default_factory=list)


@dataclass(frozen=True)
class CardError:
    """A per-card failure that did not stop the run.

    ``stage`` names the step that failed: render, create, update, move,
    media or delete.
    """

    label: str
    stage: str
    message: str


@dataclass(frozen=True)
class MediaUpload:
    """File content ready for ``storeMediaFile``."""

    key: str
    data: str  # base64


@dataclass
class SyncReport:
    """Outcome of one sync run."""

    scanned: int = 0
    found: int = 0
    created: int = 0
    updated: int = 0
    deleted: int = 0
    ignored: int = 0
    uploaded: int = 0
    errors: list[CardError] = field(default_factory=list)
    dry_run: bool = False

    @property
    def failed(self) -> int:
        return len(self.errors)

    def render(self) -> str:
        """Human-readable summary."""
        lines = [
            "Done!" if not self.dry_run else "Dry run, nothing was changed.",
            f"Scanned\t{self.scanned} file(s)",
            f"Found\t\t{self.found} card(s)",
            "",
            f"Created\t{self.created} card(s)",
            f"Updated\t{self.updated} card(s)",
            f"Deleted\t{self.deleted} card(s)",
            f"Ignored\t{self.ignored} card(s)",
            f"Uploaded\t{self.uploaded} file(s)",
        ]
        if self.errors:
            lines.append("")
            lines.append(f"Failed\t{len(self.errors)} item(s)")
            lines.extend(
                f"  [{error.stage}] {error.label}: {error.message}"
                for error in self.errors
            )
        return "\n".join(lines)
