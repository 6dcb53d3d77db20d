"""Decide what Anki has to do for each local card.

Every local record lands in exactly one of create, update or ignore; every
label map entry without a local card lands in delete.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import TYPE_CHECKING

from obsidian_flashcards.anki.requests import NotesInfoRequest
from obsidian_flashcards.error_codes import ErrorCode
from obsidian_flashcards.sync.label_map import LabelMap
from obsidian_flashcards.sync.models import CardRecord, SyncPartition
from obsidian_flashcards.utils.logging import get_logger

if TYPE_CHECKING:
    from obsidian_flashcards.anki.bridge import AnkiBridge
    from obsidian_flashcards.anki.models import NoteInfo

logger = get_logger(__name__)

FieldComparator = Callable[[str, "str | None"], bool]


def _exact_match(local: str, remote: str | None) -> bool:
    return remote is not None and local == remote


# Fields that decide whether a note is stale, with how to compare them
FIELD_COMPARATORS: dict[str, FieldComparator] = {
    "Front": _exact_match,
    "Back": _exact_match,
}

_CREATE, _UPDATE, _IGNORE = "create", "update", "ignore"


class DiffEngine:
    """Partitions records against the remote state with one ``notesInfo``."""

    def __init__(
        self,
        bridge: AnkiBridge,
        comparators: dict[str, FieldComparator] | None = None,
    ):
        self.bridge = bridge
        self.comparators = comparators if comparators is not None else FIELD_COMPARATORS

    def is_fresh(self, record: CardRecord, info: NoteInfo) -> bool:
        """True when the remote note already holds the record's fields."""
        return all(
            compare(record.note.fields.get(name, ""), info.field_value(name))
            for name, compare in self.comparators.items()
        )

    def partition(
        self,
        records: Sequence[CardRecord],
        label_map: LabelMap,
        protected_labels: Iterable[str] = (),
    ) -> SyncPartition:
        """Split records into create, update and ignore, and find deletions.

        Args:
            records: Records built this run, in card order
            label_map: Current label -> note id mapping
            protected_labels: Labels of cards that exist locally but could
                not be built; never deleted

        Raises:
            AnkiConnectError: If ``notesInfo`` fails
        """
        decisions: list[tuple[str, CardRecord]] = []
        existing: list[int] = []  # indexes into decisions awaiting notesInfo
        claimed: dict[int, str] = {}

        for record in records:
            note_id = record.note_id
            if note_id is None:
                decisions.append((_CREATE, record))
                continue
            if note_id in claimed:
                # Two labels share a note; the later card gets its own note
                logger.warning(
                    "label_map_duplicate_id",
                    label=record.label,
                    note_id=note_id,
                    claimed_by=claimed[note_id],
                    error_code=ErrorCode.STA_DUPLICATE_ID.value,
                )
                decisions.append((_CREATE, record.without_id()))
                continue
            claimed[note_id] = record.label
            existing.append(len(decisions))
            decisions.append((_IGNORE, record))

        if existing:
            note_ids = [decisions[i][1].note_id for i in existing]
            infos = self.bridge.send(NotesInfoRequest(note_ids=note_ids))  # type: ignore[arg-type]
            for index, info in zip(existing, infos, strict=True):
                record = decisions[index][1]
                if info is None:
                    logger.info(
                        "remote_note_missing",
                        label=record.label,
                        note_id=record.note_id,
                    )
                    decisions[index] = (_CREATE, record.without_id())
                    continue
                record.card_ids = list(info.cards)
                if not self.is_fresh(record, info):
                    decisions[index] = (_UPDATE, record)

        partition = SyncPartition()
        for decision, record in decisions:
            if decision == _CREATE:
                partition.to_create.append(record)
            elif decision == _UPDATE:
                partition.to_update.append(record)
            else:
                partition.to_ignore.append(record)

        local_labels = {record.label for record in records}
        protected = set(protected_labels)
        partition.to_delete = [
            (label, note_id)
            for label, note_id in label_map.entries()
            if label not in local_labels and label not in protected
        ]

        logger.debug(
            "partition_computed",
            create=len(partition.to_create),
            update=len(partition.to_update),
            ignore=len(partition.to_ignore),
            delete=len(partition.to_delete),
        )
        return partition
