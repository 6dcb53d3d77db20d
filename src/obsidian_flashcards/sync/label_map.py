"""Durable mapping from card labels to Anki note ids."""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path

from obsidian_flashcards.error_codes import ErrorCode
from obsidian_flashcards.exceptions import LabelMapError
from obsidian_flashcards.utils.io import atomic_write
from obsidian_flashcards.utils.logging import get_logger

logger = get_logger(__name__)


class LabelMap:
    """Label -> note id entries, at most one per label.

    Entries keep insertion order, which is also the order ``entries()``
    reports them in.
    """

    def __init__(self, entries: dict[str, int] | None = None):
        self._entries: dict[str, int] = dict(entries or {})

    def get(self, label: str) -> int | None:
        return self._entries.get(label)

    def set(self, label: str, note_id: int) -> None:
        self._entries[label] = note_id

    def delete(self, label: str) -> None:
        self._entries.pop(label, None)

    def entries(self) -> list[tuple[str, int]]:
        return list(self._entries.items())

    def to_dict(self) -> dict[str, int]:
        return dict(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, label: object) -> bool:
        return label in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LabelMap):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"LabelMap({self._entries!r})"


class LabelMapStore:
    """Persists a LabelMap as a JSON object ``{label: note_id}``."""

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> LabelMap:
        """Read the label map; a missing file is an empty map.

        Raises:
            LabelMapError: If the file is unreadable or not a label map
        """
        if not self.path.exists():
            logger.debug("label_map_missing", path=str(self.path))
            return LabelMap()

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            msg = f"Cannot read label map {self.path}: {e}"
            raise LabelMapError(
                msg,
                suggestion="Restore the file from a backup or delete it to start over",
                error_code=ErrorCode.STA_LABEL_MAP_READ_FAILED.value,
                context={"path": str(self.path)},
            ) from e

        if not isinstance(raw, dict):
            msg = f"Label map {self.path} must be a JSON object"
            raise LabelMapError(
                msg, error_code=ErrorCode.STA_LABEL_MAP_READ_FAILED.value
            )

        entries: dict[str, int] = {}
        for label, note_id in raw.items():
            if isinstance(note_id, bool) or not isinstance(note_id, int):
                msg = f"Label map entry {label!r} has non-integer note id {note_id!r}"
                raise LabelMapError(
                    msg,
                    error_code=ErrorCode.STA_LABEL_MAP_READ_FAILED.value,
                    context={"path": str(self.path), "label": label},
                )
            entries[label] = note_id

        logger.debug("label_map_loaded", path=str(self.path), entries=len(entries))
        return LabelMap(entries)

    def save(self, label_map: LabelMap) -> None:
        """Write the label map atomically.

        Raises:
            LabelMapError: If the file cannot be written
        """
        try:
            with atomic_write(self.path) as f:
                json.dump(label_map.to_dict(), f, indent=2, ensure_ascii=False)
                f.write("\n")
        except OSError as e:
            msg = f"Cannot write label map {self.path}: {e}"
            raise LabelMapError(
                msg,
                error_code=ErrorCode.STA_LABEL_MAP_WRITE_FAILED.value,
                context={"path": str(self.path)},
            ) from e

        logger.debug("label_map_saved", path=str(self.path), entries=len(label_map))
