"""Work out which embedded files Anki still needs and load them."""

from __future__ import annotations

import base64
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from obsidian_flashcards.anki.requests import GetMediaFileNamesRequest
from obsidian_flashcards.error_codes import ErrorCode
from obsidian_flashcards.exceptions import MissingLocalFileError
from obsidian_flashcards.models import MediaRef
from obsidian_flashcards.sync.models import CardError, CardRecord, MediaUpload
from obsidian_flashcards.utils.async_runner import AsyncioRunner, gather_in_threads
from obsidian_flashcards.utils.logging import get_logger

if TYPE_CHECKING:
    from obsidian_flashcards.anki.bridge import AnkiBridge
    from obsidian_flashcards.vault.reader import VaultFileReader

logger = get_logger(__name__)


def _dedupe(refs: Iterable[MediaRef]) -> list[MediaRef]:
    """Drop repeated keys, keeping the first occurrence."""
    seen: set[str] = set()
    unique = []
    for ref in refs:
        if ref.key in seen:
            continue
        seen.add(ref.key)
        unique.append(ref)
    return unique


class MediaReconciler:
    """Plans and prepares ``storeMediaFile`` uploads.

    Files of created or updated cards are always uploaded. Files of
    unchanged cards are uploaded only when Anki's media folder lacks them.
    """

    def __init__(
        self,
        bridge: AnkiBridge,
        reader: VaultFileReader,
        max_concurrent: int = 8,
        runner: AsyncioRunner | None = None,
    ):
        self.bridge = bridge
        self.reader = reader
        self.max_concurrent = max_concurrent
        self._runner = runner or AsyncioRunner.get_global()

    def resolve_uploads(
        self,
        records_needing_media: Sequence[CardRecord],
        ignored_records: Sequence[CardRecord],
    ) -> list[MediaRef]:
        """Media references that must be uploaded, deduplicated by key.

        Raises:
            AnkiConnectError: If the media listing cannot be fetched
        """
        refs = [ref for record in records_needing_media for ref in record.media]

        ignored_refs = [ref for record in ignored_records for ref in record.media]
        if ignored_refs:
            existing = set(self.bridge.send(GetMediaFileNamesRequest(pattern="*")))
            refs.extend(ref for ref in ignored_refs if ref.key not in existing)

        uploads = _dedupe(refs)
        logger.debug(
            "media_uploads_resolved",
            references=len(refs),
            uploads=len(uploads),
        )
        return uploads

    def prepare_uploads(
        self,
        refs: Sequence[MediaRef],
        errors: list[CardError] | None = None,
    ) -> list[MediaUpload]:
        """Read and base64-encode files, in reference order.

        Files missing from the vault or unreadable are logged, skipped and
        appended to ``errors`` when given.
        """
        if not refs:
            return []

        contents = self._runner.run(
            gather_in_threads(
                self.reader.read_binary,
                [ref.path for ref in refs],
                self.max_concurrent,
            )
        )

        uploads: list[MediaUpload] = []
        for ref, content in zip(refs, contents, strict=True):
            if isinstance(content, (MissingLocalFileError, OSError)):
                message = (
                    content.message
                    if isinstance(content, MissingLocalFileError)
                    else f"Cannot read file {ref.path}: {content}"
                )
                logger.warning(
                    "media_file_missing",
                    path=ref.path,
                    key=ref.key,
                    error=message,
                    error_code=ErrorCode.ANK_MEDIA_MISSING.value,
                )
                if errors is not None:
                    errors.append(CardError(label=ref.path, stage="media", message=message))
                continue
            if isinstance(content, BaseException):
                raise content
            uploads.append(
                MediaUpload(key=ref.key, data=base64.b64encode(content).decode("ascii"))
            )

        return uploads
