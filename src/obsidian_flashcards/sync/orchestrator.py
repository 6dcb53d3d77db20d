"""Run one push of the vault's cards to Anki."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from obsidian_flashcards.anki.requests import (
    AddNoteRequest,
    ChangeDeckRequest,
    CreateDeckRequest,
    DeleteNotesRequest,
    StoreMediaFileRequest,
    UpdateNoteFieldsRequest,
)
from obsidian_flashcards.error_codes import ErrorCode
from obsidian_flashcards.exceptions import AnkiConnectError
from obsidian_flashcards.models import Article
from obsidian_flashcards.sync.diff_engine import DiffEngine
from obsidian_flashcards.sync.label_map import LabelMap
from obsidian_flashcards.sync.media import MediaReconciler
from obsidian_flashcards.sync.models import CardError, SyncPartition, SyncReport
from obsidian_flashcards.sync.record_builder import RecordBuilder
from obsidian_flashcards.utils.logging import get_logger

if TYPE_CHECKING:
    from obsidian_flashcards.anki.bridge import AnkiBridge, BridgeResult
    from obsidian_flashcards.config import Config
    from obsidian_flashcards.vault.reader import VaultFileReader

logger = get_logger(__name__)

# stage -> (log event, error code)
_STAGE_FAILURES = {
    "deck": ("deck_create_failed", ErrorCode.ANK_DECK_FAILED),
    "create": ("note_create_failed", ErrorCode.ANK_CREATE_FAILED),
    "update": ("note_update_failed", ErrorCode.ANK_UPDATE_FAILED),
    "move": ("note_move_failed", ErrorCode.ANK_MOVE_FAILED),
    "media": ("media_upload_failed", ErrorCode.ANK_MEDIA_FAILED),
}


class SyncOrchestrator:
    """Pushes cards to Anki and keeps the label map in step.

    The label map changes only after Anki confirms the matching mutation:
    a created note sets its label, a deletion removes it. Per-item failures
    are reported and skipped; a failing AnkiConnect call aborts the run.
    """

    def __init__(
        self,
        bridge: AnkiBridge,
        label_map: LabelMap,
        builder: RecordBuilder,
        reader: VaultFileReader,
        *,
        media_read_concurrency: int = 8,
        dry_run: bool = False,
        diff_engine: DiffEngine | None = None,
        media: MediaReconciler | None = None,
    ):
        self.bridge = bridge
        self.label_map = label_map
        self.builder = builder
        self.dry_run = dry_run
        self.diff_engine = diff_engine or DiffEngine(bridge)
        self.media = media or MediaReconciler(
            bridge, reader, max_concurrent=media_read_concurrency
        )

    @classmethod
    def from_config(
        cls,
        config: Config,
        bridge: AnkiBridge,
        label_map: LabelMap,
        reader: VaultFileReader,
        *,
        dry_run: bool = False,
    ) -> SyncOrchestrator:
        return cls(
            bridge,
            label_map,
            RecordBuilder.from_config(config),
            reader,
            media_read_concurrency=config.media_read_concurrency,
            dry_run=dry_run,
        )

    def run(self, articles: Sequence[Article]) -> SyncReport:
        """Reconcile Anki with the given articles.

        Raises:
            AnkiConnectError: If AnkiConnect cannot be reached or rejects a
                whole call; label map changes made before the failure stay
        """
        logger.info("sync_started", articles=len(articles), dry_run=self.dry_run)

        try:
            report = self._run(articles)
        except AnkiConnectError as e:
            logger.error(
                "sync_failed",
                error=e.message,
                error_code=e.error_code,
            )
            raise

        logger.info(
            "sync_completed",
            scanned=report.scanned,
            found=report.found,
            created=report.created,
            updated=report.updated,
            deleted=report.deleted,
            ignored=report.ignored,
            uploaded=report.uploaded,
            failed=report.failed,
            dry_run=self.dry_run,
        )
        return report

    def _run(self, articles: Sequence[Article]) -> SyncReport:
        report = SyncReport(scanned=len(articles), dry_run=self.dry_run)

        records, build_errors = self.builder.build_all(articles, self.label_map)
        report.errors.extend(build_errors)
        report.found = len(records) + len(build_errors)

        partition = self.diff_engine.partition(
            records,
            self.label_map,
            protected_labels={error.label for error in build_errors},
        )
        report.ignored = len(partition.to_ignore)
        delete_ids = self._delete_ids(partition)

        if self.dry_run:
            refs = self.media.resolve_uploads(
                [*partition.to_create, *partition.to_update], partition.to_ignore
            )
            report.created = len(partition.to_create)
            report.updated = len(partition.to_update)
            report.deleted = len(delete_ids)
            report.uploaded = len(refs)
            return report

        self._create_decks(partition, report)
        self._create_notes(partition, report)
        self._update_notes(partition, report)
        self._upload_media(partition, report)
        self._delete_notes(partition, delete_ids, report)
        return report

    def _record_failures(
        self,
        stage: str,
        labels: Sequence[str],
        results: Sequence[BridgeResult],
        report: SyncReport,
    ) -> int:
        """Log and report failed items; return the number of successes."""
        event, error_code = _STAGE_FAILURES[stage]
        succeeded = 0
        for label, result in zip(labels, results, strict=True):
            if result.ok:
                succeeded += 1
                continue
            logger.warning(
                event,
                label=label,
                error=result.error,
                error_code=error_code.value,
            )
            report.errors.append(
                CardError(label=label, stage=stage, message=result.error or "")
            )
        return succeeded

    def _create_decks(self, partition: SyncPartition, report: SyncReport) -> None:
        deck_names = list(dict.fromkeys(r.note.deck_name for r in partition.to_create))
        if not deck_names:
            return
        results = self.bridge.send_multi(
            [CreateDeckRequest(deck=name) for name in deck_names]
        )
        self._record_failures("deck", deck_names, results, report)

    def _create_notes(self, partition: SyncPartition, report: SyncReport) -> None:
        if not partition.to_create:
            return
        results = self.bridge.send_multi(
            [AddNoteRequest(note=record.note) for record in partition.to_create]
        )
        for record, result in zip(partition.to_create, results, strict=True):
            if result.ok:
                record.note.id = result.value
                self.label_map.set(record.label, result.value)
        report.created = self._record_failures(
            "create", [r.label for r in partition.to_create], results, report
        )

    def _update_notes(self, partition: SyncPartition, report: SyncReport) -> None:
        if not partition.to_update:
            return
        labels = [record.label for record in partition.to_update]
        results = self.bridge.send_multi(
            [
                UpdateNoteFieldsRequest(note_id=record.note_id, fields=record.note.fields)  # type: ignore[arg-type]
                for record in partition.to_update
            ]
        )
        report.updated = self._record_failures("update", labels, results, report)

        movable = [record for record in partition.to_update if record.card_ids]
        if movable:
            results = self.bridge.send_multi(
                [
                    ChangeDeckRequest(card_ids=record.card_ids, deck=record.note.deck_name)
                    for record in movable
                ]
            )
            self._record_failures(
                "move", [record.label for record in movable], results, report
            )

    def _upload_media(self, partition: SyncPartition, report: SyncReport) -> None:
        refs = self.media.resolve_uploads(
            [*partition.to_create, *partition.to_update], partition.to_ignore
        )
        uploads = self.media.prepare_uploads(refs, report.errors)
        if not uploads:
            return
        results = self.bridge.send_multi(
            [StoreMediaFileRequest(filename=u.key, data=u.data) for u in uploads]
        )
        report.uploaded = self._record_failures(
            "media", [upload.key for upload in uploads], results, report
        )

    def _delete_ids(self, partition: SyncPartition) -> list[int]:
        """Note ids to delete: orphaned, and not held by a live card."""
        live_ids = {
            record.note_id
            for record in [*partition.to_update, *partition.to_ignore]
        }
        return list(
            dict.fromkeys(
                note_id
                for _, note_id in partition.to_delete
                if note_id not in live_ids
            )
        )

    def _delete_notes(
        self, partition: SyncPartition, delete_ids: list[int], report: SyncReport
    ) -> None:
        if delete_ids:
            self.bridge.send(DeleteNotesRequest(note_ids=delete_ids))
            report.deleted = len(delete_ids)

        for label, note_id in partition.to_delete:
            if self.label_map.get(label) == note_id:
                self.label_map.delete(label)
