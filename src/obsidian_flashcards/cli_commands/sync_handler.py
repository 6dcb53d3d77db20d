"""Sync command implementation logic."""

from typing import Any

import typer
from rich.table import Table

from obsidian_flashcards.anki.bridge import AnkiBridge
from obsidian_flashcards.config import Config
from obsidian_flashcards.exceptions import AnkiConnectError, FlashcardsSyncError
from obsidian_flashcards.sync.label_map import LabelMapStore
from obsidian_flashcards.sync.models import SyncReport
from obsidian_flashcards.sync.orchestrator import SyncOrchestrator
from obsidian_flashcards.vault.parser import load_articles
from obsidian_flashcards.vault.reader import VaultFileReader

from .shared import console


def _print_report(report: SyncReport) -> None:
    title = "Sync Results (dry run)" if report.dry_run else "Sync Results"
    table = Table(title=title)
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right", style="magenta")

    table.add_row("Scanned files", str(report.scanned))
    table.add_row("Found cards", str(report.found))
    table.add_row("Created", str(report.created))
    table.add_row("Updated", str(report.updated))
    table.add_row("Deleted", str(report.deleted))
    table.add_row("Ignored", str(report.ignored))
    table.add_row("Uploaded files", str(report.uploaded))
    table.add_row("Failed", str(report.failed))
    console.print(table)

    if report.errors:
        errors = Table(title="Failures")
        errors.add_column("Stage", style="yellow")
        errors.add_column("Item")
        errors.add_column("Error", style="red")
        for error in report.errors:
            errors.add_row(error.stage, error.label, error.message)
        console.print(errors)


def run_sync(config: Config, logger: Any, dry_run: bool = False) -> SyncReport:
    """Execute the sync operation.

    The label map is saved even when the run fails part way, so notes
    created before the failure stay linked to their cards.

    Raises:
        typer.Exit: On sync failure
    """
    reader = VaultFileReader(config.vault_path)
    store = LabelMapStore(config.get_label_map_path())

    try:
        articles = load_articles(config, reader)
        label_map = store.load()
    except FlashcardsSyncError as e:
        logger.error("sync_setup_failed", error=e.message, error_code=e.error_code)
        console.print(f"[bold red]Error:[/bold red] {e.message}")
        if e.suggestion:
            console.print(f"  [dim]{e.suggestion}[/dim]")
        raise typer.Exit(code=1) from e

    with AnkiBridge(
        config.anki_connect_url,
        timeout=config.anki_timeout,
        max_attempts=config.anki_max_attempts,
    ) as bridge:
        orchestrator = SyncOrchestrator.from_config(
            config, bridge, label_map, reader, dry_run=dry_run
        )
        try:
            report = orchestrator.run(articles)
        except AnkiConnectError as e:
            console.print(f"\n[bold red]Sync failed:[/bold red] {e.message}")
            if e.suggestion:
                console.print(f"  [dim]{e.suggestion}[/dim]")
            raise typer.Exit(code=1) from e
        finally:
            if not dry_run:
                store.save(label_map)
                logger.debug("label_map_persisted", entries=len(label_map))

    _print_report(report)
    return report
