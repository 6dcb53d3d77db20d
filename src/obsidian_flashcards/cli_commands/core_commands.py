"""Core CLI commands: sync, check, labels."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.table import Table

from obsidian_flashcards.anki.bridge import AnkiBridge
from obsidian_flashcards.config import Config
from obsidian_flashcards.exceptions import AnkiConnectError, FlashcardsSyncError
from obsidian_flashcards.sync.label_map import LabelMapStore

from .shared import console, get_config_and_logger
from .sync_handler import run_sync

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="Path to config.yaml", exists=True, dir_okay=False),
]
LogLevelOption = Annotated[
    str | None,
    typer.Option("--log-level", help="Log level (DEBUG, INFO, WARN, ERROR)"),
]
VerboseOption = Annotated[
    bool,
    typer.Option(
        "--verbose",
        "-v",
        help="Show all log messages on terminal (for debugging)",
    ),
]


def _load(
    config_path: Path | None, log_level: str | None, verbose: bool
) -> tuple[Config, Any]:
    """Load config and logging, turning config errors into exit code 1."""
    try:
        return get_config_and_logger(config_path, log_level, verbose=verbose)
    except FlashcardsSyncError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e.message}")
        if e.suggestion:
            console.print(f"  [dim]{e.suggestion}[/dim]")
        raise typer.Exit(code=1) from e


def register(app: typer.Typer) -> None:
    """Register core commands on the given Typer app."""

    @app.command()
    def sync(
        dry_run: Annotated[
            bool,
            typer.Option(
                "--dry-run",
                help="Preview changes without applying",
            ),
        ] = False,
        config_path: ConfigOption = None,
        log_level: LogLevelOption = None,
        verbose: VerboseOption = False,
    ) -> None:
        """Push vault flashcards to Anki."""
        start_time = time.time()
        config, logger = _load(config_path, log_level, verbose)

        logger.info(
            "cli_command_started",
            command="sync",
            dry_run=dry_run,
            config_path=str(config_path) if config_path else None,
            vault_path=str(config.vault_path),
        )

        run_sync(config=config, logger=logger, dry_run=dry_run)

        logger.info(
            "cli_command_completed",
            command="sync",
            duration=round(time.time() - start_time, 2),
        )

    @app.command()
    def check(
        config_path: ConfigOption = None,
        log_level: LogLevelOption = None,
        verbose: VerboseOption = False,
    ) -> None:
        """Check that AnkiConnect is reachable."""
        config, _ = _load(config_path, log_level, verbose)

        with AnkiBridge(
            config.anki_connect_url,
            timeout=config.anki_timeout,
            max_attempts=1,
        ) as bridge:
            try:
                version = bridge.check_connection()
            except AnkiConnectError as e:
                console.print(f"[red]✗[/red] AnkiConnect: {e.message}")
                if e.suggestion:
                    console.print(f"  [dim]{e.suggestion}[/dim]")
                raise typer.Exit(code=1) from e

        console.print(
            f"[green]✓[/green] AnkiConnect v{version} at {config.anki_connect_url}"
        )

    @app.command()
    def labels(
        config_path: ConfigOption = None,
        log_level: LogLevelOption = None,
        verbose: VerboseOption = False,
    ) -> None:
        """Show the label -> note id map."""
        config, _ = _load(config_path, log_level, verbose)

        store = LabelMapStore(config.get_label_map_path())
        try:
            label_map = store.load()
        except FlashcardsSyncError as e:
            console.print(f"[bold red]Error:[/bold red] {e.message}")
            raise typer.Exit(code=1) from e

        table = Table(title=f"Label map ({len(label_map)} entries)")
        table.add_column("Label", style="cyan")
        table.add_column("Note id", justify="right", style="magenta")
        for label, note_id in label_map.entries():
            table.add_row(label, str(note_id))
        console.print(table)
