"""Shared utilities for CLI commands."""

from pathlib import Path
from typing import Any

from rich.console import Console

from obsidian_flashcards.config import Config, load_config, set_config
from obsidian_flashcards.utils.logging import configure_logging, get_logger

# Shared console for all commands
console = Console()

# Cached across commands of one process
_config: Config | None = None
_logger: Any | None = None


def get_config_and_logger(
    config_path: Path | None = None,
    log_level: str | None = None,
    verbose: bool = False,
) -> tuple[Config, Any]:
    """Load configuration and logger (dependency injection helper).

    Args:
        config_path: Optional path to config file
        log_level: Console log level; the configured level when None
        verbose: Show all log messages on terminal (for debugging)

    Returns:
        Tuple of (Config, Logger)
    """
    global _config, _logger

    if _config is None:
        _config = load_config(config_path)
        set_config(_config)

        configure_logging(
            log_level or _config.log_level,
            log_dir=_config.log_dir,
            verbose=verbose,
        )
        _logger = get_logger("cli")

    return _config, _logger


def reset_cli_state() -> None:
    """Forget the cached config and logger (for testing)."""
    global _config, _logger
    _config = None
    _logger = None
