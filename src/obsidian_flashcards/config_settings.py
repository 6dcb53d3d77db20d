"""Settings model for the flashcard sync (split from config.py)."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError
from .error_codes import ErrorCode


class Config(BaseSettings):
    """Sync configuration using pydantic-settings.

    Values come from (highest priority first) ``FLASHCARDS_*`` environment
    variables, ``.env``, ``config.yaml`` and the defaults below.
    """

    model_config = SettingsConfigDict(
        env_prefix="FLASHCARDS_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    # Obsidian paths - vault_path can be empty string from env, will be validated
    vault_path: Path = Field(default=Path(), description="Path to Obsidian vault")
    source_dirs: list[Path] | None = Field(
        default=None,
        description="Directories inside the vault to scan (whole vault when unset)",
    )

    @field_validator("vault_path", mode="before")
    @classmethod
    def parse_vault_path(cls, v: Any) -> Path:
        """Convert string to an absolute Path for vault_path."""
        if v is None or v == "":
            return Path()
        if isinstance(v, (str, Path)):
            return Path(v).expanduser().resolve()
        msg = f"vault_path must be string or Path, got {type(v).__name__}"
        raise ValueError(msg)

    @field_validator("source_dirs", mode="before")
    @classmethod
    def parse_source_dirs(cls, v: Any) -> list[Path] | None:
        """Convert source_dirs to a list of Paths."""
        if v is None:
            return None
        if isinstance(v, str):
            return [Path(part.strip()) for part in v.split(",") if part.strip()]
        if isinstance(v, list):
            return [Path(str(d)) for d in v]
        msg = f"source_dirs must be string, list, or None, got {type(v).__name__}"
        raise ValueError(msg)

    # Anki settings
    anki_connect_url: str = Field(
        default="http://127.0.0.1:8765", description="AnkiConnect URL"
    )
    anki_timeout: float = Field(
        default=30.0, gt=0, description="AnkiConnect request timeout in seconds"
    )
    anki_max_attempts: int = Field(
        default=3, ge=1, description="Attempts per AnkiConnect request"
    )

    # Deck naming
    root_deck: str = Field(default="Obsidian", description="Root Anki deck")
    use_folder_decks: bool = Field(
        default=True, description="Append the document folder to the root deck"
    )
    default_deck: str = Field(
        default="Default", description="Deck used when the computed name is empty"
    )
    note_type: str = Field(default="Basic", description="Anki note type")
    card_tag: str = Field(
        default="card", description="Heading tag that marks a flashcard"
    )

    # State
    label_map_path: Path = Field(
        default=Path(".flashcards/labels.json"),
        description="Label map file (relative to the vault)",
    )
    media_read_concurrency: int = Field(
        default=8, ge=1, description="Concurrent media file reads"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_dir: Path | None = Field(
        default=None, description="Directory for the JSON log file"
    )

    @field_validator("card_tag")
    @classmethod
    def strip_card_tag(cls, v: str) -> str:
        tag = v.strip().lstrip("#")
        if not tag:
            msg = "card_tag must not be empty"
            raise ValueError(msg)
        return tag

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "WARN", "ERROR", "CRITICAL"}:
            msg = f"Invalid log_level: {v}"
            raise ValueError(msg)
        return level

    @model_validator(mode="after")
    def validate_deck_names(self) -> Config:
        if not self.default_deck.strip():
            msg = "default_deck must not be empty"
            raise ValueError(msg)
        return self

    def validate_paths(self) -> None:
        """Check that the vault and source directories exist.

        Raises:
            ConfigurationError: If a configured path is missing
        """
        if self.vault_path == Path():
            msg = "vault_path is required"
            raise ConfigurationError(
                msg,
                suggestion=(
                    "Set FLASHCARDS_VAULT_PATH or vault_path in config.yaml"
                ),
                error_code=ErrorCode.CFG_PATH_INVALID.value,
            )
        if not self.vault_path.is_dir():
            msg = f"Vault directory does not exist: {self.vault_path}"
            raise ConfigurationError(
                msg,
                suggestion="Check vault_path in config.yaml",
                error_code=ErrorCode.CFG_PATH_INVALID.value,
            )
        for source_dir in self.source_dirs or []:
            if not (self.vault_path / source_dir).is_dir():
                msg = f"Source directory does not exist: {source_dir}"
                raise ConfigurationError(
                    msg,
                    suggestion="Paths in source_dirs are relative to the vault",
                    error_code=ErrorCode.CFG_PATH_INVALID.value,
                )

    def get_label_map_path(self) -> Path:
        """Get absolute path to the label map file."""
        if self.label_map_path.is_absolute():
            return self.label_map_path
        return self.vault_path / self.label_map_path
