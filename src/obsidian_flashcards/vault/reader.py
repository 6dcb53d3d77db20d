"""Read files from the vault by vault-relative path."""

from __future__ import annotations

from pathlib import Path

from obsidian_flashcards.error_codes import ErrorCode
from obsidian_flashcards.exceptions import MissingLocalFileError, ParserError


class VaultFileReader:
    """File access rooted at the vault directory."""

    def __init__(self, vault_path: Path):
        self.vault_path = vault_path.resolve()

    def resolve(self, path: str) -> Path:
        """Absolute location of a vault-relative path.

        Raises:
            MissingLocalFileError: If the path points outside the vault
        """
        full_path = (self.vault_path / path).resolve()
        if not full_path.is_relative_to(self.vault_path):
            msg = f"Path escapes the vault: {path}"
            raise MissingLocalFileError(msg, path=path)
        return full_path

    def read_binary(self, path: str) -> bytes:
        """Read a file as bytes.

        Raises:
            MissingLocalFileError: If the file does not exist or cannot be read
        """
        full_path = self.resolve(path)
        try:
            return full_path.read_bytes()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as e:
            msg = f"File not found in vault: {path}"
            raise MissingLocalFileError(
                msg,
                path=path,
                suggestion="Fix the embed or add the file to the vault",
            ) from e
        except OSError as e:
            msg = f"Cannot read file {path}: {e}"
            raise MissingLocalFileError(
                msg,
                path=path,
                suggestion="Check that the file is readable",
            ) from e

    def read_text(self, path: str) -> str:
        """Read a UTF-8 document.

        Raises:
            ParserError: If the file cannot be read or decoded
        """
        full_path = self.resolve(path)
        try:
            return full_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            msg = f"Cannot read document {path}: {e}"
            raise ParserError(
                msg,
                error_code=ErrorCode.VAL_PARSE_FAILED.value,
                context={"path": path},
            ) from e
