"""Centralized exception hierarchy for obsidian-flashcards-sync.

This module defines the errors that can occur while pushing vault cards to
Anki. All custom exceptions inherit from FlashcardsSyncError, making it easy
to catch every sync-related error in one place.

Exception Hierarchy:
    FlashcardsSyncError (base)
     ConfigurationError - Configuration loading/validation errors
     ValidationError - Card/note content errors
        ParserError - Obsidian document parsing errors
        RenderError - Markdown to Anki field rendering errors
     SyncError - Synchronization operation errors
        StateError - Persisted state errors
           LabelMapError - Label map file errors
        MissingLocalFileError - Media file vanished from the vault
     AnkiError - Anki-related errors
        AnkiConnectError - AnkiConnect transport/protocol errors

Usage Examples:
    # Catch all sync errors
    try:
        orchestrator.run(articles)
    except FlashcardsSyncError as e:
        logger.error("sync_failed", error=str(e))

    # Transport failures abort the run
    try:
        orchestrator.run(articles)
    except AnkiConnectError as e:
        print(f"Anki is unreachable: {e}")
        print(f"Suggestion: {e.suggestion}")
"""

from typing import Any


class FlashcardsSyncError(Exception):
    """Base exception for all sync-related errors.

    Attributes:
        message: Human-readable error message
        suggestion: Optional suggestion for resolving the error
        error_code: Structured error code for machine-readable handling
        context: Additional context for debugging (e.g., labels, file paths)
    """

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            suggestion: Optional suggestion for resolving the error
            error_code: Structured error code (e.g., "ANK-CONN-001")
            context: Additional context for debugging
        """
        self.message = message
        self.suggestion = suggestion
        self.error_code = error_code
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with error code and suggestion if available."""
        parts = []
        if self.error_code:
            parts.append(f"[{self.error_code}] {self.message}")
        else:
            parts.append(self.message)
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for structured logging."""
        return {
            "message": self.message,
            "error_code": self.error_code,
            "suggestion": self.suggestion,
            "context": self.context,
            "type": type(self).__name__,
        }


# Configuration Errors


class ConfigurationError(FlashcardsSyncError):
    """Configuration loading or validation errors.

    Raised when:
    - Config file is missing or malformed
    - Vault path does not exist
    - Configuration values fail validation
    """


# Validation Errors


class ValidationError(FlashcardsSyncError):
    """Card or document content errors."""


class ParserError(ValidationError):
    """Obsidian document parsing errors.

    Raised when:
    - YAML frontmatter is malformed
    - The document cannot be decoded
    """


class RenderError(ValidationError):
    """Markdown rendering failed for one card.

    Only the affected card is skipped; the rest of the batch continues.

    Attributes:
        label: Label of the card that failed to render
    """

    def __init__(
        self,
        message: str,
        *,
        label: str | None = None,
        suggestion: str | None = None,
        error_code: str | None = None,
    ):
        self.label = label
        super().__init__(
            message,
            suggestion,
            error_code,
            context={"label": label} if label else None,
        )


# Sync Errors


class SyncError(FlashcardsSyncError):
    """Synchronization operation errors."""


class StateError(SyncError):
    """Persisted state errors."""


class LabelMapError(StateError):
    """Label map file errors.

    Raised when:
    - The label map file is not valid JSON
    - An entry does not map a string label to an integer note id
    """


class MissingLocalFileError(SyncError):
    """A referenced media file is missing from the vault.

    Attributes:
        path: Vault-relative path of the missing file
    """

    def __init__(self, message: str, *, path: str, suggestion: str | None = None):
        self.path = path
        super().__init__(message, suggestion, context={"path": path})


# Anki Errors


class AnkiError(FlashcardsSyncError):
    """Base class for Anki-related errors."""


class AnkiConnectError(AnkiError):
    """AnkiConnect communication errors.

    Raised when:
    - Cannot connect to AnkiConnect (Anki is not running)
    - The request times out
    - AnkiConnect answers with an HTTP error or malformed JSON
    - AnkiConnect reports a top-level error for the request
    """


def get_exception_hierarchy() -> dict[str, list[str]]:
    """Get the exception hierarchy as a dictionary."""
    return {
        "FlashcardsSyncError": [
            "ConfigurationError",
            "ValidationError",
            "SyncError",
            "AnkiError",
        ],
        "ValidationError": ["ParserError", "RenderError"],
        "SyncError": ["StateError", "MissingLocalFileError"],
        "StateError": ["LabelMapError"],
        "AnkiError": ["AnkiConnectError"],
    }


def is_retriable_error(error: Exception) -> bool:
    """Check if an error is retriable.

    Transport problems are transient; content and configuration errors are not.
    """
    return isinstance(error, AnkiConnectError)
