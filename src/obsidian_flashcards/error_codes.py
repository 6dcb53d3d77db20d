"""Structured error codes for machine-readable error handling.

Error codes follow the format: {DOMAIN}-{CATEGORY}-{NUMBER}

Error Domains:
    VAL - Content errors (parsing, rendering)
    ANK - Anki errors (connection, create, update, delete, media)
    STA - State errors (label map)
    CFG - Configuration errors

Usage:
    from obsidian_flashcards.error_codes import ErrorCode

    logger.warning(
        "note_create_failed",
        error_code=ErrorCode.ANK_CREATE_FAILED.value,
        label=label,
    )
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Structured error codes for machine-readable handling.

    All error codes inherit from str for JSON serialization compatibility.
    """

    # =========================================================================
    # Content Errors (VAL-xxx-xxx)
    # =========================================================================
    VAL_PARSE_FAILED = "VAL-PARSE-001"
    """Obsidian document could not be parsed."""

    VAL_RENDER_FAILED = "VAL-RENDER-001"
    """Markdown could not be rendered into Anki fields."""

    VAL_LABEL_CONFLICT = "VAL-LABEL-001"
    """Two cards in different documents share one label."""

    # =========================================================================
    # Anki Errors (ANK-xxx-xxx)
    # =========================================================================
    ANK_CONNECTION_FAILED = "ANK-CONN-001"
    """Cannot reach AnkiConnect."""

    ANK_PROTOCOL_ERROR = "ANK-PROTO-001"
    """AnkiConnect answered with a malformed or error response."""

    ANK_DECK_FAILED = "ANK-DECK-001"
    """Deck creation failed."""

    ANK_CREATE_FAILED = "ANK-CREATE-001"
    """Note creation failed for one card."""

    ANK_UPDATE_FAILED = "ANK-UPDATE-001"
    """Note field update failed for one card."""

    ANK_MOVE_FAILED = "ANK-MOVE-001"
    """Deck reassignment failed for one card."""

    ANK_DELETE_FAILED = "ANK-DELETE-001"
    """Note deletion failed."""

    ANK_MEDIA_FAILED = "ANK-MEDIA-001"
    """Media upload failed for one file."""

    ANK_MEDIA_MISSING = "ANK-MEDIA-002"
    """Referenced media file is missing locally."""

    # =========================================================================
    # State Errors (STA-xxx-xxx)
    # =========================================================================
    STA_LABEL_MAP_READ_FAILED = "STA-LABELS-001"
    """Label map file could not be read."""

    STA_LABEL_MAP_WRITE_FAILED = "STA-LABELS-002"
    """Label map file could not be written."""

    STA_DUPLICATE_ID = "STA-DUP-001"
    """Two labels point at the same Anki note."""

    # =========================================================================
    # Configuration Errors (CFG-xxx-xxx)
    # =========================================================================
    CFG_INVALID = "CFG-INVALID-001"
    """Configuration validation failed."""

    CFG_PATH_INVALID = "CFG-PATH-001"
    """Configuration path is invalid or inaccessible."""


def get_error_domain(code: ErrorCode) -> str:
    """Extract the domain from an error code (e.g., "ANK")."""
    return code.value.split("-")[0]


def is_retriable_error_code(code: ErrorCode) -> bool:
    """Check if an error code represents a retriable error.

    Per-card Anki failures are retried implicitly on the next run, so only
    the connection failure counts here.
    """
    return code in {ErrorCode.ANK_CONNECTION_FAILED}


def get_error_severity(code: ErrorCode) -> str:
    """Get the severity level for an error code.

    Returns:
        Severity level: "critical", "error", "warning"
    """
    critical_codes = {
        ErrorCode.CFG_INVALID,
        ErrorCode.CFG_PATH_INVALID,
        ErrorCode.ANK_CONNECTION_FAILED,
        ErrorCode.STA_LABEL_MAP_READ_FAILED,
    }
    warning_codes = {
        ErrorCode.ANK_MEDIA_MISSING,
        ErrorCode.STA_DUPLICATE_ID,
    }

    if code in critical_codes:
        return "critical"
    if code in warning_codes:
        return "warning"
    return "error"
