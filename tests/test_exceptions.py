"""Tests for the exception hierarchy and error codes."""

import pytest

from obsidian_flashcards.error_codes import (
    ErrorCode,
    get_error_domain,
    get_error_severity,
    is_retriable_error_code,
)
from obsidian_flashcards.exceptions import (
    AnkiConnectError,
    AnkiError,
    ConfigurationError,
    FlashcardsSyncError,
    LabelMapError,
    MissingLocalFileError,
    ParserError,
    RenderError,
    StateError,
    SyncError,
    ValidationError,
    get_exception_hierarchy,
    is_retriable_error,
)


class TestFlashcardsSyncError:
    def test_message_only(self) -> None:
        error = FlashcardsSyncError("Something broke")

        assert str(error) == "Something broke"
        assert error.context == {}

    def test_code_and_suggestion_in_message(self) -> None:
        error = FlashcardsSyncError(
            "Anki is down", suggestion="Start Anki", error_code="ANK-CONN-001"
        )

        assert str(error) == "[ANK-CONN-001] Anki is down\nSuggestion: Start Anki"

    def test_to_dict(self) -> None:
        error = ConfigurationError(
            "bad", error_code=ErrorCode.CFG_INVALID.value, context={"key": "x"}
        )

        assert error.to_dict() == {
            "message": "bad",
            "error_code": "CFG-INVALID-001",
            "suggestion": None,
            "context": {"key": "x"},
            "type": "ConfigurationError",
        }


@pytest.mark.parametrize(
    ("child", "parent"),
    [
        (ConfigurationError, FlashcardsSyncError),
        (ParserError, ValidationError),
        (RenderError, ValidationError),
        (StateError, SyncError),
        (LabelMapError, StateError),
        (MissingLocalFileError, SyncError),
        (AnkiConnectError, AnkiError),
        (AnkiError, FlashcardsSyncError),
    ],
)
def test_hierarchy(child, parent) -> None:
    assert issubclass(child, parent)
    assert child.__name__ in get_exception_hierarchy()[parent.__name__]


def test_render_error_carries_label() -> None:
    error = RenderError("boom", label="note--q")

    assert error.label == "note--q"
    assert error.context == {"label": "note--q"}


def test_missing_local_file_carries_path() -> None:
    error = MissingLocalFileError("gone", path="img/a.png")

    assert error.path == "img/a.png"
    assert error.context == {"path": "img/a.png"}


def test_only_anki_connect_errors_are_retriable() -> None:
    assert is_retriable_error(AnkiConnectError("down"))
    assert not is_retriable_error(ConfigurationError("bad"))
    assert not is_retriable_error(ValueError("x"))


class TestErrorCodes:
    def test_domain(self) -> None:
        assert get_error_domain(ErrorCode.ANK_CREATE_FAILED) == "ANK"
        assert get_error_domain(ErrorCode.STA_LABEL_MAP_READ_FAILED) == "STA"

    def test_retriable(self) -> None:
        assert is_retriable_error_code(ErrorCode.ANK_CONNECTION_FAILED)
        assert not is_retriable_error_code(ErrorCode.ANK_CREATE_FAILED)

    @pytest.mark.parametrize(
        ("code", "severity"),
        [
            (ErrorCode.CFG_INVALID, "critical"),
            (ErrorCode.ANK_CONNECTION_FAILED, "critical"),
            (ErrorCode.ANK_MEDIA_MISSING, "warning"),
            (ErrorCode.ANK_UPDATE_FAILED, "error"),
        ],
    )
    def test_severity(self, code, severity) -> None:
        assert get_error_severity(code) == severity

    def test_codes_are_unique(self) -> None:
        values = [code.value for code in ErrorCode]
        assert len(values) == len(set(values))
