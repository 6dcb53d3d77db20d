"""Tests for console log filtering."""

import logging

import pytest
import structlog

from obsidian_flashcards.utils.logging import (
    ConsoleNoiseFilterProcessor,
    HighVolumeEventPolicy,
    UserFacingConsoleFilter,
    UserFriendlyConsoleRenderer,
    configure_logging,
    get_logger,
)


def _record(event: str, level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord("test", level, __file__, 1, event, None, None)


class TestConsoleNoiseFilter:
    def test_drops_events_over_the_limit(self) -> None:
        now = [0.0]
        processor = ConsoleNoiseFilterProcessor(
            {"media_file_missing": HighVolumeEventPolicy(2, 10.0)},
            time_func=lambda: now[0],
        )

        processor(None, "warning", {"event": "media_file_missing"})
        processor(None, "warning", {"event": "media_file_missing"})
        with pytest.raises(structlog.DropEvent):
            processor(None, "warning", {"event": "media_file_missing"})

        now[0] = 11.0
        assert processor(None, "warning", {"event": "media_file_missing"}) == {
            "event": "media_file_missing"
        }

    def test_other_events_pass(self) -> None:
        processor = ConsoleNoiseFilterProcessor(
            {"media_file_missing": HighVolumeEventPolicy(0, 10.0)}
        )

        assert processor(None, "info", {"event": "sync_started"}) == {
            "event": "sync_started"
        }


class TestUserFacingConsoleFilter:
    def test_user_facing_event_passes(self) -> None:
        assert UserFacingConsoleFilter().filter(_record("note_create_failed"))

    def test_internal_event_hidden(self) -> None:
        assert not UserFacingConsoleFilter().filter(_record("anki_invoke"))

    def test_errors_always_pass(self) -> None:
        assert UserFacingConsoleFilter().filter(_record("anki_invoke", logging.ERROR))

    def test_verbose_shows_everything(self) -> None:
        assert UserFacingConsoleFilter(verbose=True).filter(_record("anki_invoke"))


class TestUserFriendlyConsoleRenderer:
    def test_sync_completed(self) -> None:
        line = UserFriendlyConsoleRenderer()(
            None,
            "info",
            {
                "event": "sync_completed",
                "created": 2,
                "updated": 1,
                "deleted": 0,
                "ignored": 5,
                "uploaded": 1,
            },
        )

        assert line == "Done: 2 created, 1 updated, 0 deleted, 5 ignored, 1 file(s) uploaded"

    def test_sync_failed(self) -> None:
        line = UserFriendlyConsoleRenderer()(
            None, "error", {"event": "sync_failed", "level": "error", "error": "down"}
        )

        assert line == "Sync failed: down"

    def test_warning_names_the_card(self) -> None:
        line = UserFriendlyConsoleRenderer()(
            None,
            "warning",
            {"event": "card_render_failed", "level": "warning", "label": "a--q"},
        )

        assert line == "WARNING: card_render_failed a--q"


def test_log_file_is_written(tmp_path) -> None:
    configure_logging("INFO", log_dir=tmp_path)
    get_logger("tests").info("something_happened", answer=42)
    for handler in logging.getLogger().handlers:
        handler.flush()

    content = (tmp_path / "obsidian-flashcards.log").read_text(encoding="utf-8")
    assert "something_happened" in content
    assert '"answer": 42' in content

    configure_logging("INFO")
