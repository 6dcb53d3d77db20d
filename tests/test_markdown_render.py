"""Tests for markdown to Anki field rendering."""

import pytest

from obsidian_flashcards.exceptions import RenderError
from obsidian_flashcards.models import MediaRef
from obsidian_flashcards.render import markdown as markdown_module
from obsidian_flashcards.render.markdown import render, sanitize_html


class TestRender:
    def test_basic_formatting(self) -> None:
        field = render("Some **bold** and *italic* text")

        assert "<strong>bold</strong>" in field.html
        assert "<em>italic</em>" in field.html
        assert field.media == ()

    def test_empty_input(self) -> None:
        assert render("").html == ""
        assert render("   \n").html == ""

    def test_is_deterministic(self) -> None:
        text = "# Title\n\n- one\n- two\n\n```python\nprint(1)\n```"

        assert render(text, "n.md") == render(text, "n.md")

    def test_code_block_highlighted(self) -> None:
        field = render("```python\ndef f():\n    return 1\n```")

        assert "codehilite" in field.html

    def test_unknown_language_falls_back(self) -> None:
        field = render("```nosuchlang\nx < y\n```")

        assert "language-nosuchlang" in field.html
        assert "x &lt; y" in field.html

    def test_script_is_removed(self) -> None:
        field = render("Hi <script>alert(1)</script>")

        assert "<script" not in field.html
        assert "alert" not in field.html


class TestMedia:
    def test_image_resolved_against_document_folder(self) -> None:
        field = render("![diagram](img/flow.png)", "notes/topic/card.md")

        assert field.media == (MediaRef(key="flow.png", path="notes/topic/img/flow.png"),)
        assert 'src="flow.png"' in field.html
        assert 'alt="diagram"' in field.html

    def test_parent_relative_path(self) -> None:
        field = render("![](../shared/pic.jpg)", "notes/topic/card.md")

        assert field.media == (MediaRef(key="pic.jpg", path="notes/shared/pic.jpg"),)

    def test_obsidian_embed(self) -> None:
        field = render("See ![[my diagram.png|300]]", "notes/card.md")

        assert field.media == (
            MediaRef(key="my diagram.png", path="notes/my diagram.png"),
        )
        assert "<img" in field.html

    def test_note_embed_is_not_media(self) -> None:
        field = render("![[Other note]]", "card.md")

        assert field.media == ()

    def test_remote_image_left_alone(self) -> None:
        field = render("![](https://example.com/a.png)")

        assert field.media == ()
        assert "https://example.com/a.png" in field.html

    def test_audio_becomes_sound_tag(self) -> None:
        field = render("![[hello.mp3]]", "card.md")

        assert field.media == (MediaRef(key="hello.mp3", path="hello.mp3"),)
        assert "[sound:hello.mp3]" in field.html

    def test_media_in_order_of_appearance(self) -> None:
        field = render("![](b.png) then ![](a.png) and ![](b.png)", "x.md")

        assert [ref.key for ref in field.media] == ["b.png", "a.png", "b.png"]


def test_converter_failure_raises_render_error(monkeypatch) -> None:
    def broken(*args, **kwargs):
        raise RuntimeError("parser exploded")

    monkeypatch.setattr(markdown_module, "sanitize_html", broken)

    with pytest.raises(RenderError, match="parser exploded"):
        render("text", "doc.md")


def test_sanitize_keeps_anki_markup() -> None:
    html = '<p><img src="a.png" alt="x" onerror="bad()"><a href="https://x.org">l</a></p>'

    cleaned = sanitize_html(html)

    assert 'src="a.png"' in cleaned
    assert "onerror" not in cleaned
    assert 'rel="noopener noreferrer"' in cleaned
