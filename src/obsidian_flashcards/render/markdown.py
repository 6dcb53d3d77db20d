"""Convert card markdown to Anki field HTML.

Uses mistune for Markdown parsing, Pygments for syntax highlighting and nh3
for HTML sanitization. Embedded local files (``![alt](path)`` and Obsidian's
``![[file]]``) are collected as media references and rewritten to point at
the file name Anki stores them under.
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass, field
from html import escape
from urllib.parse import unquote, urlparse

import mistune
import nh3
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name, guess_lexer
from pygments.util import ClassNotFound

from obsidian_flashcards.error_codes import ErrorCode
from obsidian_flashcards.exceptions import RenderError
from obsidian_flashcards.models import MediaRef
from obsidian_flashcards.utils.logging import get_logger

logger = get_logger(__name__)

# Allowed HTML tags for Anki cards (used by nh3 sanitizer)
ALLOWED_TAGS = {
    "p",
    "br",
    "strong",
    "b",
    "em",
    "i",
    "u",
    "s",
    "del",
    "code",
    "pre",
    "ul",
    "ol",
    "li",
    "input",
    "table",
    "thead",
    "tbody",
    "tr",
    "th",
    "td",
    "blockquote",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "a",
    "img",
    "div",
    "span",
    "sup",
    "sub",
    "hr",
    "mark",
}

_GLOBAL_ATTRIBUTES = {"class", "id", "style"}

# "rel" is set through nh3's link_rel parameter
_TAG_SPECIFIC_ATTRIBUTES = {
    "a": {"href", "title"},
    "img": {"src", "alt", "title", "width", "height"},
    "input": {"type", "checked", "disabled"},
    "td": {"colspan", "rowspan", "align"},
    "th": {"colspan", "rowspan", "align"},
}


def _build_allowed_attributes() -> dict[str, set[str]]:
    """Build allowed attributes dict with global attrs applied to all tags."""
    return {
        tag: _GLOBAL_ATTRIBUTES | _TAG_SPECIFIC_ATTRIBUTES.get(tag, set())
        for tag in ALLOWED_TAGS
    }


ALLOWED_ATTRIBUTES = _build_allowed_attributes()

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".bmp", ".avif"}
AUDIO_EXTENSIONS = {".mp3", ".wav", ".ogg", ".m4a", ".flac", ".webm", ".3gp"}

# ![[file.png]] or ![[file.png|300]]
_WIKI_EMBED_RE = re.compile(r"!\[\[([^\[\]|#^]+)(?:[|#^][^\[\]]*)?\]\]")


@dataclass(frozen=True)
class RenderedField:
    """HTML for one note field plus the local files it embeds."""

    html: str
    media: tuple[MediaRef, ...] = field(default_factory=tuple)


def _is_remote(url: str) -> bool:
    return bool(urlparse(url).scheme)


def _resolve_local_path(url: str, source_path: str) -> str:
    """Resolve an embed target against the folder of the document."""
    target = unquote(url).split("#", 1)[0].split("?", 1)[0]
    if target.startswith("/"):
        return posixpath.normpath(target.lstrip("/"))
    folder = posixpath.dirname(source_path)
    return posixpath.normpath(posixpath.join(folder, target))


def _rewrite_wiki_embeds(markdown: str) -> str:
    """Turn Obsidian media embeds into standard markdown images.

    Embeds of other notes are left alone.
    """

    def _replace(match: re.Match[str]) -> str:
        target = match.group(1).strip()
        suffix = posixpath.splitext(target)[1].lower()
        if suffix not in IMAGE_EXTENSIONS | AUDIO_EXTENSIONS:
            return match.group(0)
        return f"![](<{target}>)"

    return _WIKI_EMBED_RE.sub(_replace, markdown)


class AnkiFieldRenderer(mistune.HTMLRenderer):
    """Mistune renderer with Pygments highlighting and media collection.

    One instance renders one field; ``media`` holds the references in the
    order they appear.
    """

    def __init__(self, source_path: str) -> None:
        super().__init__(escape=False)
        self.source_path = source_path
        self.media: list[MediaRef] = []
        self._formatter = HtmlFormatter(cssclass="codehilite", nowrap=False)

    def image(self, text: str, url: str, title: str | None = None) -> str:
        if _is_remote(url):
            return super().image(text, url, title)

        path = _resolve_local_path(url, self.source_path)
        key = posixpath.basename(path)
        self.media.append(MediaRef(key=key, path=path))

        if posixpath.splitext(key)[1].lower() in AUDIO_EXTENSIONS:
            return f"[sound:{key}]"

        html = f'<img src="{escape(key)}" alt="{escape(text)}"'
        if title:
            html += f' title="{escape(title)}"'
        return html + ">"

    def block_code(self, code: str, info: str | None = None) -> str:
        """Render code block with syntax highlighting."""
        lang = info.split()[0] if info and info.strip() else None

        try:
            lexer = get_lexer_by_name(lang, stripall=True) if lang else guess_lexer(code)
        except ClassNotFound:
            lang_class = f"language-{lang}" if lang else "language-text"
            return (
                f'<pre><code class="{lang_class}">{escape(code.strip())}</code></pre>\n'
            )

        highlighted: str = highlight(code, lexer, self._formatter)
        return highlighted


def sanitize_html(html: str) -> str:
    """Sanitize HTML with nh3, keeping what Anki can display."""
    if not html:
        return html
    return nh3.clean(
        html,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        link_rel="noopener noreferrer",
    )


def render(markdown: str, source_path: str = "") -> RenderedField:
    """Render card markdown into field HTML.

    Args:
        markdown: Field content
        source_path: Vault-relative path of the document the card lives in;
            relative embeds are resolved against its folder

    Returns:
        The sanitized HTML and the embedded local files, in order

    Raises:
        RenderError: If the markdown cannot be converted
    """
    if not markdown or not markdown.strip():
        return RenderedField(html="")

    renderer = AnkiFieldRenderer(source_path)
    converter = mistune.create_markdown(
        renderer=renderer,
        plugins=["strikethrough", "table", "task_lists", "footnotes", "mark"],
    )

    try:
        result = converter(_rewrite_wiki_embeds(markdown))
        html = sanitize_html(result if isinstance(result, str) else str(result))
    except Exception as e:
        logger.warning(
            "markdown_render_failed",
            source_path=source_path,
            error=str(e),
            error_type=type(e).__name__,
        )
        msg = f"Failed to render markdown from {source_path or '<memory>'}: {e}"
        raise RenderError(msg, error_code=ErrorCode.VAL_RENDER_FAILED.value) from e

    return RenderedField(html=html.strip(), media=tuple(renderer.media))
