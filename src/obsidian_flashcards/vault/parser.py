"""Find flashcards in Obsidian documents.

A card is a heading tagged with ``#card``::

    ## What does HTTP 418 mean? #card ^http-418

    I'm a teapot.

The heading text (without the tag and block id) is the front; everything
below it up to the next heading of the same or a higher level, or the next
card heading, is the back. The block id, when present, is the card label.
"""

from __future__ import annotations

import hashlib
import re
import unicodedata
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

import frontmatter
import yaml

from obsidian_flashcards.error_codes import ErrorCode
from obsidian_flashcards.exceptions import ParserError
from obsidian_flashcards.models import Article, Card
from obsidian_flashcards.utils.logging import get_logger
from obsidian_flashcards.vault.reader import VaultFileReader

if TYPE_CHECKING:
    from obsidian_flashcards.config import Config

logger = get_logger(__name__)

MAX_LABEL_LENGTH = 80

_HEADING_RE = re.compile(r"^(#{1,6})[ \t]+(.+?)[ \t]*$")
_FENCE_RE = re.compile(r"^[ \t]{0,3}(`{3,}|~{3,})")
_BLOCK_ID_RE = re.compile(r"[ \t]+\^([A-Za-z0-9-]+)[ \t]*$")


def _tag_pattern(card_tag: str) -> re.Pattern[str]:
    return re.compile(rf"(?:^|[ \t])#{re.escape(card_tag)}(?=[ \t]|$)", re.IGNORECASE)


def _normalize_segment(segment: str) -> str:
    """Normalize a piece of text into a slug-friendly form."""
    normalized = unicodedata.normalize("NFKD", segment)
    ascii_segment = normalized.encode("ascii", "ignore").decode("ascii")
    ascii_segment = re.sub(r"[^a-z0-9-]", "-", ascii_segment.lower())
    return re.sub(r"-+", "-", ascii_segment).strip("-")


def make_label(path: str, front: str) -> str:
    """Stable label for a card without a block id.

    Built from the document path and the heading text, so it survives
    reordering but not renaming.
    """
    path_parts = PurePosixPath(path).with_suffix("").parts
    path_slug = "-".join(p for p in map(_normalize_segment, path_parts) if p) or "note"
    front_slug = _normalize_segment(front)
    if not front_slug:
        # Headings without ASCII letters (e.g. Cyrillic) still need a distinct label
        front_slug = hashlib.sha1(front.encode("utf-8")).hexdigest()[:8]
    return f"{path_slug}--{front_slug}"[:MAX_LABEL_LENGTH].rstrip("-")


def _split_heading(text: str, tag_re: re.Pattern[str]) -> tuple[str, str | None]:
    """Return (front, block id) for a card heading."""
    block_id = None
    match = _BLOCK_ID_RE.search(text)
    if match:
        block_id = match.group(1)
        text = text[: match.start()]
    front = tag_re.sub(" ", text)
    return " ".join(front.split()), block_id


def parse_article(text: str, path: str, card_tag: str = "card") -> Article:
    """Extract the cards of one document.

    Args:
        text: Document content, frontmatter included
        path: Vault-relative POSIX path of the document
        card_tag: Tag (without ``#``) that marks a card heading

    Raises:
        ParserError: If the YAML frontmatter is malformed
    """
    try:
        post = frontmatter.loads(text)
    except yaml.YAMLError as e:
        msg = f"Invalid frontmatter in {path}: {e}"
        raise ParserError(
            msg,
            suggestion="Fix the YAML block at the top of the document",
            error_code=ErrorCode.VAL_PARSE_FAILED.value,
            context={"path": path},
        ) from e

    article = Article(path=path)
    if post.metadata.get("flashcards") is False:
        logger.debug("article_disabled", path=path)
        return article

    tag_re = _tag_pattern(card_tag)
    lines = post.content.splitlines()

    # (line index, level, heading text) of every heading outside code fences
    headings: list[tuple[int, int, str]] = []
    fence: str | None = None
    for index, line in enumerate(lines):
        fence_match = _FENCE_RE.match(line)
        if fence_match:
            marker = fence_match.group(1)
            if fence is None:
                fence = marker
            elif marker[0] == fence[0] and len(marker) >= len(fence):
                fence = None
            continue
        if fence is not None:
            continue
        heading_match = _HEADING_RE.match(line)
        if heading_match:
            headings.append(
                (index, len(heading_match.group(1)), heading_match.group(2))
            )

    assigned: set[str] = set()
    suffixes: dict[str, int] = {}  # last numeric suffix used per duplicated label
    for position, (index, level, heading_text) in enumerate(headings):
        if not tag_re.search(heading_text):
            continue

        end = len(lines)
        for next_index, next_level, next_text in headings[position + 1 :]:
            if next_level <= level or tag_re.search(next_text):
                end = next_index
                break

        front, block_id = _split_heading(heading_text, tag_re)
        if not front:
            logger.warning("empty_card_front", path=path, line=index + 1)
            continue
        back = "\n".join(lines[index + 1 : end]).strip()
        label = block_id or make_label(path, front)

        if label in assigned:
            duplicate = label
            suffix = suffixes.get(duplicate, 1) + 1
            while f"{duplicate}-{suffix}" in assigned:
                suffix += 1
            suffixes[duplicate] = suffix
            label = f"{duplicate}-{suffix}"
            logger.warning("duplicate_card_label", path=path, label=duplicate)
        assigned.add(label)

        article.cards.append(
            Card(label=label, front=front, back=back, source_path=path)
        )

    return article


def discover_articles(vault_path: Path, source_dirs: list[Path] | None = None) -> list[Path]:
    """
    Find markdown documents in the vault.

    Args:
        vault_path: Root vault path
        source_dirs: Directories to search, relative to the vault. If None,
            searches the entire vault.

    Returns:
        Sorted absolute paths, hidden folders (``.obsidian``, ``.trash``)
        excluded
    """
    search_dirs = source_dirs or [Path()]

    found: set[Path] = set()
    for src_dir in search_dirs:
        full_source = vault_path / src_dir
        if not full_source.is_dir():
            logger.warning("source_dir_not_found", path=str(full_source))
            continue

        dir_notes = [
            md_file
            for md_file in full_source.rglob("*.md")
            if md_file.is_file()
            and not any(
                part.startswith(".") for part in md_file.relative_to(vault_path).parts
            )
        ]
        logger.debug(
            "discovered_notes_in_dir",
            count=len(dir_notes),
            path=str(full_source),
        )
        found.update(dir_notes)

    return sorted(found)


def load_articles(config: Config, reader: VaultFileReader | None = None) -> list[Article]:
    """Discover and parse every document of the configured vault.

    Raises:
        ParserError: If a document cannot be read or parsed
    """
    vault_path = config.vault_path.resolve()
    reader = reader or VaultFileReader(vault_path)

    articles = []
    for md_file in discover_articles(vault_path, config.source_dirs):
        relative = md_file.resolve().relative_to(vault_path).as_posix()
        articles.append(parse_article(reader.read_text(relative), relative, config.card_tag))

    logger.info(
        "articles_loaded",
        articles=len(articles),
        cards=sum(len(article.cards) for article in articles),
    )
    return articles
