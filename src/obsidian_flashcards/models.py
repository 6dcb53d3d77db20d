"""Data models for vault content."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Card:
    """A single flashcard authored in an Obsidian document.

    Identity across runs is by ``label``; front and back are markdown.
    """

    label: str
    front: str
    back: str
    source_path: str  # vault-relative POSIX path of the containing document


@dataclass
class Article:
    """An Obsidian document and the cards found in it."""

    path: str  # vault-relative POSIX path
    cards: list[Card] = field(default_factory=list)


@dataclass(frozen=True)
class MediaRef:
    """A local file embedded in a card.

    ``key`` is the name the file gets in Anki's media folder (the string the
    rendered HTML points at); ``path`` is the vault-relative file path.
    """

    key: str
    path: str
