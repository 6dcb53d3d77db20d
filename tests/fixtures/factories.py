"""Builders for cards and articles used across tests."""

from obsidian_flashcards.models import Article, Card


def make_card(
    label: str, front: str = "Q", back: str = "A", path: str = "a/b/note.md"
) -> Card:
    return Card(label=label, front=front, back=back, source_path=path)


def make_article(*cards: Card, path: str = "a/b/note.md") -> Article:
    return Article(path=path, cards=list(cards))
