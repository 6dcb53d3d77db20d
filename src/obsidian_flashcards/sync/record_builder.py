"""Build the remote note for each local card."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from obsidian_flashcards.anki.models import AnkiNote
from obsidian_flashcards.error_codes import ErrorCode
from obsidian_flashcards.exceptions import RenderError
from obsidian_flashcards.models import Article, Card
from obsidian_flashcards.render.markdown import RenderedField, render
from obsidian_flashcards.sync.label_map import LabelMap
from obsidian_flashcards.sync.models import CardError, CardRecord
from obsidian_flashcards.utils.logging import get_logger

if TYPE_CHECKING:
    from obsidian_flashcards.config import Config

logger = get_logger(__name__)

DECK_SEPARATOR = "::"


class RecordBuilder:
    """Turns cards into CardRecords: deck, note type, rendered fields, media.

    Only reads the label map.
    """

    def __init__(
        self,
        root_deck: str = "",
        use_folder_decks: bool = True,
        default_deck: str = "Default",
        model_name: str = "Basic",
        renderer: Callable[[str, str], RenderedField] = render,
    ):
        self.root_deck = root_deck
        self.use_folder_decks = use_folder_decks
        self.default_deck = default_deck
        self.model_name = model_name
        self._render = renderer

    @classmethod
    def from_config(cls, config: Config) -> RecordBuilder:
        return cls(
            root_deck=config.root_deck,
            use_folder_decks=config.use_folder_decks,
            default_deck=config.default_deck,
            model_name=config.note_type,
        )

    def deck_name(self, source_path: str) -> str:
        """Deck for a card from the document at ``source_path``.

        The root deck followed by the document's folders, joined with
        ``::``; empty names fall back to the default deck.
        """
        segments = [part.strip() for part in self.root_deck.split("/")]
        if self.use_folder_decks:
            parent = PurePosixPath(source_path).parent
            segments.extend(part.strip() for part in parent.parts if part != ".")

        deck = DECK_SEPARATOR.join(segment for segment in segments if segment)
        if not deck.strip(": "):
            return self.default_deck
        return deck

    def build(self, card: Card, label_map: LabelMap) -> CardRecord:
        """Build the record for one card.

        Raises:
            RenderError: If the front or back cannot be rendered
        """
        try:
            front = self._render(card.front, card.source_path)
            back = self._render(card.back, card.source_path)
        except RenderError as e:
            raise RenderError(
                e.message,
                label=card.label,
                suggestion=e.suggestion,
                error_code=e.error_code,
            ) from e

        note = AnkiNote(
            id=label_map.get(card.label),
            deck_name=self.deck_name(card.source_path),
            model_name=self.model_name,
            fields={"Front": front.html, "Back": back.html},
        )
        return CardRecord(card=card, note=note, media=[*front.media, *back.media])

    def build_all(
        self, articles: Iterable[Article], label_map: LabelMap
    ) -> tuple[list[CardRecord], list[CardError]]:
        """Build records for every card, collecting render failures.

        A label already used by a card of an earlier document (block ids are
        only unique per document) is reported as a ``CardError`` with stage
        ``"label"``; the first card keeps the label.
        """
        records: list[CardRecord] = []
        errors: list[CardError] = []
        label_owners: dict[str, str] = {}

        for article in articles:
            for card in article.cards:
                owner = label_owners.setdefault(card.label, card.source_path)
                if owner != card.source_path:
                    message = f"Label {card.label!r} is already used in {owner}"
                    logger.warning(
                        "card_label_conflict",
                        label=card.label,
                        path=card.source_path,
                        first_path=owner,
                        error_code=ErrorCode.VAL_LABEL_CONFLICT.value,
                    )
                    errors.append(CardError(label=card.label, stage="label", message=message))
                    continue
                try:
                    records.append(self.build(card, label_map))
                except RenderError as e:
                    logger.warning(
                        "card_render_failed",
                        label=card.label,
                        path=card.source_path,
                        error=e.message,
                        error_code=e.error_code,
                    )
                    errors.append(
                        CardError(label=card.label, stage="render", message=e.message)
                    )

        return records, errors
