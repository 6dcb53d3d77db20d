"""Test fixtures package."""

from .factories import make_article, make_card
from .fake_anki_bridge import FakeAnkiBridge

__all__ = ["FakeAnkiBridge", "make_article", "make_card"]
