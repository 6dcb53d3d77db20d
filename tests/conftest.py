"""Pytest configuration and fixtures for the test suite."""

import os
from pathlib import Path

import pytest

from obsidian_flashcards.cli_commands.shared import reset_cli_state
from obsidian_flashcards.config import Config, reset_config
from obsidian_flashcards.sync.label_map import LabelMap
from obsidian_flashcards.sync.orchestrator import SyncOrchestrator
from obsidian_flashcards.sync.record_builder import RecordBuilder
from obsidian_flashcards.vault.reader import VaultFileReader
from tests.fixtures import FakeAnkiBridge


@pytest.fixture(autouse=True)
def _isolate_global_state(monkeypatch):
    """Keep cached config and FLASHCARDS_* variables from leaking between tests."""
    for key in list(os.environ):
        if key.startswith("FLASHCARDS_"):
            monkeypatch.delenv(key)
    reset_config()
    reset_cli_state()
    yield
    reset_config()
    reset_cli_state()


@pytest.fixture
def fake_bridge():
    """Provide an in-memory AnkiConnect for testing."""
    return FakeAnkiBridge()


@pytest.fixture
def vault(tmp_path) -> Path:
    """Provide an empty vault directory."""
    vault_path = tmp_path / "vault"
    vault_path.mkdir()
    return vault_path


@pytest.fixture
def reader(vault) -> VaultFileReader:
    return VaultFileReader(vault)


@pytest.fixture
def builder() -> RecordBuilder:
    """Record builder with a root deck and folder decks."""
    return RecordBuilder(root_deck="Deck", use_folder_decks=True)


@pytest.fixture
def make_orchestrator(fake_bridge, builder, reader):
    """Factory for orchestrators sharing the fake bridge."""

    def _make(label_map: LabelMap, *, dry_run: bool = False) -> SyncOrchestrator:
        return SyncOrchestrator(fake_bridge, label_map, builder, reader, dry_run=dry_run)

    return _make


@pytest.fixture
def sample_config(vault) -> Config:
    """Provide a config pointing at the temporary vault."""
    return Config(vault_path=vault, root_deck="Deck")
