"""End-to-end tests of a sync run against the fake AnkiConnect."""

import pytest

from obsidian_flashcards.anki.requests import (
    AddNoteRequest,
    ChangeDeckRequest,
    CreateDeckRequest,
    DeleteNotesRequest,
    StoreMediaFileRequest,
    UpdateNoteFieldsRequest,
)
from obsidian_flashcards.exceptions import AnkiConnectError, RenderError
from obsidian_flashcards.render.markdown import RenderedField, render
from obsidian_flashcards.sync.label_map import LabelMap
from obsidian_flashcards.sync.orchestrator import SyncOrchestrator
from obsidian_flashcards.sync.record_builder import RecordBuilder
from tests.fixtures import make_article, make_card


def _articles(*cards, path="a/b/note.md"):
    return [make_article(*cards, path=path)]


class TestFirstRun:
    def test_creates_every_card(self, make_orchestrator, fake_bridge) -> None:
        label_map = LabelMap()
        cards = [make_card("c1", front="Q1"), make_card("c2", front="Q2")]

        report = make_orchestrator(label_map).run(_articles(*cards))

        assert report.created == 2
        assert report.scanned == 1
        assert report.found == 2
        assert report.errors == []
        assert len(fake_bridge.notes) == 2
        assert {label for label, _ in label_map.entries()} == {"c1", "c2"}
        for label, note_id in label_map.entries():
            assert note_id in fake_bridge.notes

    def test_decks_created_once_before_notes(self, make_orchestrator, fake_bridge) -> None:
        cards = [make_card("c1", front="Q1"), make_card("c2", front="Q2")]

        make_orchestrator(LabelMap()).run(_articles(*cards))

        deck_requests = fake_bridge.sent_of(CreateDeckRequest)
        assert [r.deck for r in deck_requests] == ["Deck::a::b"]
        first_add = next(
            i for i, r in enumerate(fake_bridge.sent) if isinstance(r, AddNoteRequest)
        )
        assert fake_bridge.sent.index(deck_requests[0]) < first_add

    def test_notes_created_in_one_call(self, make_orchestrator, fake_bridge) -> None:
        cards = [make_card(f"c{i}", front=f"Q{i}") for i in range(4)]

        make_orchestrator(LabelMap()).run(_articles(*cards))

        assert len(fake_bridge.sent_of(AddNoteRequest)) == 4
        assert fake_bridge.calls.count("multi") == 2  # createDeck, addNote


class TestIdempotence:
    def test_second_run_changes_nothing(self, make_orchestrator, fake_bridge, vault) -> None:
        (vault / "a" / "b").mkdir(parents=True)
        (vault / "a" / "b" / "pic.png").write_bytes(b"png")
        cards = [
            make_card("c1", front="Q1", back="![](pic.png)"),
            make_card("c2", front="Q2"),
        ]
        label_map = LabelMap()
        make_orchestrator(label_map).run(_articles(*cards))
        snapshot = label_map.entries()
        fake_bridge.reset_log()

        report = make_orchestrator(label_map).run(_articles(*cards))

        assert fake_bridge.mutating_requests() == []
        assert label_map.entries() == snapshot
        assert (report.created, report.updated, report.deleted) == (0, 0, 0)
        assert report.ignored == 2
        assert report.uploaded == 0


class TestUpdate:
    def test_changed_back_is_updated_and_moved(self, make_orchestrator, fake_bridge) -> None:
        label_map = LabelMap()
        make_orchestrator(label_map).run(_articles(make_card("c", back="old")))
        note_id = label_map.get("c")

        report = make_orchestrator(label_map).run(
            _articles(make_card("c", back="new", path="x/note.md"), path="x/note.md")
        )

        assert report.updated == 1
        assert fake_bridge.notes[note_id]["fields"]["Back"] == render("new").html
        assert fake_bridge.notes[note_id]["deck"] == "Deck::x"
        move = fake_bridge.sent_of(ChangeDeckRequest)[0]
        assert move.card_ids == fake_bridge.notes[note_id]["cards"]
        assert label_map.get("c") == note_id

    def test_failed_update_is_reported(self, make_orchestrator, fake_bridge) -> None:
        label_map = LabelMap()
        make_orchestrator(label_map).run(_articles(make_card("c", back="old")))
        fake_bridge.item_errors["updateNoteFields"] = "model was not found"

        report = make_orchestrator(label_map).run(_articles(make_card("c", back="new")))

        assert report.updated == 0
        assert [(e.label, e.stage) for e in report.errors] == [("c", "update")]


class TestDelete:
    def test_removed_card_is_deleted(self, make_orchestrator, fake_bridge) -> None:
        label_map = LabelMap()
        make_orchestrator(label_map).run(
            _articles(make_card("keep", front="K"), make_card("drop", front="D"))
        )
        dropped_id = label_map.get("drop")

        report = make_orchestrator(label_map).run(_articles(make_card("keep", front="K")))

        assert report.deleted == 1
        assert dropped_id not in fake_bridge.notes
        assert "drop" not in label_map
        assert "keep" in label_map
        assert len(fake_bridge.sent_of(DeleteNotesRequest)) == 1

    def test_live_note_is_never_deleted(self, make_orchestrator, fake_bridge) -> None:
        label_map = LabelMap()
        make_orchestrator(label_map).run(_articles(make_card("live")))
        live_id = label_map.get("live")
        label_map.set("alias", live_id)
        fake_bridge.reset_log()

        report = make_orchestrator(label_map).run(_articles(make_card("live")))

        assert live_id in fake_bridge.notes
        assert fake_bridge.sent_of(DeleteNotesRequest) == []
        assert report.deleted == 0
        assert "alias" not in label_map
        assert label_map.get("live") == live_id

    def test_shared_orphan_id_deleted_once(self, make_orchestrator, fake_bridge) -> None:
        orphan_id = fake_bridge.add_existing_note("x", "y")
        label_map = LabelMap({"o1": orphan_id, "o2": orphan_id})

        make_orchestrator(label_map).run([])

        assert fake_bridge.sent_of(DeleteNotesRequest)[0].note_ids == [orphan_id]
        assert len(label_map) == 0

    def test_render_failure_protects_existing_note(self, fake_bridge, reader) -> None:
        def picky_render(markdown: str, source_path: str) -> RenderedField:
            if markdown == "broken":
                raise RenderError("cannot render")
            return render(markdown, source_path)

        note_id = fake_bridge.add_existing_note("<p>broken</p>", "<p>A</p>")
        label_map = LabelMap({"bad": note_id})
        orchestrator = SyncOrchestrator(
            fake_bridge, label_map, RecordBuilder(renderer=picky_render), reader
        )

        report = orchestrator.run(_articles(make_card("bad", front="broken")))

        assert note_id in fake_bridge.notes
        assert label_map.get("bad") == note_id
        assert [(e.label, e.stage) for e in report.errors] == [("bad", "render")]
        assert report.found == 1


class TestFailures:
    def test_rejected_note_is_reported_and_not_mapped(
        self, make_orchestrator, fake_bridge
    ) -> None:
        fake_bridge.decks.add("Deck::a::b")
        fake_bridge.add_existing_note(render("Dup").html, "", deck="Deck::a::b")
        label_map = LabelMap()

        report = make_orchestrator(label_map).run(
            _articles(make_card("dup", front="Dup"), make_card("ok", front="Fine"))
        )

        assert report.created == 1
        assert "dup" not in label_map
        assert "ok" in label_map
        assert report.errors[0].label == "dup"
        assert report.errors[0].stage == "create"
        assert "duplicate" in report.errors[0].message

    def test_transport_failure_keeps_confirmed_creations(
        self, make_orchestrator, fake_bridge
    ) -> None:
        label_map = LabelMap()
        make_orchestrator(label_map).run(_articles(make_card("old", back="v1")))
        fake_bridge.fail_on_action = "updateNoteFields"

        with pytest.raises(AnkiConnectError):
            make_orchestrator(label_map).run(
                _articles(make_card("old", back="v2"), make_card("new", front="N"))
            )

        assert "new" in label_map
        assert label_map.get("new") in fake_bridge.notes

    def test_unreachable_anki_raises_before_any_change(
        self, make_orchestrator, fake_bridge
    ) -> None:
        label_map = LabelMap({"c": 1})
        fake_bridge.unreachable = True

        with pytest.raises(AnkiConnectError):
            make_orchestrator(label_map).run(_articles(make_card("c")))

        assert label_map.entries() == [("c", 1)]


class TestMedia:
    def test_embedded_file_uploaded(self, make_orchestrator, fake_bridge, vault) -> None:
        (vault / "a" / "b").mkdir(parents=True)
        (vault / "a" / "b" / "pic.png").write_bytes(b"png")

        report = make_orchestrator(LabelMap()).run(
            _articles(make_card("c", back="![](pic.png)"))
        )

        assert report.uploaded == 1
        assert "pic.png" in fake_bridge.media
        note = next(iter(fake_bridge.notes.values()))
        assert 'src="pic.png"' in note["fields"]["Back"]

    def test_file_missing_remotely_is_reuploaded(
        self, make_orchestrator, fake_bridge, vault
    ) -> None:
        (vault / "a" / "b").mkdir(parents=True)
        (vault / "a" / "b" / "pic.png").write_bytes(b"png")
        cards = [make_card("c", back="![[pic.png]]")]
        label_map = LabelMap()
        make_orchestrator(label_map).run(_articles(*cards))
        fake_bridge.media.clear()
        fake_bridge.reset_log()

        report = make_orchestrator(label_map).run(_articles(*cards))

        assert report.ignored == 1
        assert report.uploaded == 1
        assert len(fake_bridge.sent_of(StoreMediaFileRequest)) == 1

    def test_missing_local_file_reported(self, make_orchestrator, fake_bridge) -> None:
        report = make_orchestrator(LabelMap()).run(
            _articles(make_card("c", back="![](nowhere.png)"))
        )

        assert report.created == 1
        assert report.uploaded == 0
        assert [(e.label, e.stage) for e in report.errors] == [
            ("a/b/nowhere.png", "media")
        ]


class TestDryRun:
    def test_dry_run_only_reads(self, make_orchestrator, fake_bridge) -> None:
        label_map = LabelMap()
        make_orchestrator(label_map).run(
            _articles(make_card("stale", back="v1"), make_card("gone", front="G"))
        )
        fake_bridge.reset_log()
        snapshot = label_map.entries()

        report = make_orchestrator(label_map, dry_run=True).run(
            _articles(make_card("stale", back="v2"), make_card("new", front="N"))
        )

        assert fake_bridge.mutating_requests() == []
        assert label_map.entries() == snapshot
        assert (report.created, report.updated, report.deleted) == (1, 1, 1)
        assert report.dry_run is True


class TestReport:
    def test_render_summary(self, make_orchestrator) -> None:
        report = make_orchestrator(LabelMap()).run(_articles(make_card("c")))

        text = report.render()

        assert "Scanned\t1 file(s)" in text
        assert "Created\t1 card(s)" in text
        assert "Uploaded\t0 file(s)" in text

    def test_update_requests_carry_fields(self, make_orchestrator, fake_bridge) -> None:
        label_map = LabelMap()
        make_orchestrator(label_map).run(_articles(make_card("c", back="one")))

        make_orchestrator(label_map).run(_articles(make_card("c", back="two")))

        update = fake_bridge.sent_of(UpdateNoteFieldsRequest)[0]
        assert update.note_id == label_map.get("c")
        assert update.fields["Back"] == render("two").html


class TestLabelConflicts:
    def test_block_id_shared_by_two_documents_is_stable(
        self, make_orchestrator, fake_bridge
    ) -> None:
        articles = [
            make_article(make_card("x", front="Q1", path="a.md"), path="a.md"),
            make_article(make_card("x", front="Q2", path="b.md"), path="b.md"),
        ]
        label_map = LabelMap()

        first = make_orchestrator(label_map).run(articles)
        note_id = label_map.get("x")
        reports = [make_orchestrator(label_map).run(articles) for _ in range(2)]

        assert first.created == 1
        assert [(e.label, e.stage) for e in first.errors] == [("x", "label")]
        for report in reports:
            assert (report.created, report.updated, report.deleted) == (0, 0, 0)
            assert report.ignored == 1
        assert label_map.entries() == [("x", note_id)]
        assert list(fake_bridge.notes) == [note_id]
        assert "Q1" in fake_bridge.notes[note_id]["fields"]["Front"]


class TestUnreadableMedia:
    def test_unreadable_file_does_not_abort_the_run(
        self, make_orchestrator, fake_bridge, reader, vault, monkeypatch
    ) -> None:
        (vault / "a" / "b").mkdir(parents=True)
        (vault / "a" / "b" / "ok.png").write_bytes(b"png")
        orphan_id = fake_bridge.add_existing_note("<p>old</p>", "<p>old</p>")
        label_map = LabelMap({"orphan": orphan_id})
        read_binary = reader.read_binary

        def locked(path: str) -> bytes:
            if path.endswith("locked.png"):
                raise PermissionError(13, "Permission denied", path)
            return read_binary(path)

        monkeypatch.setattr(reader, "read_binary", locked)

        report = make_orchestrator(label_map).run(
            _articles(make_card("c", back="![](locked.png) ![](ok.png)"))
        )

        assert report.created == 1
        assert report.uploaded == 1
        assert report.deleted == 1
        assert orphan_id not in fake_bridge.notes
        assert "ok.png" in fake_bridge.media
        assert [(e.label, e.stage) for e in report.errors] == [
            ("a/b/locked.png", "media")
        ]
