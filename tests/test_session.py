"""Tests for session.py - debounced flush, save status and the workspace.

Most tests run against an in-memory storage so the flush contents can be
inspected directly; the last class goes through notes_db end to end.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

import pytest

from quillpad.editor.blocks_models import BlockType
from quillpad.errors import ConfigurationError, NotFoundError
from quillpad.session import EditorSession, SaveStatus, Workspace


class MemoryStorage:
    """Dict-backed storage collaborator."""

    def __init__(self) -> None:
        self.notes: dict[str, dict[str, Any]] = {}
        self.blocks: dict[str, dict[str, Any]] = {}
        self.fail = False
        self.flushes = 0
        self._next = 0

    def _check(self) -> None:
        if self.fail:
            raise OSError("disk full")

    def list_notes(self) -> list[dict[str, Any]]:
        return list(self.notes.values())

    def get_note(self, note_id: str) -> dict[str, Any] | None:
        return self.notes.get(note_id)

    def create_note(self, *, name: str | None = None) -> dict[str, Any]:
        self._next += 1
        note = {"id": f"note-{self._next}", "name": name or "Untitled", "title_manually_set": False}
        self.notes[note["id"]] = note
        return note

    def update_note(self, note: dict[str, Any]) -> dict[str, Any]:
        self._check()
        if note["id"] not in self.notes:
            raise NotFoundError("Note not found", resource_type="note", resource_id=note["id"])
        self.flushes += 1
        self.notes[note["id"]] = dict(note)
        return note

    def delete_note(self, note_id: str) -> bool:
        self.blocks = {k: v for k, v in self.blocks.items() if v["noteId"] != note_id}
        return self.notes.pop(note_id, None) is not None

    def is_note_empty(self, note_id: str) -> bool:
        return not any(
            r["content"] for r in self.blocks.values() if r["noteId"] == note_id
        )

    def get_blocks_by_note(self, note_id: str) -> list[dict[str, Any]]:
        records = [r for r in self.blocks.values() if r["noteId"] == note_id]
        return sorted(records, key=lambda r: r["order"])

    def save_block(self, record: dict[str, Any]) -> None:
        self._check()
        self.blocks[record["id"]] = dict(record)

    def delete_block(self, block_id: str) -> bool:
        self._check()
        return self.blocks.pop(block_id, None) is not None


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def open_session(storage: MemoryStorage, fake_timers):
    """An open session on a fresh note, plus the list of status changes."""
    note = storage.create_note(name="Draft")
    statuses: list[SaveStatus] = []
    session = EditorSession.open(
        storage,
        note["id"],
        timer_factory=fake_timers,
        on_status=lambda _note_id, status: statuses.append(status),
    )
    return session, statuses


class TestOpen:
    def test_unknown_note(self, storage: MemoryStorage) -> None:
        with pytest.raises(NotFoundError):
            EditorSession.open(storage, "note-missing")

    def test_empty_note_bootstraps_without_flush(self, open_session, fake_timers) -> None:
        session, statuses = open_session
        assert len(session.engine.blocks) == 1
        assert session.engine.blocks[0].type == BlockType.TEXT
        assert fake_timers.created == []
        assert statuses == []
        assert session.status == SaveStatus.IDLE

    def test_loads_stored_blocks(self, storage: MemoryStorage) -> None:
        note = storage.create_note()
        storage.blocks["x"] = {"id": "x", "noteId": note["id"], "type": "todo", "content": "buy milk",
                               "order": 0, "checked": True}
        session = EditorSession.open(storage, note["id"])
        block = session.engine.blocks[0]
        assert block.type == BlockType.TODO
        assert block.properties["checked"] is True


class TestDebouncedFlush:
    def test_mutation_schedules_flush(self, open_session, fake_timers, storage) -> None:
        session, statuses = open_session
        block_id = session.engine.blocks[0].id
        with session.edit() as engine:
            engine.update_content(block_id, "hello")

        assert session.flush_pending
        assert statuses == [SaveStatus.SAVING]
        assert fake_timers.live[0].interval == pytest.approx(0.5)
        assert storage.blocks == {}

        fake_timers.fire_all()
        assert statuses == [SaveStatus.SAVING, SaveStatus.SAVED]
        assert storage.blocks[block_id]["content"] == "hello"

    def test_burst_produces_one_flush(self, open_session, fake_timers, storage) -> None:
        session, _ = open_session
        block_id = session.engine.blocks[0].id
        with session.edit() as engine:
            for text in ("h", "he", "hel", "hell", "hello"):
                engine.update_content(block_id, text)

        assert len(fake_timers.live) == 1
        fake_timers.fire_all()
        assert storage.flushes == 1
        assert storage.blocks[block_id]["content"] == "hello"

    def test_flush_writes_dense_orders(self, open_session, storage) -> None:
        session, _ = open_session
        with session.edit() as engine:
            first = engine.blocks[0]
            engine.insert_after(first.id, BlockType.H1, "Title")
            engine.add_block_at_end()
            engine.delete_block(first.id)
        assert session.flush() is True

        orders = sorted(r["order"] for r in storage.blocks.values())
        assert orders == [0, 1]
        assert first.id not in storage.blocks

    def test_removed_block_deleted_from_storage(self, open_session, storage) -> None:
        session, _ = open_session
        with session.edit() as engine:
            second = engine.add_block_at_end()
        session.flush()
        assert second.id in storage.blocks

        with session.edit() as engine:
            engine.delete_block(second.id)
        session.flush()
        assert second.id not in storage.blocks

    def test_close_runs_pending_flush(self, open_session, storage) -> None:
        session, _ = open_session
        block_id = session.engine.blocks[0].id
        with session.edit() as engine:
            engine.update_content(block_id, "typed")
        assert session.close() is True
        assert not session.flush_pending
        assert storage.blocks[block_id]["content"] == "typed"

    def test_discard_drops_pending_flush(self, open_session, fake_timers, storage) -> None:
        session, _ = open_session
        with session.edit() as engine:
            engine.add_block_at_end()
        session.discard()
        fake_timers.fire_all()
        assert storage.blocks == {}

    def test_edit_during_write_keeps_saving_status(self, open_session, fake_timers, storage) -> None:
        session, statuses = open_session
        block_id = session.engine.blocks[0].id
        with session.edit() as engine:
            engine.update_content(block_id, "first")

        save_block = storage.save_block
        typed: list[str] = []

        def save_and_type(record: dict[str, Any]) -> None:
            save_block(record)
            if not typed:
                typed.append("second")
                with session.edit() as engine:
                    engine.update_content(block_id, "second")

        storage.save_block = save_and_type
        fake_timers.fire_all()

        assert storage.blocks[block_id]["content"] == "first"
        assert session.flush_pending
        assert session.status == SaveStatus.SAVING
        assert SaveStatus.SAVED not in statuses

        storage.save_block = save_block
        fake_timers.fire_all()
        assert storage.blocks[block_id]["content"] == "second"
        assert session.status == SaveStatus.SAVED

    def test_direct_flush_supersedes_pending_timer(self, open_session, fake_timers, storage) -> None:
        session, _ = open_session
        with session.edit() as engine:
            engine.add_block_at_end()
        assert session.flush() is True
        assert not session.flush_pending
        assert session.status == SaveStatus.SAVED
        fake_timers.fire_all()
        assert storage.flushes == 1

    def test_negative_debounce_rejected(self, storage) -> None:
        note = storage.create_note()
        with pytest.raises(ConfigurationError) as excinfo:
            EditorSession.open(storage, note["id"], debounce_ms=-1)
        assert excinfo.value.to_dict()["setting"] == "save_debounce_ms"


class TestFlushFailure:
    def test_failure_sets_error_and_keeps_state(self, open_session, storage) -> None:
        session, statuses = open_session
        block_id = session.engine.blocks[0].id
        with session.edit() as engine:
            engine.update_content(block_id, "precious")

        storage.fail = True
        assert session.flush() is False
        assert session.status == SaveStatus.ERROR
        assert statuses[-1] == SaveStatus.ERROR
        assert session.last_error is not None
        assert session.last_error.note_id == session.note_id
        assert session.engine.get_block(block_id).content == "precious"

    def test_removed_ids_retried_after_failure(self, open_session, storage) -> None:
        session, _ = open_session
        with session.edit() as engine:
            extra = engine.add_block_at_end()
        session.flush()

        with session.edit() as engine:
            engine.delete_block(extra.id)
        storage.fail = True
        session.flush()
        assert extra.id in storage.blocks

        storage.fail = False
        assert session.flush() is True
        assert extra.id not in storage.blocks
        assert session.status == SaveStatus.SAVED
        assert session.last_error is None

    def test_failing_status_callback_does_not_break_flush(self, storage, fake_timers) -> None:
        def broken(_note_id: str, _status: SaveStatus) -> None:
            raise RuntimeError("ui gone")

        note = storage.create_note()
        session = EditorSession.open(storage, note["id"], timer_factory=fake_timers, on_status=broken)
        assert session.flush() is True


class TestTitles:
    def test_rename_marks_title_manual(self, open_session, storage) -> None:
        session, _ = open_session
        assert session.rename("Shopping") is True
        session.flush()
        assert storage.notes[session.note_id]["name"] == "Shopping"
        assert storage.notes[session.note_id]["title_manually_set"] is True

    def test_generated_title_applies_until_user_renames(self, open_session) -> None:
        session, _ = open_session
        assert session.apply_generated_title("Weekly plan") is True
        assert session.engine.document.name == "Weekly plan"
        assert session.engine.document.title_manually_set is False

        session.rename("Mine")
        assert session.apply_generated_title("Something else") is False
        assert session.engine.document.name == "Mine"


class TestState:
    def test_state_shape(self, open_session) -> None:
        session, _ = open_session
        with session.edit() as engine:
            first = engine.blocks[0]
            engine.change_type(first.id, BlockType.NUMBERED)
            engine.insert_after(first.id, BlockType.NUMBERED, "two")

        state = session.state()
        assert state["document"]["id"] == session.note_id
        assert [b["ordinal"] for b in state["blocks"]] == [1, 2]
        assert state["focus"]["block_id"] == state["blocks"][1]["id"]
        assert state["save_status"] == "saving"

    def test_video_blocks_carry_embed_url(self, open_session) -> None:
        session, _ = open_session
        with session.edit() as engine:
            first = engine.blocks[0]
            engine.change_type(first.id, BlockType.VIDEO)
            engine.set_video_url(first.id, "https://youtu.be/dQw4w9WgXcQ")
            engine.add_block_at_end()

        video, text = session.state()["blocks"]
        assert video["embedUrl"] == "https://www.youtube.com/embed/dQw4w9WgXcQ"
        assert "embedUrl" not in text


class TestWorkspace:
    def test_create_note_activates_it(self, storage, fake_timers) -> None:
        workspace = Workspace(storage, timer_factory=fake_timers)
        session = workspace.create_note("First")
        assert workspace.active is session
        assert workspace.open_note_ids() == [session.note_id]

    def test_session_is_cached(self, storage, fake_timers) -> None:
        workspace = Workspace(storage, timer_factory=fake_timers)
        note = storage.create_note()
        assert workspace.session(note["id"]) is workspace.session(note["id"])

    def test_switching_flushes_outgoing_note(self, storage, fake_timers) -> None:
        workspace = Workspace(storage, timer_factory=fake_timers)
        first = workspace.create_note("First")
        block_id = first.engine.blocks[0].id
        with first.edit() as engine:
            engine.update_content(block_id, "unsaved")

        second = workspace.create_note("Second")
        assert workspace.active is second
        assert not first.flush_pending
        assert storage.blocks[block_id]["content"] == "unsaved"

    def test_delete_note_discards_session(self, storage, fake_timers) -> None:
        workspace = Workspace(storage, timer_factory=fake_timers)
        session = workspace.create_note("Doomed")
        with session.edit() as engine:
            engine.add_block_at_end()

        assert workspace.delete_note(session.note_id) is True
        fake_timers.fire_all()
        assert workspace.active is None
        assert session.note_id not in storage.notes
        assert storage.blocks == {}

    def test_deleted_note_is_never_written_again(self, storage, fake_timers) -> None:
        workspace = Workspace(storage, timer_factory=fake_timers)
        session = workspace.create_note("Doomed")
        workspace.delete_note(session.note_id)

        with session.edit() as engine:
            engine.update_content(engine.blocks[0].id, "late keystroke")
        assert session.flush() is False
        fake_timers.fire_all()
        assert session.note_id not in storage.notes
        assert storage.blocks == {}

    def test_delete_waits_for_write_in_progress(self, storage, fake_timers) -> None:
        workspace = Workspace(storage, timer_factory=fake_timers)
        session = workspace.create_note("Doomed")
        with session.edit() as engine:
            engine.update_content(engine.blocks[0].id, "in flight")

        writing = threading.Event()
        release = threading.Event()
        update_note = storage.update_note

        def slow_update(note: dict[str, Any]) -> dict[str, Any]:
            writing.set()
            assert release.wait(timeout=5)
            return update_note(note)

        storage.update_note = slow_update
        flusher = threading.Thread(target=session.flush)
        flusher.start()
        assert writing.wait(timeout=5)

        deleter = threading.Thread(target=workspace.delete_note, args=(session.note_id,))
        deleter.start()
        release.set()
        flusher.join(timeout=5)
        deleter.join(timeout=5)

        assert not deleter.is_alive()
        assert session.note_id not in storage.notes
        assert storage.blocks == {}

    def test_is_note_empty_flushes_first(self, storage, fake_timers) -> None:
        workspace = Workspace(storage, timer_factory=fake_timers)
        session = workspace.create_note()
        assert workspace.is_note_empty(session.note_id) is True

        with session.edit() as engine:
            engine.update_content(engine.blocks[0].id, "now with words")
        assert workspace.is_note_empty(session.note_id) is False

    def test_close_all_reports_failure(self, storage, fake_timers) -> None:
        workspace = Workspace(storage, timer_factory=fake_timers)
        session = workspace.create_note()
        with session.edit() as engine:
            engine.add_block_at_end()
        storage.fail = True
        assert workspace.close_all() is False


class TestWithNotesDb:
    def test_edits_survive_reopen(self, temp_data_dir: Path, fake_timers) -> None:
        workspace = Workspace(timer_factory=fake_timers)
        session = workspace.create_note("Persistent")
        with session.edit() as engine:
            first = engine.blocks[0]
            engine.update_content(first.id, "# Heading")
            engine.insert_after(first.id, BlockType.TODO, "task")
        assert workspace.close_all() is True

        reopened = Workspace(timer_factory=fake_timers).session(session.note_id)
        assert [b.type for b in reopened.engine.blocks] == [BlockType.H1, BlockType.TODO]
        assert reopened.engine.blocks[0].content == "Heading"
        assert reopened.engine.document.name == "Persistent"

    def test_flush_after_delete_leaves_no_trace(self, temp_data_dir: Path, fake_timers) -> None:
        import quillpad.notes_db as notes_db

        workspace = Workspace(timer_factory=fake_timers)
        session = workspace.create_note("Gone")
        with session.edit() as engine:
            engine.update_content(engine.blocks[0].id, "draft")
        assert workspace.delete_note(session.note_id) is True

        assert session.flush() is False
        assert notes_db.get_note(session.note_id) is None
        assert notes_db.get_blocks_by_note(session.note_id) == []
