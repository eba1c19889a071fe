"""Editor sessions: one open document, its engine and its debounced flush.

Editing happens under the session lock. Every committed mutation (re)schedules
a trailing-edge flush; the flush snapshots the records under the lock and then
writes them outside it, so a slow storage write never blocks the next edit.

A ``Workspace`` holds the open sessions over one storage collaborator and
makes sure the outgoing note is flushed before another note becomes active.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from enum import Enum
from typing import Any, Callable, Iterator, Protocol

from . import notes_db
from .debounce import Debouncer, TimerFactory
from .editor.blocks_models import Block, BlockType, Document, now_iso
from .editor.embeds import video_embed_url
from .editor.engine import EditingEngine
from .editor.serializer import load_blocks
from .errors import ConfigurationError, NotFoundError, PersistenceFailure
from .settings import settings

logger = logging.getLogger(__name__)


class BlockStorage(Protocol):
    """What a session needs from storage. ``notes_db`` satisfies it."""

    def get_note(self, note_id: str) -> dict[str, Any] | None: ...

    def update_note(self, note: dict[str, Any]) -> Any: ...

    def get_blocks_by_note(self, note_id: str) -> list[dict[str, Any]]: ...

    def save_block(self, record: dict[str, Any]) -> Any: ...

    def delete_block(self, block_id: str) -> Any: ...


class NoteStorage(BlockStorage, Protocol):
    """Storage that can also list, create and permanently delete notes."""

    def list_notes(self) -> list[dict[str, Any]]: ...

    def create_note(self, *, name: str | None = None) -> dict[str, Any]: ...

    def delete_note(self, note_id: str) -> bool: ...

    def is_note_empty(self, note_id: str) -> bool: ...


class SaveStatus(str, Enum):
    """Save indicator states shown by the host."""

    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


StatusCallback = Callable[[str, SaveStatus], None]


class EditorSession:
    """One open document."""

    def __init__(
        self,
        document: Document,
        blocks: list[Block] | None = None,
        *,
        storage: BlockStorage,
        debounce_ms: int | None = None,
        timer_factory: TimerFactory | None = None,
        on_status: StatusCallback | None = None,
    ) -> None:
        self.storage = storage
        self.on_status = on_status
        self.status = SaveStatus.IDLE
        self.last_error: PersistenceFailure | None = None

        self._lock = threading.RLock()
        self._flush_lock = threading.Lock()
        self._discarded = False

        delay_ms = settings.save_debounce_ms if debounce_ms is None else debounce_ms
        if delay_ms < 0:
            raise ConfigurationError(
                f"Save debounce must be >= 0 ms, got {delay_ms}", setting="save_debounce_ms"
            )
        self._debouncer = Debouncer(
            delay_ms / 1000.0,
            timer_factory=timer_factory,
            name=f"flush {document.id}",
        )
        self.engine = EditingEngine(document, blocks or (), on_mutation=self._schedule_flush)

    @classmethod
    def open(cls, storage: BlockStorage, note_id: str, **kwargs: Any) -> EditorSession:
        """Load a note and its blocks from storage.

        Raises:
            NotFoundError: The note does not exist.
        """
        note = storage.get_note(note_id)
        if note is None:
            raise NotFoundError(f"Note not found: {note_id}", resource_type="note", resource_id=note_id)
        blocks = load_blocks(storage.get_blocks_by_note(note_id))
        logger.debug("Opened note %s with %d blocks", note_id, len(blocks))
        return cls(Document.from_dict(note), blocks, storage=storage, **kwargs)

    @property
    def note_id(self) -> str:
        return self.engine.document.id

    @property
    def flush_pending(self) -> bool:
        return self._debouncer.pending

    @contextmanager
    def edit(self) -> Iterator[EditingEngine]:
        """Hold the session lock for the duration of one or more operations."""
        with self._lock:
            yield self.engine

    # =========================================================================
    # Title
    # =========================================================================

    def rename(self, name: str) -> bool:
        """User rename: the title becomes user-owned."""
        with self._lock:
            return self.engine.set_title(name, manual=True)

    def apply_generated_title(self, title: str) -> bool:
        """Title suggested by the AI collaborator.

        Ignored once the user has named the note themselves.
        """
        with self._lock:
            if self.engine.document.title_manually_set:
                logger.debug("Ignoring generated title for %s: title set by user", self.note_id)
                return False
            return self.engine.set_title(title, manual=False)

    def text(self) -> str:
        with self._lock:
            return self.engine.text_content()

    # =========================================================================
    # Flush
    # =========================================================================

    def flush(self) -> bool:
        """Write the current state to storage now.

        Returns True on success. A failure sets the status to ``error`` and
        keeps the in-memory state; the next mutation schedules another try.
        A discarded session never writes again.
        """
        with self._flush_lock:
            if self._discarded:
                logger.debug("Skipping flush of discarded note %s", self.note_id)
                return False

            with self._lock:
                # This snapshot covers every edit so far
                self._debouncer.cancel()
                self.engine.document.updated_at = now_iso()
                note = self.engine.document.to_dict()
                records = self.engine.snapshot()
                removed = self.engine.drain_removed_ids()

            try:
                self.storage.update_note(note)
                for record in records:
                    self.storage.save_block(record)
                for block_id in removed:
                    self.storage.delete_block(block_id)
            except Exception as e:
                failure = PersistenceFailure(f"Failed to save note: {e}", note_id=note["id"])
                logger.error("Flush of note %s failed: %s", note["id"], e, exc_info=True)
                with self._lock:
                    self.engine.requeue_removed_ids(removed)
                self.last_error = failure
                self._set_status(SaveStatus.ERROR)
                return False

            logger.debug(
                "Flushed note %s: %d blocks saved, %d deleted",
                note["id"], len(records), len(removed),
            )
            self.last_error = None
            # An edit that landed during the write has its own flush queued
            if self._debouncer.pending:
                logger.debug("Note %s changed during flush; staying in saving", note["id"])
            else:
                self._set_status(SaveStatus.SAVED)
            return True

    def close(self) -> bool:
        """Run any pending flush synchronously. Returns False if it failed."""
        self._debouncer.flush()
        return self.status != SaveStatus.ERROR

    def discard(self) -> None:
        """Stop all writes for this session (the note is being deleted).

        Waits for a flush already in progress, so nothing is written after
        this returns.
        """
        with self._flush_lock:
            self._discarded = True
        if self._debouncer.cancel():
            logger.debug("Discarded pending flush for %s", self.note_id)

    def state(self) -> dict[str, Any]:
        """Snapshot for the host: document, blocks with ordinals, focus, status."""
        with self._lock:
            engine = self.engine
            blocks = []
            for block in engine.blocks:
                data = block.to_dict()
                data["ordinal"] = engine.ordinal(block.id)
                if block.type == BlockType.VIDEO:
                    data["embedUrl"] = video_embed_url(block.properties.get("videoUrl"))
                blocks.append(data)
            return {
                "document": engine.document.to_dict(),
                "blocks": blocks,
                "focus": engine.focus.to_dict() if engine.focus else None,
                "save_status": self.status.value,
            }

    def _schedule_flush(self) -> None:
        self._set_status(SaveStatus.SAVING)
        self._debouncer.schedule(self.flush)

    def _set_status(self, status: SaveStatus) -> None:
        self.status = status
        if self.on_status is not None:
            try:
                self.on_status(self.note_id, status)
            except Exception as e:
                logger.warning("Save status callback failed: %s", e)


class Workspace:
    """The open sessions over one storage collaborator."""

    def __init__(
        self,
        storage: NoteStorage | None = None,
        *,
        debounce_ms: int | None = None,
        timer_factory: TimerFactory | None = None,
        on_status: StatusCallback | None = None,
    ) -> None:
        self.storage: NoteStorage = storage if storage is not None else notes_db
        self._session_kwargs: dict[str, Any] = {
            "debounce_ms": debounce_ms,
            "timer_factory": timer_factory,
            "on_status": on_status,
        }
        self._sessions: dict[str, EditorSession] = {}
        self._lock = threading.Lock()
        self.active_id: str | None = None

    @property
    def active(self) -> EditorSession | None:
        if self.active_id is None:
            return None
        return self._sessions.get(self.active_id)

    def open_note_ids(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    def list_notes(self) -> list[dict[str, Any]]:
        return self.storage.list_notes()

    def create_note(self, name: str | None = None) -> EditorSession:
        note = self.storage.create_note(name=name)
        return self.activate(note["id"])

    def session(self, note_id: str) -> EditorSession:
        """The open session for a note, opening it if needed."""
        with self._lock:
            existing = self._sessions.get(note_id)
            if existing is not None:
                return existing
            opened = EditorSession.open(self.storage, note_id, **self._session_kwargs)
            self._sessions[note_id] = opened
            return opened

    def activate(self, note_id: str) -> EditorSession:
        """Make a note the active one, flushing the outgoing note first."""
        outgoing = self.active
        if outgoing is not None and outgoing.note_id != note_id:
            outgoing.close()
        incoming = self.session(note_id)
        self.active_id = note_id
        return incoming

    def delete_note(self, note_id: str) -> bool:
        """Permanently delete a note, dropping any unsaved edits to it."""
        with self._lock:
            session = self._sessions.pop(note_id, None)
        if session is not None:
            session.discard()
        if self.active_id == note_id:
            self.active_id = None
        return self.storage.delete_note(note_id)

    def flush(self, note_id: str) -> bool:
        """Flush a note's pending edits now. Unopened notes have nothing to flush."""
        with self._lock:
            session = self._sessions.get(note_id)
        if session is None:
            return True
        return session.close()

    def is_note_empty(self, note_id: str) -> bool:
        self.flush(note_id)
        return self.storage.is_note_empty(note_id)

    def close_all(self) -> bool:
        """Flush every open session. Returns False if any flush failed."""
        with self._lock:
            sessions = list(self._sessions.values())
        ok = True
        for session in sessions:
            ok = session.close() and ok
        return ok
