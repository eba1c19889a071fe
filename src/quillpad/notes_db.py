"""SQLite-based storage for notes and their blocks.

This is the storage collaborator the editor sessions flush to. Blocks are
stored one row per block record: the common fields get their own columns and
the type-specific payload fields are kept together as a JSON object, so the
table never needs a migration when a block type gains a field.

Records going in and out are the flat camelCase dicts produced by
``quillpad.editor.serializer``; this module never builds Block objects.
"""

from __future__ import annotations

import json
import logging
import os
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator

from .editor.blocks_models import new_id, now_iso
from .editor.rich_text import to_plain_text
from .editor.serializer import COMMON_FIELDS
from .errors import NotFoundError
from .settings import settings

logger = logging.getLogger(__name__)

# Thread-local storage for connections
_local = threading.local()

# Schema version for migrations
# v1: notes + blocks tables
# v2: title_manually_set column on notes
SCHEMA_VERSION = 2


def _notes_db_path() -> Path:
    """Get the path to the notes database."""
    base = Path(os.environ.get("QUILLPAD_DATA_DIR", settings.data_dir))
    return base / "notes.db"


def _get_connection() -> sqlite3.Connection:
    """Get a thread-local database connection."""
    if not hasattr(_local, "conn") or _local.conn is None:
        db_path = _notes_db_path()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        _local.conn = sqlite3.connect(str(db_path), check_same_thread=False)
        _local.conn.row_factory = sqlite3.Row
        # Enable foreign keys
        _local.conn.execute("PRAGMA foreign_keys = ON")
        # WAL mode so the flush thread and the request thread can overlap
        _local.conn.execute("PRAGMA journal_mode = WAL")
    return _local.conn


def close_connection() -> None:
    """Close the thread-local database connection.

    This is primarily used for testing to ensure clean state between tests.
    """
    if hasattr(_local, "conn") and _local.conn is not None:
        try:
            _local.conn.close()
        except sqlite3.Error as e:
            logger.debug("Error closing notes db connection: %s", e)
        _local.conn = None


@contextmanager
def _transaction() -> Iterator[sqlite3.Connection]:
    """Context manager for database transactions."""
    conn = _get_connection()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise


def _init_schema(conn: sqlite3.Connection) -> None:
    """Create the schema, or migrate an older one."""
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_version'"
    )
    if cursor.fetchone() is not None:
        row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
        if row is not None:
            if row[0] < SCHEMA_VERSION:
                _run_schema_migrations(conn, row[0])
            return

    conn.executescript("""
        CREATE TABLE IF NOT EXISTS schema_version (
            version INTEGER PRIMARY KEY
        );

        CREATE TABLE IF NOT EXISTS notes (
            note_id TEXT PRIMARY KEY,
            name TEXT NOT NULL DEFAULT 'Untitled',
            title_manually_set INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_notes_updated ON notes(updated_at);

        -- One row per block record; payload holds the type-specific fields
        CREATE TABLE IF NOT EXISTS blocks (
            block_id TEXT PRIMARY KEY,
            note_id TEXT NOT NULL REFERENCES notes(note_id) ON DELETE CASCADE,
            type TEXT NOT NULL DEFAULT 'text',
            content TEXT NOT NULL DEFAULT '',
            position INTEGER NOT NULL DEFAULT 0,
            payload TEXT NOT NULL DEFAULT '{}',
            created_at TEXT NOT NULL DEFAULT '',
            updated_at TEXT NOT NULL DEFAULT ''
        );

        CREATE INDEX IF NOT EXISTS idx_blocks_note_id ON blocks(note_id);
        CREATE INDEX IF NOT EXISTS idx_blocks_position ON blocks(note_id, position);
    """)

    conn.execute("DELETE FROM schema_version")
    conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))


def _run_schema_migrations(conn: sqlite3.Connection, current_version: int) -> None:
    """Run schema migrations from current_version to SCHEMA_VERSION."""
    logger.info("Running notes schema migrations from v%d to v%d", current_version, SCHEMA_VERSION)

    # Migration v1 -> v2: Add title_manually_set column to notes table
    if current_version < 2:
        columns = [row[1] for row in conn.execute("PRAGMA table_info(notes)").fetchall()]
        if "title_manually_set" not in columns:
            logger.info("Adding title_manually_set column to notes table")
            conn.execute(
                "ALTER TABLE notes ADD COLUMN title_manually_set INTEGER NOT NULL DEFAULT 0"
            )

    conn.execute("UPDATE schema_version SET version = ?", (SCHEMA_VERSION,))


def init_db() -> None:
    """Initialize the database and run migrations."""
    with _transaction() as conn:
        _init_schema(conn)


# =============================================================================
# Row conversion
# =============================================================================


def _row_to_note(row: sqlite3.Row) -> dict[str, Any]:
    return {
        "id": row["note_id"],
        "name": row["name"],
        "title_manually_set": bool(row["title_manually_set"]),
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def _row_to_record(row: sqlite3.Row) -> dict[str, Any]:
    """Rebuild a flat block record from a row."""
    try:
        payload = json.loads(row["payload"]) if row["payload"] else {}
    except json.JSONDecodeError:
        logger.warning("Corrupt payload on block %s; loading defaults", row["block_id"])
        payload = {}
    if not isinstance(payload, dict):
        payload = {}

    record = {
        **payload,
        "id": row["block_id"],
        "noteId": row["note_id"],
        "type": row["type"],
        "content": row["content"],
        "order": row["position"],
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"],
    }
    return record


def _record_payload(record: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in record.items() if k not in COMMON_FIELDS}


# =============================================================================
# Notes Operations
# =============================================================================


def list_notes() -> list[dict[str, Any]]:
    """List all notes, most recently updated first."""
    init_db()
    conn = _get_connection()
    cursor = conn.execute("""
        SELECT note_id, name, title_manually_set, created_at, updated_at
        FROM notes
        ORDER BY updated_at DESC
    """)
    return [_row_to_note(row) for row in cursor]


def get_note(note_id: str) -> dict[str, Any] | None:
    """Get a single note by ID."""
    init_db()
    conn = _get_connection()
    row = conn.execute("""
        SELECT note_id, name, title_manually_set, created_at, updated_at
        FROM notes WHERE note_id = ?
    """, (note_id,)).fetchone()
    if not row:
        return None
    return _row_to_note(row)


def create_note(*, name: str | None = None) -> dict[str, Any]:
    """Create a new, empty note."""
    init_db()
    note_id = new_id("note")
    now = now_iso()
    name = (name or "").strip() or settings.default_note_name

    with _transaction() as conn:
        conn.execute("""
            INSERT INTO notes (note_id, name, title_manually_set, created_at, updated_at)
            VALUES (?, ?, 0, ?, ?)
        """, (note_id, name, now, now))

    logger.info("Created note %s", note_id)
    return {
        "id": note_id,
        "name": name,
        "title_manually_set": False,
        "created_at": now,
        "updated_at": now,
    }


def update_note(note: dict[str, Any]) -> dict[str, Any]:
    """Write a note's metadata, stamping updated_at.

    Raises:
        NotFoundError: The note does not exist (it may have been deleted
            while a flush was in flight).
    """
    init_db()
    now = now_iso()
    note_id = note["id"]
    name = (note.get("name") or "").strip() or settings.default_note_name

    with _transaction() as conn:
        cursor = conn.execute("""
            UPDATE notes SET name = ?, title_manually_set = ?, updated_at = ?
            WHERE note_id = ?
        """, (name, int(bool(note.get("title_manually_set"))), now, note_id))
        if cursor.rowcount == 0:
            raise NotFoundError(
                f"Note not found: {note_id}", resource_type="note", resource_id=note_id
            )

    return {**note, "name": name, "updated_at": now}


def delete_note(note_id: str) -> bool:
    """Permanently delete a note and all its blocks."""
    init_db()
    with _transaction() as conn:
        cursor = conn.execute("DELETE FROM notes WHERE note_id = ?", (note_id,))
        deleted = cursor.rowcount > 0
    if deleted:
        logger.info("Deleted note %s", note_id)
    return deleted


def is_note_empty(note_id: str) -> bool:
    """True when none of the note's blocks carry meaningful content.

    Table header placeholders and an unconfirmed bookmark URL do not count.
    """
    return not any(_record_has_content(r) for r in get_blocks_by_note(note_id))


def _record_has_content(record: dict[str, Any]) -> bool:
    if to_plain_text(record.get("content")).strip():
        return True
    if record.get("imageUrl") or record.get("fileData") or record.get("videoUrl"):
        return True
    grid = record.get("tableData")
    if isinstance(grid, list):
        for row in grid:
            if not isinstance(row, list):
                continue
            for cell in row:
                if isinstance(cell, str) and cell.strip() and not cell.startswith("Header "):
                    return True
    if record.get("url") and record.get("title"):
        return True
    if to_plain_text(record.get("children")).strip():
        return True
    equation = record.get("equation")
    return isinstance(equation, str) and bool(equation.strip())


# =============================================================================
# Block Operations
# =============================================================================


def get_blocks_by_note(note_id: str) -> list[dict[str, Any]]:
    """All block records of a note, in stored order."""
    init_db()
    conn = _get_connection()
    cursor = conn.execute("""
        SELECT block_id, note_id, type, content, position, payload, created_at, updated_at
        FROM blocks
        WHERE note_id = ?
        ORDER BY position ASC
    """, (note_id,))
    return [_row_to_record(row) for row in cursor]


def get_block(block_id: str) -> dict[str, Any] | None:
    """Get a single block record by ID."""
    init_db()
    conn = _get_connection()
    row = conn.execute("""
        SELECT block_id, note_id, type, content, position, payload, created_at, updated_at
        FROM blocks WHERE block_id = ?
    """, (block_id,)).fetchone()
    if not row:
        return None
    return _row_to_record(row)


def save_block(record: dict[str, Any]) -> None:
    """Insert or replace one block record."""
    save_blocks([record])


def save_blocks(records: Iterable[dict[str, Any]]) -> int:
    """Insert or replace block records in one transaction.

    Raises:
        NotFoundError: A record has no noteId or its note does not exist.
    """
    init_db()
    rows = []
    for record in records:
        note_id = record.get("noteId")
        if not note_id:
            raise NotFoundError(
                "Block record has no note",
                resource_type="note",
                resource_id=record.get("id"),
            )
        rows.append((
            record["id"],
            note_id,
            record.get("type", "text"),
            record.get("content", ""),
            int(record.get("order", 0)),
            json.dumps(_record_payload(record)),
            record.get("createdAt", ""),
            record.get("updatedAt", ""),
        ))

    if not rows:
        return 0

    try:
        with _transaction() as conn:
            conn.executemany("""
                INSERT INTO blocks
                    (block_id, note_id, type, content, position, payload, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(block_id) DO UPDATE SET
                    note_id = excluded.note_id,
                    type = excluded.type,
                    content = excluded.content,
                    position = excluded.position,
                    payload = excluded.payload,
                    created_at = excluded.created_at,
                    updated_at = excluded.updated_at
            """, rows)
    except sqlite3.IntegrityError as e:
        raise NotFoundError(
            f"Note not found for block records: {e}",
            resource_type="note",
            resource_id=rows[0][1],
        ) from e

    return len(rows)


def delete_block(block_id: str) -> bool:
    """Delete a block record. Deleting an unknown id is not an error."""
    init_db()
    with _transaction() as conn:
        cursor = conn.execute("DELETE FROM blocks WHERE block_id = ?", (block_id,))
        return cursor.rowcount > 0


def delete_blocks_by_note(note_id: str) -> int:
    """Delete every block of a note, keeping the note itself."""
    init_db()
    with _transaction() as conn:
        cursor = conn.execute("DELETE FROM blocks WHERE note_id = ?", (note_id,))
        return cursor.rowcount
