"""Notes RPC handlers - note lifecycle.

Opening a note makes it the workspace's active note; the previously active
note's pending edits are flushed first.
"""

from __future__ import annotations

import logging
from typing import Any

from quillpad.editor.markdown_renderer import render_markdown
from quillpad.session import Workspace

from ._base import rpc_handler

logger = logging.getLogger(__name__)


@rpc_handler("notes/list")
def handle_notes_list(workspace: Workspace) -> dict[str, Any]:
    """List notes, most recently updated first."""
    return {"notes": workspace.list_notes()}


@rpc_handler("notes/create")
def handle_notes_create(workspace: Workspace, *, name: str | None = None) -> dict[str, Any]:
    """Create a note and make it the active one.

    Returns:
        The new note's editor state (one empty text block, focused)
    """
    session = workspace.create_note(name)
    return {"state": session.state()}


@rpc_handler("notes/open")
def handle_notes_open(workspace: Workspace, *, note_id: str) -> dict[str, Any]:
    session = workspace.activate(note_id)
    return {"state": session.state()}


@rpc_handler("notes/rename")
def handle_notes_rename(workspace: Workspace, *, note_id: str, name: str) -> dict[str, Any]:
    """User rename; marks the title as user-owned."""
    session = workspace.session(note_id)
    changed = session.rename(name)
    return {"changed": changed, "document": session.state()["document"]}


@rpc_handler("notes/generated_title")
def handle_notes_generated_title(workspace: Workspace, *, note_id: str, title: str) -> dict[str, Any]:
    """Apply a title produced by the AI collaborator (ignored once the user renamed)."""
    session = workspace.session(note_id)
    changed = session.apply_generated_title(title)
    return {"changed": changed, "document": session.state()["document"]}


@rpc_handler("notes/flush")
def handle_notes_flush(workspace: Workspace, *, note_id: str) -> dict[str, Any]:
    saved = workspace.flush(note_id)
    session = workspace.session(note_id)
    return {"saved": saved, "save_status": session.status.value}


@rpc_handler("notes/delete")
def handle_notes_delete(workspace: Workspace, *, note_id: str) -> dict[str, Any]:
    """Permanently delete a note and its blocks."""
    deleted = workspace.delete_note(note_id)
    logger.info("notes/delete %s -> %s", note_id, deleted)
    return {"deleted": deleted}


@rpc_handler("notes/is_empty")
def handle_notes_is_empty(workspace: Workspace, *, note_id: str) -> dict[str, Any]:
    return {"empty": workspace.is_note_empty(note_id)}


@rpc_handler("notes/markdown")
def handle_notes_markdown(workspace: Workspace, *, note_id: str) -> dict[str, Any]:
    session = workspace.session(note_id)
    with session.edit() as engine:
        markdown = render_markdown(engine.blocks, title=engine.document.name)
    return {"markdown": markdown}
