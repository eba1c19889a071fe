"""Editor RPC handlers - editing operations on an open note.

Each handler runs one engine operation under the session lock and answers
with whether anything changed plus the resulting editor state, so the host
can re-render and place the caret from ``state.focus``. A refused operation
is not an error: it answers ``changed: false``.
"""

from __future__ import annotations

from typing import Any, Callable

from quillpad.editor.block_types import MENU_ORDER, REGISTRY
from quillpad.editor.engine import EditingEngine
from quillpad.session import Workspace

from ._base import rpc_handler


def _apply(workspace: Workspace, note_id: str, operation: Callable[[EditingEngine], Any]) -> dict[str, Any]:
    session = workspace.session(note_id)
    with session.edit() as engine:
        result = operation(engine)
    response: dict[str, Any] = {"changed": bool(result), "state": session.state()}
    if hasattr(result, "id"):
        response["block_id"] = result.id
    return response


# =============================================================================
# Read handlers
# =============================================================================


@rpc_handler("editor/types")
def handle_editor_types(_workspace: Workspace) -> dict[str, Any]:
    """Block types in slash-menu order."""
    return {"types": [REGISTRY[t].to_dict() for t in MENU_ORDER]}


@rpc_handler("editor/state")
def handle_editor_state(workspace: Workspace, *, note_id: str) -> dict[str, Any]:
    return {"state": workspace.session(note_id).state()}


@rpc_handler("editor/text")
def handle_editor_text(workspace: Workspace, *, note_id: str) -> dict[str, Any]:
    """Plain-text projection of the note, as handed to the AI collaborator."""
    return {"text": workspace.session(note_id).text()}


# =============================================================================
# Structure
# =============================================================================


@rpc_handler("editor/insert_after")
def handle_editor_insert_after(
    workspace: Workspace,
    *,
    note_id: str,
    block_id: str | None = None,
    type: str = "text",
    content: str = "",
) -> dict[str, Any]:
    return _apply(workspace, note_id, lambda e: e.insert_after(block_id, type, content))


@rpc_handler("editor/add_block_at_end")
def handle_editor_add_block_at_end(workspace: Workspace, *, note_id: str) -> dict[str, Any]:
    return _apply(workspace, note_id, lambda e: e.add_block_at_end())


@rpc_handler("editor/split")
def handle_editor_split(
    workspace: Workspace,
    *,
    note_id: str,
    block_id: str,
    offset: int | None = None,
    text_before: str | None = None,
    text_after: str | None = None,
) -> dict[str, Any]:
    """Enter key: split at a caret offset, or at explicit before/after halves."""
    if offset is not None:
        if not isinstance(offset, int) or isinstance(offset, bool):
            raise ValueError("offset must be an integer")
        return _apply(workspace, note_id, lambda e: e.split_at_offset(block_id, offset))
    if text_before is None or text_after is None:
        raise ValueError("Provide either offset or both text_before and text_after")
    return _apply(workspace, note_id, lambda e: e.split_at_cursor(block_id, text_before, text_after))


@rpc_handler("editor/backspace_at_start")
def handle_editor_backspace_at_start(workspace: Workspace, *, note_id: str, block_id: str) -> dict[str, Any]:
    return _apply(workspace, note_id, lambda e: e.backspace_at_start(block_id))


@rpc_handler("editor/delete_at_end")
def handle_editor_delete_at_end(workspace: Workspace, *, note_id: str, block_id: str) -> dict[str, Any]:
    return _apply(workspace, note_id, lambda e: e.delete_at_end(block_id))


@rpc_handler("editor/change_type")
def handle_editor_change_type(workspace: Workspace, *, note_id: str, block_id: str, type: str) -> dict[str, Any]:
    return _apply(workspace, note_id, lambda e: e.change_type(block_id, type))


@rpc_handler("editor/reorder")
def handle_editor_reorder(workspace: Workspace, *, note_id: str, dragged_id: str, target_id: str) -> dict[str, Any]:
    return _apply(workspace, note_id, lambda e: e.reorder(dragged_id, target_id))


@rpc_handler("editor/delete_block")
def handle_editor_delete_block(workspace: Workspace, *, note_id: str, block_id: str) -> dict[str, Any]:
    return _apply(workspace, note_id, lambda e: e.delete_block(block_id))


# =============================================================================
# Content
# =============================================================================


@rpc_handler("editor/update_content")
def handle_editor_update_content(workspace: Workspace, *, note_id: str, block_id: str, content: str) -> dict[str, Any]:
    if not isinstance(content, str):
        raise ValueError("content must be a string")
    return _apply(workspace, note_id, lambda e: e.update_content(block_id, content))


@rpc_handler("editor/toggle/set_children")
def handle_editor_toggle_set_children(workspace: Workspace, *, note_id: str, block_id: str, content: str) -> dict[str, Any]:
    return _apply(workspace, note_id, lambda e: e.set_toggle_children(block_id, content))


@rpc_handler("editor/toggle/collapse")
def handle_editor_toggle_collapse(workspace: Workspace, *, note_id: str, block_id: str) -> dict[str, Any]:
    return _apply(workspace, note_id, lambda e: e.toggle_collapsed(block_id))


@rpc_handler("editor/todo/check")
def handle_editor_todo_check(workspace: Workspace, *, note_id: str, block_id: str) -> dict[str, Any]:
    return _apply(workspace, note_id, lambda e: e.toggle_checked(block_id))


# =============================================================================
# Tables
# =============================================================================


@rpc_handler("editor/table/add_row")
def handle_editor_table_add_row(workspace: Workspace, *, note_id: str, block_id: str) -> dict[str, Any]:
    return _apply(workspace, note_id, lambda e: e.add_row(block_id))


@rpc_handler("editor/table/remove_row")
def handle_editor_table_remove_row(workspace: Workspace, *, note_id: str, block_id: str) -> dict[str, Any]:
    return _apply(workspace, note_id, lambda e: e.remove_row(block_id))


@rpc_handler("editor/table/add_column")
def handle_editor_table_add_column(workspace: Workspace, *, note_id: str, block_id: str) -> dict[str, Any]:
    return _apply(workspace, note_id, lambda e: e.add_column(block_id))


@rpc_handler("editor/table/remove_column")
def handle_editor_table_remove_column(workspace: Workspace, *, note_id: str, block_id: str) -> dict[str, Any]:
    return _apply(workspace, note_id, lambda e: e.remove_column(block_id))


@rpc_handler("editor/table/set_cell")
def handle_editor_table_set_cell(
    workspace: Workspace,
    *,
    note_id: str,
    block_id: str,
    row: int,
    col: int,
    text: str,
) -> dict[str, Any]:
    return _apply(workspace, note_id, lambda e: e.set_table_cell(block_id, row, col, text))


# =============================================================================
# Embeds and media
# =============================================================================


@rpc_handler("editor/bookmark/set_url")
def handle_editor_bookmark_set_url(workspace: Workspace, *, note_id: str, block_id: str, url: str) -> dict[str, Any]:
    return _apply(workspace, note_id, lambda e: e.set_bookmark_url(block_id, url))


@rpc_handler("editor/bookmark/commit")
def handle_editor_bookmark_commit(
    workspace: Workspace,
    *,
    note_id: str,
    block_id: str,
    url: str | None = None,
) -> dict[str, Any]:
    return _apply(workspace, note_id, lambda e: e.commit_bookmark(block_id, url))


@rpc_handler("editor/video/set_url")
def handle_editor_video_set_url(workspace: Workspace, *, note_id: str, block_id: str, url: str) -> dict[str, Any]:
    return _apply(workspace, note_id, lambda e: e.set_video_url(block_id, url))


@rpc_handler("editor/image/set")
def handle_editor_image_set(
    workspace: Workspace,
    *,
    note_id: str,
    block_id: str,
    image_url: str | None = None,
) -> dict[str, Any]:
    return _apply(workspace, note_id, lambda e: e.set_image(block_id, image_url))


@rpc_handler("editor/file/attach")
def handle_editor_file_attach(
    workspace: Workspace,
    *,
    note_id: str,
    block_id: str,
    file_name: str,
    file_size: int,
    file_data: str | None = None,
) -> dict[str, Any]:
    return _apply(workspace, note_id, lambda e: e.attach_file(block_id, file_name, file_size, file_data))


@rpc_handler("editor/equation/set")
def handle_editor_equation_set(workspace: Workspace, *, note_id: str, block_id: str, equation: str) -> dict[str, Any]:
    return _apply(workspace, note_id, lambda e: e.set_equation(block_id, equation))


@rpc_handler("editor/callout/set_icon")
def handle_editor_callout_set_icon(workspace: Workspace, *, note_id: str, block_id: str, icon: str) -> dict[str, Any]:
    return _apply(workspace, note_id, lambda e: e.set_callout_icon(block_id, icon))
