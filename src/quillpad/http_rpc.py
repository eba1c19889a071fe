"""FastAPI APIRouter that bridges a host editing surface to the RPC handlers.

Speaks JSON-RPC 2.0 over HTTP on ``POST /rpc``. The service binds to
localhost and serves one user, so there is no auth layer.

The dispatcher is a flat ``_METHODS`` registry mapping JSON-RPC method names
to handler functions, so adding a new handler is a one-line change. Handlers
are synchronous and run in a worker thread via ``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from fastapi import APIRouter, Request

from quillpad.rpc_handlers import RpcError
from quillpad.rpc_handlers.editor import (
    handle_editor_add_block_at_end,
    handle_editor_backspace_at_start,
    handle_editor_bookmark_commit,
    handle_editor_bookmark_set_url,
    handle_editor_callout_set_icon,
    handle_editor_change_type,
    handle_editor_delete_at_end,
    handle_editor_delete_block,
    handle_editor_equation_set,
    handle_editor_file_attach,
    handle_editor_image_set,
    handle_editor_insert_after,
    handle_editor_reorder,
    handle_editor_split,
    handle_editor_state,
    handle_editor_table_add_column,
    handle_editor_table_add_row,
    handle_editor_table_remove_column,
    handle_editor_table_remove_row,
    handle_editor_table_set_cell,
    handle_editor_text,
    handle_editor_todo_check,
    handle_editor_toggle_collapse,
    handle_editor_toggle_set_children,
    handle_editor_types,
    handle_editor_update_content,
    handle_editor_video_set_url,
)
from quillpad.rpc_handlers.notes import (
    handle_notes_create,
    handle_notes_delete,
    handle_notes_flush,
    handle_notes_generated_title,
    handle_notes_is_empty,
    handle_notes_list,
    handle_notes_markdown,
    handle_notes_open,
    handle_notes_rename,
)
from quillpad.session import Workspace

logger = logging.getLogger(__name__)

router = APIRouter()

# ---------------------------------------------------------------------------
# Method registry
# ---------------------------------------------------------------------------

_METHODS: dict[str, Callable[..., Any]] = {
    # Notes
    "notes/list": handle_notes_list,
    "notes/create": handle_notes_create,
    "notes/open": handle_notes_open,
    "notes/rename": handle_notes_rename,
    "notes/generated_title": handle_notes_generated_title,
    "notes/flush": handle_notes_flush,
    "notes/delete": handle_notes_delete,
    "notes/is_empty": handle_notes_is_empty,
    "notes/markdown": handle_notes_markdown,
    # Editor: reads
    "editor/types": handle_editor_types,
    "editor/state": handle_editor_state,
    "editor/text": handle_editor_text,
    # Editor: structure
    "editor/insert_after": handle_editor_insert_after,
    "editor/add_block_at_end": handle_editor_add_block_at_end,
    "editor/split": handle_editor_split,
    "editor/backspace_at_start": handle_editor_backspace_at_start,
    "editor/delete_at_end": handle_editor_delete_at_end,
    "editor/change_type": handle_editor_change_type,
    "editor/reorder": handle_editor_reorder,
    "editor/delete_block": handle_editor_delete_block,
    # Editor: content
    "editor/update_content": handle_editor_update_content,
    "editor/toggle/set_children": handle_editor_toggle_set_children,
    "editor/toggle/collapse": handle_editor_toggle_collapse,
    "editor/todo/check": handle_editor_todo_check,
    # Editor: tables
    "editor/table/add_row": handle_editor_table_add_row,
    "editor/table/remove_row": handle_editor_table_remove_row,
    "editor/table/add_column": handle_editor_table_add_column,
    "editor/table/remove_column": handle_editor_table_remove_column,
    "editor/table/set_cell": handle_editor_table_set_cell,
    # Editor: embeds and media
    "editor/bookmark/set_url": handle_editor_bookmark_set_url,
    "editor/bookmark/commit": handle_editor_bookmark_commit,
    "editor/video/set_url": handle_editor_video_set_url,
    "editor/image/set": handle_editor_image_set,
    "editor/file/attach": handle_editor_file_attach,
    "editor/equation/set": handle_editor_equation_set,
    "editor/callout/set_icon": handle_editor_callout_set_icon,
}


def _build_rpc_error(
    req_id: str | int | None, code: int, message: str, data: Any = None
) -> dict[str, Any]:
    err: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        err["data"] = data
    return {"jsonrpc": "2.0", "id": req_id, "error": err}


def _build_rpc_result(req_id: str | int | None, result: Any) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": req_id, "result": result}


async def _dispatch(workspace: Workspace, body: dict[str, Any]) -> dict[str, Any]:
    """Core JSON-RPC 2.0 dispatcher for a single request object.

    Separated from the route handler so it can be tested without a full HTTP
    request cycle.
    """
    req_id: str | int | None = body.get("id")
    method: str | None = body.get("method")
    params: Any = body.get("params") or {}

    if not isinstance(method, str) or not method:
        return _build_rpc_error(req_id, -32600, "Invalid Request: method is required")

    if not isinstance(params, dict):
        return _build_rpc_error(req_id, -32600, "Invalid Request: params must be an object")

    handler = _METHODS.get(method)
    if handler is None:
        return _build_rpc_error(req_id, -32601, f"Method not found: {method}")

    handler_params = {k: v for k, v in params.items() if not k.startswith("__")}

    try:
        result = await asyncio.to_thread(handler, workspace, **handler_params)
        return _build_rpc_result(req_id, result)
    except RpcError as exc:
        return _build_rpc_error(req_id, exc.code, exc.message, exc.data)
    except TypeError as exc:
        # Wrong / missing parameters
        return _build_rpc_error(req_id, -32602, f"Invalid parameters: {exc}")
    except Exception as exc:
        logger.exception("Unexpected error in method=%s", method)
        return _build_rpc_error(
            req_id,
            -32603,
            f"Internal error in {method}",
            {"error_type": type(exc).__name__},
        )


@router.post("/rpc")
async def rpc_dispatch(request: Request) -> dict[str, Any]:
    """JSON-RPC 2.0 endpoint for all host -> editor calls.

    Accepts a single JSON-RPC request object (batch not supported).
    """
    try:
        body = await request.json()
    except ValueError:
        return _build_rpc_error(None, -32700, "Parse error: invalid JSON")

    if not isinstance(body, dict):
        return _build_rpc_error(None, -32600, "Invalid Request: expected a JSON object")

    workspace: Workspace = request.app.state.workspace
    return await _dispatch(workspace, body)
