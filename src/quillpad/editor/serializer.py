"""Block <-> flat storage record conversion.

A record carries the common fields plus exactly the payload fields of the
block's type, under their record names (camelCase, as the stored data has
always used):

    {"id": ..., "type": "todo", "content": "buy milk", "order": 3,
     "createdAt": ..., "updatedAt": ..., "noteId": ..., "checked": false}

Loading is forgiving: a missing or malformed payload field falls back to the
type's default, and a few legacy key names are still understood.
"""

from __future__ import annotations

import copy
import logging
from datetime import datetime, timezone
from typing import Any, Iterable

from ..errors import SerializationMismatch
from .block_types import BlockTypeSpec, get_spec
from .blocks_models import Block, BlockType, new_id
from .tables import blank_grid

logger = logging.getLogger(__name__)

COMMON_FIELDS = ("id", "type", "content", "order", "createdAt", "updatedAt", "noteId")

# Legacy record keys -> current keys
LEGACY_ALIASES = {
    "canvasId": "noteId",
    "calloutIcon": "icon",
}

_MISSING = object()


# =============================================================================
# Serialize
# =============================================================================


def serialize(block: Block, *, note_id: str | None = None) -> dict[str, Any]:
    """Convert a block to its flat storage record.

    Payload values are deep-copied so the record never aliases live state.
    """
    spec = get_spec(block.type)
    record: dict[str, Any] = {
        "id": block.id,
        "type": block.type.value,
        "content": block.content,
        "order": block.order,
        "createdAt": block.created_at,
        "updatedAt": block.updated_at,
    }
    if note_id is not None:
        record["noteId"] = note_id

    defaults = None
    for f in spec.payload:
        if f.name in block.properties:
            record[f.name] = copy.deepcopy(block.properties[f.name])
        else:
            if defaults is None:
                defaults = spec.default_payload()
            record[f.name] = defaults[f.name]
    return record


def dump_blocks(blocks: Iterable[Block], *, note_id: str) -> list[dict[str, Any]]:
    """Records for a whole document with dense 0..N-1 orders."""
    records = []
    for position, block in enumerate(blocks):
        record = serialize(block, note_id=note_id)
        record["order"] = position
        records.append(record)
    return records


# =============================================================================
# Deserialize
# =============================================================================


def deserialize(record: dict[str, Any]) -> Block:
    """Rebuild a block from a storage record, defaulting what is missing."""
    record = _apply_aliases(record)

    block_type = _load_type(record.get("type"))
    spec = get_spec(block_type)

    block_id = record.get("id")
    if not isinstance(block_id, str) or not block_id:
        block_id = new_id("block")
        logger.warning("Record without id loaded as %s", block_id)

    content = record.get("content")
    order = record.get("order")

    return Block(
        id=block_id,
        type=block_type,
        content=content if isinstance(content, str) else "",
        order=order if isinstance(order, int) and not isinstance(order, bool) else 0,
        created_at=_load_timestamp(record.get("createdAt")),
        updated_at=_load_timestamp(record.get("updatedAt")),
        properties=_load_payload(spec, record),
    )


def load_blocks(records: Iterable[dict[str, Any]]) -> list[Block]:
    """Deserialize a document's records in stored order."""
    blocks = [deserialize(r) for r in records]
    blocks.sort(key=lambda b: b.order)
    return blocks


def _apply_aliases(record: dict[str, Any]) -> dict[str, Any]:
    if not any(key in record for key in LEGACY_ALIASES):
        return record
    record = dict(record)
    for legacy, current in LEGACY_ALIASES.items():
        if legacy in record:
            value = record.pop(legacy)
            record.setdefault(current, value)
    return record


def _load_type(raw: Any) -> BlockType:
    try:
        return BlockType.parse(raw)
    except ValueError:
        logger.warning("Unknown block type %r loaded as text", raw)
        return BlockType.TEXT


def _load_timestamp(raw: Any) -> str:
    if isinstance(raw, str):
        return raw
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        # Legacy records stored epoch milliseconds
        return datetime.fromtimestamp(raw / 1000, tz=timezone.utc).isoformat()
    return ""


def _load_payload(spec: BlockTypeSpec, record: dict[str, Any]) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for f in spec.payload:
        raw = record.get(f.name, _MISSING)
        if raw is _MISSING:
            payload[f.name] = f.default(payload)
            continue
        try:
            payload[f.name] = f.coerce(raw)
        except (TypeError, ValueError) as exc:
            mismatch = SerializationMismatch(
                f"Malformed {f.name!r} on {spec.type.value} block: {exc}",
                block_type=spec.type.value,
                field=f.name,
            )
            logger.warning("%s; using default (%s)", mismatch.message, record.get("id"))
            payload[f.name] = f.default(payload)

    if spec.type == BlockType.TABLE:
        _reconcile_grid(payload)
    return payload


def _reconcile_grid(payload: dict[str, Any]) -> None:
    """Keep rows/cols consistent with the stored grid."""
    grid = payload["tableData"]
    if not grid or not any(grid):
        payload["tableData"] = blank_grid(payload["rows"], payload["cols"])
        return

    rows = len(grid)
    cols = max(len(row) for row in grid)
    if rows == payload["rows"] and cols == payload["cols"] and all(len(r) == cols for r in grid):
        return

    logger.warning(
        "Table grid %dx%d disagrees with recorded %dx%d; using grid shape",
        rows, cols, payload["rows"], payload["cols"],
    )
    for row in grid:
        row.extend([""] * (cols - len(row)))
    payload["rows"] = rows
    payload["cols"] = cols
