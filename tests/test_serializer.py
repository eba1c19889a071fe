"""Tests for serializer.py - Block <-> storage record conversion."""

from __future__ import annotations

import pytest

from quillpad.editor.block_types import default_payload
from quillpad.editor.blocks_models import Block, BlockType
from quillpad.editor.serializer import deserialize, dump_blocks, load_blocks, serialize

# A non-default payload for every type, so the round trip proves each field survives
_SAMPLE_PAYLOADS = {
    BlockType.TODO: {"checked": True},
    BlockType.TOGGLE: {"collapsed": False, "children": "<b>hidden</b>"},
    BlockType.TABLE: {"rows": 3, "cols": 1, "tableData": [["Name"], ["a"], ["b"]]},
    BlockType.BOOKMARK: {
        "url": "https://example.com",
        "title": "example.com",
        "description": "An example",
        "favicon": "https://www.google.com/s2/favicons?domain=example.com&sz=32",
    },
    BlockType.VIDEO: {"videoUrl": "https://youtu.be/dQw4w9WgXcQ"},
    BlockType.FILE: {"fileName": "a.pdf", "fileSize": 12345, "fileData": "blob:1"},
    BlockType.EQUATION: {"equation": "a^2 + b^2 = c^2"},
    BlockType.IMAGE: {"imageUrl": "blob:img"},
    BlockType.CALLOUT: {"icon": "\U0001F525"},
}


def _sample(block_type: BlockType) -> Block:
    props = default_payload(block_type)
    props.update(_SAMPLE_PAYLOADS.get(block_type, {}))
    return Block(
        id=f"block-{block_type.value}",
        type=block_type,
        content="" if block_type in (
            BlockType.DIVIDER, BlockType.IMAGE, BlockType.TABLE, BlockType.BOOKMARK,
            BlockType.VIDEO, BlockType.FILE, BlockType.EQUATION,
        ) else "some <i>content</i>",
        order=4,
        created_at="2024-01-01T00:00:00+00:00",
        updated_at="2024-01-02T00:00:00+00:00",
        properties=props,
    )


class TestRoundTrip:
    """deserialize(serialize(b)) == b for every type."""

    @pytest.mark.parametrize("block_type", list(BlockType))
    def test_round_trip(self, block_type: BlockType) -> None:
        block = _sample(block_type)
        assert deserialize(serialize(block)) == block

    @pytest.mark.parametrize("block_type", list(BlockType))
    def test_fresh_block_round_trip(self, make_engine, block_type: BlockType) -> None:
        block = make_engine().create_block(block_type)
        assert deserialize(serialize(block)) == block

    def test_record_holds_exactly_the_type_fields(self) -> None:
        record = serialize(_sample(BlockType.TODO), note_id="note-1")
        assert set(record) == {
            "id", "type", "content", "order", "createdAt", "updatedAt", "noteId", "checked",
        }

    def test_record_does_not_alias_block(self) -> None:
        block = _sample(BlockType.TABLE)
        record = serialize(block)
        record["tableData"][0][0] = "mutated"
        assert block.properties["tableData"][0][0] == "Name"

    def test_dump_blocks_dense_orders(self) -> None:
        blocks = [_sample(BlockType.TEXT), _sample(BlockType.H1)]
        blocks[1].id = "other"
        records = dump_blocks(blocks, note_id="n")
        assert [r["order"] for r in records] == [0, 1]
        assert all(r["noteId"] == "n" for r in records)

    def test_load_blocks_sorts_by_order(self) -> None:
        records = [
            {"id": "b", "type": "text", "content": "second", "order": 1},
            {"id": "a", "type": "text", "content": "first", "order": 0},
        ]
        assert [b.id for b in load_blocks(records)] == ["a", "b"]


class TestLenientLoad:
    """Missing or malformed fields fall back to defaults."""

    def test_missing_payload_defaults(self) -> None:
        block = deserialize({"id": "t", "type": "todo", "content": "x", "order": 0})
        assert block.properties == {"checked": False}

    def test_missing_table_data_regenerated(self) -> None:
        block = deserialize({"id": "t", "type": "table", "rows": 3, "cols": 2})
        assert block.properties["tableData"] == [["Header 1", "Header 2"], ["", ""], ["", ""]]

    def test_malformed_field_replaced_by_default(self, caplog: pytest.LogCaptureFixture) -> None:
        block = deserialize({"id": "t", "type": "table", "rows": "many", "cols": 2})
        assert block.properties["rows"] == 2
        assert block.properties["tableData"] == [["Header 1", "Header 2"], ["", ""]]
        assert "rows" in caplog.text

    def test_grid_shape_wins_over_counts(self) -> None:
        block = deserialize({
            "id": "t",
            "type": "table",
            "rows": 2,
            "cols": 2,
            "tableData": [["A", "B", "C"], ["1"]],
        })
        assert block.properties["rows"] == 2
        assert block.properties["cols"] == 3
        assert block.properties["tableData"] == [["A", "B", "C"], ["1", "", ""]]

    def test_unknown_type_loads_as_text(self) -> None:
        block = deserialize({"id": "t", "type": "kanban", "content": "x"})
        assert block.type == BlockType.TEXT
        assert block.content == "x"

    def test_missing_id_gets_fresh_one(self) -> None:
        block = deserialize({"type": "text"})
        assert block.id.startswith("block-")

    def test_legacy_keys(self) -> None:
        block = deserialize({
            "id": "c",
            "type": "callout",
            "canvasId": "note-1",
            "calloutIcon": "❗",
        })
        assert block.properties == {"icon": "❗"}

    def test_epoch_millisecond_timestamps_converted(self) -> None:
        block = deserialize({"id": "t", "type": "text", "createdAt": 0, "updatedAt": 86400000})
        assert block.created_at.startswith("1970-01-01T00:00:00")
        assert block.updated_at.startswith("1970-01-02")

    def test_other_types_fields_ignored(self) -> None:
        block = deserialize({"id": "t", "type": "text", "checked": True, "tableData": []})
        assert block.properties == {}
