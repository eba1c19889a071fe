"""Tests for the document sequence and numbered-list ordinals."""

from __future__ import annotations

import pytest

from quillpad.editor.blocks_models import Block, BlockType
from quillpad.editor.numbering import resolve_ordinals
from quillpad.editor.sequence import DocumentSequence
from quillpad.errors import DanglingReference


def _blocks(*types: BlockType) -> list[Block]:
    return [Block(id=f"b{i}", type=t, order=i * 10) for i, t in enumerate(types)]


class TestNumbering:
    """Ordinals restart after any non-numbered block."""

    def test_runs_reset(self) -> None:
        blocks = _blocks(
            BlockType.BULLET,
            BlockType.NUMBERED,
            BlockType.NUMBERED,
            BlockType.NUMBERED,
            BlockType.TEXT,
            BlockType.NUMBERED,
        )
        ordinals = resolve_ordinals(blocks)
        assert [ordinals.get(b.id) for b in blocks] == [None, 1, 2, 3, None, 1]

    def test_empty(self) -> None:
        assert resolve_ordinals([]) == {}


class TestDocumentSequence:
    """Ordering and identity."""

    def test_orders_are_dense_on_load(self) -> None:
        seq = DocumentSequence(_blocks(BlockType.TEXT, BlockType.TEXT, BlockType.TEXT))
        assert [b.order for b in seq] == [0, 1, 2]

    def test_duplicate_ids_dropped(self) -> None:
        blocks = _blocks(BlockType.TEXT, BlockType.H1)
        blocks.append(Block(id="b0", type=BlockType.QUOTE))
        seq = DocumentSequence(blocks)
        assert seq.ids() == ["b0", "b1"]
        assert seq.require("b0").type == BlockType.TEXT

    def test_insert_reindexes(self) -> None:
        seq = DocumentSequence(_blocks(BlockType.TEXT, BlockType.TEXT))
        seq.insert(1, Block(id="new", type=BlockType.TEXT))
        assert seq.ids() == ["b0", "new", "b1"]
        assert [b.order for b in seq] == [0, 1, 2]

    def test_insert_duplicate_raises(self) -> None:
        seq = DocumentSequence(_blocks(BlockType.TEXT))
        with pytest.raises(ValueError):
            seq.insert(0, Block(id="b0", type=BlockType.TEXT))

    def test_remove(self) -> None:
        seq = DocumentSequence(_blocks(BlockType.TEXT, BlockType.H1, BlockType.H2))
        removed = seq.remove("b1")
        assert removed.type == BlockType.H1
        assert seq.ids() == ["b0", "b2"]
        assert seq.require("b2").order == 1

    def test_move(self) -> None:
        seq = DocumentSequence(_blocks(BlockType.TEXT, BlockType.TEXT, BlockType.TEXT, BlockType.TEXT))
        seq.move("b2", 0)
        assert seq.ids() == ["b2", "b0", "b1", "b3"]

    def test_unknown_id(self) -> None:
        seq = DocumentSequence(_blocks(BlockType.TEXT))
        assert seq.get("missing") is None
        assert "missing" not in seq
        with pytest.raises(DanglingReference):
            seq.require("missing")
        with pytest.raises(DanglingReference):
            seq.index_of("missing")

    def test_neighbours(self) -> None:
        seq = DocumentSequence(_blocks(BlockType.TEXT, BlockType.H1))
        assert seq.previous("b0") is None
        assert seq.next("b0").id == "b1"
        assert seq.next("b1") is None

    def test_ordinals_follow_structure(self) -> None:
        seq = DocumentSequence(_blocks(BlockType.NUMBERED, BlockType.TEXT, BlockType.NUMBERED))
        assert seq.ordinal("b2") == 1
        seq.remove("b1")
        assert seq.ordinal("b2") == 2

    def test_refresh_after_type_change(self) -> None:
        seq = DocumentSequence(_blocks(BlockType.NUMBERED, BlockType.TEXT, BlockType.NUMBERED))
        seq.require("b1").type = BlockType.NUMBERED
        seq.refresh()
        assert seq.ordinals == {"b0": 1, "b1": 2, "b2": 3}
