"""The ordered block sequence of one document.

The sequence owns ordering and identity: every structural change reassigns
``order`` to a dense 0..N-1 run and recomputes numbered-list ordinals, so the
sequence can never be observed with duplicate or gapped orders.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from ..errors import DanglingReference
from .blocks_models import Block
from .numbering import resolve_ordinals

logger = logging.getLogger(__name__)


class DocumentSequence:
    """Ordered, id-keyed collection of a document's blocks."""

    def __init__(self, blocks: Iterable[Block] = ()) -> None:
        self._blocks: list[Block] = []
        self._ordinals: dict[str, int] = {}
        seen: set[str] = set()
        for block in blocks:
            if block.id in seen:
                logger.warning("Dropping duplicate block id %s on load", block.id)
                continue
            seen.add(block.id)
            self._blocks.append(block)
        self._reindex()

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._blocks)

    def __iter__(self) -> Iterator[Block]:
        return iter(list(self._blocks))

    def __contains__(self, block_id: object) -> bool:
        return any(b.id == block_id for b in self._blocks)

    @property
    def blocks(self) -> tuple[Block, ...]:
        return tuple(self._blocks)

    def ids(self) -> list[str]:
        return [b.id for b in self._blocks]

    def get(self, block_id: str) -> Block | None:
        for block in self._blocks:
            if block.id == block_id:
                return block
        return None

    def require(self, block_id: str) -> Block:
        """Get a block or raise DanglingReference."""
        block = self.get(block_id)
        if block is None:
            raise DanglingReference("Block not in document", block_id=block_id)
        return block

    def index_of(self, block_id: str) -> int:
        for index, block in enumerate(self._blocks):
            if block.id == block_id:
                return index
        raise DanglingReference("Block not in document", block_id=block_id)

    def at(self, index: int) -> Block | None:
        if 0 <= index < len(self._blocks):
            return self._blocks[index]
        return None

    def previous(self, block_id: str) -> Block | None:
        return self.at(self.index_of(block_id) - 1)

    def next(self, block_id: str) -> Block | None:
        return self.at(self.index_of(block_id) + 1)

    def ordinal(self, block_id: str) -> int | None:
        """Display ordinal of a numbered block (None for other types)."""
        return self._ordinals.get(block_id)

    @property
    def ordinals(self) -> dict[str, int]:
        return dict(self._ordinals)

    # -------------------------------------------------------------------------
    # Structural changes
    # -------------------------------------------------------------------------

    def insert(self, index: int, block: Block) -> None:
        if block.id in self:
            raise ValueError(f"Block {block.id} is already in the document")
        index = max(0, min(index, len(self._blocks)))
        self._blocks.insert(index, block)
        self._reindex()

    def append(self, block: Block) -> None:
        self.insert(len(self._blocks), block)

    def remove(self, block_id: str) -> Block:
        index = self.index_of(block_id)
        block = self._blocks.pop(index)
        self._reindex()
        return block

    def move(self, block_id: str, index: int) -> None:
        """Take a block out and reinsert it at ``index`` of the shortened list."""
        block = self._blocks.pop(self.index_of(block_id))
        index = max(0, min(index, len(self._blocks)))
        self._blocks.insert(index, block)
        self._reindex()

    def refresh(self) -> None:
        """Recompute derived values after an in-place type change."""
        self._reindex()

    def _reindex(self) -> None:
        for position, block in enumerate(self._blocks):
            block.order = position
        self._ordinals = resolve_ordinals(self._blocks)
