"""Display ordinals for numbered-list runs.

Ordinals are derived from position only and never persisted: a numbered
block shows 1 + the number of numbered blocks directly above it, and any
other block type restarts the count.
"""

from __future__ import annotations

from typing import Iterable

from .blocks_models import Block, BlockType


def resolve_ordinals(blocks: Iterable[Block]) -> dict[str, int]:
    """Map each numbered block's id to its display ordinal."""
    ordinals: dict[str, int] = {}
    run = 0
    for block in blocks:
        if block.type == BlockType.NUMBERED:
            run += 1
            ordinals[block.id] = run
        else:
            run = 0
    return ordinals
