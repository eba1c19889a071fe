"""Render blocks to Markdown.

This module converts a document's blocks to Markdown text for export and for
the CLI's ``show`` command. It is read-only: nothing here mutates blocks.
Per-type output lives on the registry rows in ``block_types``.
"""

from __future__ import annotations

from typing import Iterable

from .block_types import get_spec
from .blocks_models import Block
from .numbering import resolve_ordinals


def render_markdown(blocks: Iterable[Block], title: str | None = None) -> str:
    """Render a list of blocks to Markdown.

    Args:
        blocks: Blocks in document order.
        title: Optional document title rendered as a leading H1.

    Returns:
        Markdown text.
    """
    blocks = list(blocks)
    ordinals = resolve_ordinals(blocks)
    lines: list[str] = []

    if title:
        lines.extend([f"# {title}", ""])

    for i, block in enumerate(blocks):
        rendered = get_spec(block.type).markdown(block, ordinals.get(block.id))
        if rendered is None:
            continue
        lines.append(rendered)
        # List items of the same kind stay tight; everything else gets a blank line
        following = blocks[i + 1] if i + 1 < len(blocks) else None
        if following is not None and not _same_list(block, following):
            lines.append("")

    return "\n".join(lines).rstrip("\n") + ("\n" if lines else "")


def _same_list(block: Block, following: Block) -> bool:
    return block.type == following.type and get_spec(block.type).is_list_item
