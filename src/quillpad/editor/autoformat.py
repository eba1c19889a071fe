"""Markdown-style autoformat detection.

Typing ``## `` at the start of a plain text block turns it into a heading, and
so on. Only ``text`` blocks are examined; once a block has a type it never
re-triggers.
"""

from __future__ import annotations

from dataclasses import dataclass

from .blocks_models import Block, BlockType
from .rich_text import strip_prefix, to_plain_text

# Most specific first: a longer prefix must never be shadowed by a shorter one.
PREFIX_RULES: tuple[tuple[str, BlockType], ...] = (
    ("### ", BlockType.H3),
    ("## ", BlockType.H2),
    ("# ", BlockType.H1),
    ("- ", BlockType.BULLET),
    ("* ", BlockType.BULLET),
    ("1. ", BlockType.NUMBERED),
    ("[ ] ", BlockType.TODO),
    ("[] ", BlockType.TODO),
    ("> ", BlockType.QUOTE),
    ("``` ", BlockType.CODE),
)

# Whole-content rules: the text must equal the token exactly.
EXACT_RULES: tuple[tuple[str, BlockType], ...] = (
    ("---", BlockType.DIVIDER),
)


@dataclass(frozen=True)
class AutoformatMatch:
    """A detected shortcut: the type to convert to and the content to keep."""

    new_type: BlockType
    content: str
    trigger: str


def detect(block: Block) -> AutoformatMatch | None:
    """Return the conversion a text block's content asks for, if any."""
    if block.type != BlockType.TEXT:
        return None

    text = to_plain_text(block.content)

    for token, new_type in EXACT_RULES:
        if text == token:
            return AutoformatMatch(new_type=new_type, content="", trigger=token)

    for prefix, new_type in PREFIX_RULES:
        if text.startswith(prefix):
            return AutoformatMatch(
                new_type=new_type,
                content=strip_prefix(block.content, len(prefix)),
                trigger=prefix,
            )

    return None
