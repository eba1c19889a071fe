"""Data models for the block-based note editor.

This module defines the core data structures: the 18 block types, the Block
itself, the Document (note) that owns an ordered run of blocks, and the Focus
the engine reports back to the host surface.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4


class BlockType(str, Enum):
    """Supported block types."""

    # Text blocks
    TEXT = "text"
    H1 = "h1"
    H2 = "h2"
    H3 = "h3"

    # List blocks
    BULLET = "bullet"
    NUMBERED = "numbered"
    TODO = "todo"

    # Containers and accents
    TOGGLE = "toggle"
    QUOTE = "quote"
    CODE = "code"
    CALLOUT = "callout"

    # Atomic blocks
    DIVIDER = "divider"
    IMAGE = "image"

    # Embeds and structured payloads
    TABLE = "table"
    BOOKMARK = "bookmark"
    VIDEO = "video"
    FILE = "file"
    EQUATION = "equation"

    @classmethod
    def parse(cls, value: BlockType | str) -> BlockType:
        """Coerce a string to a BlockType (raises ValueError when unknown)."""
        if isinstance(value, BlockType):
            return value
        return cls(value)


def now_iso() -> str:
    """Get current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat()


def new_id(prefix: str = "block") -> str:
    """Generate a new unique ID with prefix."""
    return f"{prefix}-{uuid4().hex[:12]}"


@dataclass
class Block:
    """A content block in the note editor.

    ``content`` is sanitized inline markup. Type-specific payload lives in
    ``properties``, keyed by the payload field names of the block's type
    (see ``block_types.REGISTRY``); a block holds exactly those keys.
    """

    id: str
    type: BlockType
    content: str = ""
    order: int = 0

    # Timestamps
    created_at: str = ""
    updated_at: str = ""

    # Type-specific payload (e.g., checked for todo, tableData for table)
    properties: dict[str, Any] = field(default_factory=dict)

    def mark_updated(self) -> None:
        """Stamp updated_at with the current time."""
        self.updated_at = now_iso()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return {
            "id": self.id,
            "type": self.type.value,
            "content": self.content,
            "order": self.order,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "properties": self.properties,
        }


@dataclass
class Document:
    """A note: the owner of an ordered sequence of blocks.

    Blocks reference the document by id; they are loaded and saved separately
    but the engine always treats them as one ordered unit.
    """

    id: str
    name: str = "Untitled"
    created_at: str = ""
    updated_at: str = ""
    title_manually_set: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "title_manually_set": self.title_manually_set,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Document:
        return cls(
            id=data["id"],
            name=data.get("name") or "Untitled",
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
            title_manually_set=bool(data.get("title_manually_set", False)),
        )


@dataclass(frozen=True)
class Focus:
    """Where the host should put the caret after an operation.

    ``offset`` is a zero-based character position into the block's plain-text
    projection.
    """

    block_id: str
    offset: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"block_id": self.block_id, "offset": self.offset}
