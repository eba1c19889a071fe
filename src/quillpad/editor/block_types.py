"""Block type registry.

One row per block type. Every component that needs per-type behavior
(default payloads, plain-text projection, Markdown export, merge and split
rules, the slash menu) reads it from here instead of branching on the type.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable

from .blocks_models import Block, BlockType
from .embeds import format_file_size
from .rich_text import render_inline, to_plain_text
from .tables import blank_grid, grid_text


# =============================================================================
# Payload fields
# =============================================================================


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise TypeError(f"expected bool, got {type(value).__name__}")


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError("expected int, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    raise TypeError(f"expected int, got {type(value).__name__}")


def _as_dimension(value: Any) -> int:
    number = _as_int(value)
    if number < 1:
        raise ValueError(f"table dimension must be >= 1, got {number}")
    return number


def _as_str(value: Any) -> str:
    if isinstance(value, str):
        return value
    raise TypeError(f"expected str, got {type(value).__name__}")


def _as_optional_str(value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    raise TypeError(f"expected str or null, got {type(value).__name__}")


def _as_grid(value: Any) -> list[list[str]]:
    if not isinstance(value, list) or not all(isinstance(row, list) for row in value):
        raise TypeError("expected a list of rows")
    return [["" if cell is None else str(cell) for cell in row] for row in value]


@dataclass(frozen=True)
class PayloadField:
    """One type-specific field: its record key, default and coercion.

    ``default`` receives the payload built so far, so later fields can depend
    on earlier ones (``tableData`` is sized from ``rows`` and ``cols``).
    ``coerce`` raises TypeError/ValueError for a malformed stored value.
    """

    name: str
    default: Callable[[dict[str, Any]], Any]
    coerce: Callable[[Any], Any]


def _const(value: Any) -> Callable[[dict[str, Any]], Any]:
    return lambda _payload: value


_TODO_FIELDS = (PayloadField("checked", _const(False), _as_bool),)

_TOGGLE_FIELDS = (
    PayloadField("collapsed", _const(True), _as_bool),
    PayloadField("children", _const(""), _as_str),
)

_TABLE_FIELDS = (
    PayloadField("rows", _const(2), _as_dimension),
    PayloadField("cols", _const(2), _as_dimension),
    PayloadField("tableData", lambda p: blank_grid(p["rows"], p["cols"]), _as_grid),
)

_BOOKMARK_FIELDS = (
    PayloadField("url", _const(""), _as_str),
    PayloadField("title", _const(""), _as_str),
    PayloadField("description", _const(""), _as_str),
    PayloadField("favicon", _const(""), _as_str),
)

_VIDEO_FIELDS = (PayloadField("videoUrl", _const(""), _as_str),)

_FILE_FIELDS = (
    PayloadField("fileName", _const(""), _as_str),
    PayloadField("fileSize", _const(0), _as_int),
    PayloadField("fileData", _const(None), _as_optional_str),
)

_EQUATION_FIELDS = (PayloadField("equation", _const(""), _as_str),)

_IMAGE_FIELDS = (PayloadField("imageUrl", _const(None), _as_optional_str),)

DEFAULT_CALLOUT_ICON = "\U0001F4A1"

_CALLOUT_FIELDS = (PayloadField("icon", _const(DEFAULT_CALLOUT_ICON), _as_str),)


# =============================================================================
# Plain-text projections
# =============================================================================


def _project_content(block: Block) -> str:
    return to_plain_text(block.content)


def _project_toggle(block: Block) -> str:
    return to_plain_text(block.content) + " " + to_plain_text(block.properties.get("children", ""))


def _project_table(block: Block) -> str:
    return grid_text(block.properties.get("tableData"))


def _project_nothing(block: Block) -> str:
    return ""


# =============================================================================
# Markdown rendering
# =============================================================================
# Each renderer gets the block and its list ordinal (numbered lists only) and
# returns Markdown, or None to leave the block out of the export.


def _md_text(block: Block, ordinal: int | None) -> str | None:
    text = render_inline(block.content)
    return text if text.strip() else None


def _md_prefixed(prefix: str) -> Callable[[Block, int | None], str | None]:
    return lambda block, _ordinal: f"{prefix} {render_inline(block.content)}"


def _md_numbered(block: Block, ordinal: int | None) -> str | None:
    return f"{ordinal or 1}. {render_inline(block.content)}"


def _md_todo(block: Block, ordinal: int | None) -> str | None:
    checkbox = "[x]" if block.properties.get("checked") else "[ ]"
    return f"- {checkbox} {render_inline(block.content)}"


def _md_quote(block: Block, ordinal: int | None) -> str | None:
    return "\n".join(f"> {line}" for line in render_inline(block.content).split("\n"))


def _md_code(block: Block, ordinal: int | None) -> str | None:
    return f"```\n{to_plain_text(block.content)}\n```"


def _md_divider(block: Block, ordinal: int | None) -> str | None:
    return "---"


def _md_callout(block: Block, ordinal: int | None) -> str | None:
    return f"> {block.properties.get('icon', '')} {render_inline(block.content)}".rstrip()


def _md_toggle(block: Block, ordinal: int | None) -> str | None:
    children = render_inline(block.properties.get("children", ""))
    lines = ["<details>", f"<summary>{render_inline(block.content)}</summary>"]
    if children.strip():
        lines.extend(["", children, ""])
    lines.append("</details>")
    return "\n".join(lines)


def _escape_cell(cell: str) -> str:
    return (cell or "").replace("|", "\\|").replace("\n", " ")


def _md_table(block: Block, ordinal: int | None) -> str | None:
    """GFM table; row 0 is the header."""
    grid = block.properties.get("tableData") or []
    if not grid:
        return None
    width = max(len(row) for row in grid)

    def row_line(row: list[str]) -> str:
        cells = [_escape_cell(c) for c in row] + [""] * (width - len(row))
        return "| " + " | ".join(cells) + " |"

    lines = [row_line(grid[0]), "| " + " | ".join(["---"] * width) + " |"]
    lines.extend(row_line(row) for row in grid[1:])
    return "\n".join(lines)


def _md_image(block: Block, ordinal: int | None) -> str | None:
    url = block.properties.get("imageUrl")
    return f"![image]({url})" if url else None


def _md_bookmark(block: Block, ordinal: int | None) -> str | None:
    url = block.properties.get("url")
    if not url:
        return None
    return f"[{block.properties.get('title') or url}]({url})"


def _md_video(block: Block, ordinal: int | None) -> str | None:
    url = block.properties.get("videoUrl")
    if not url:
        return None
    return f"[Video]({url})"


def _md_file(block: Block, ordinal: int | None) -> str | None:
    name = block.properties.get("fileName")
    if not name:
        return None
    return f"\U0001F4CE {name} ({format_file_size(block.properties.get('fileSize', 0))})"


def _md_equation(block: Block, ordinal: int | None) -> str | None:
    equation = block.properties.get("equation", "")
    return f"$$\n{equation}\n$$" if equation else None


# =============================================================================
# Registry
# =============================================================================


@dataclass(frozen=True)
class BlockTypeSpec:
    """Registry row describing one block type."""

    type: BlockType
    name: str
    description: str
    icon: str
    placeholder: str | None = None
    shortcut: str | None = None
    payload: tuple[PayloadField, ...] = ()
    project: Callable[[Block], str] = _project_content
    has_text: bool = True
    is_atomic: bool = False
    can_inherit_across_split: bool = False
    markdown: Callable[[Block, int | None], str | None] = _md_text

    @property
    def is_list_item(self) -> bool:
        """List items render as one tight Markdown list per run."""
        return self.can_inherit_across_split

    def default_payload(self) -> dict[str, Any]:
        """Fresh default payload for this type."""
        payload: dict[str, Any] = {}
        for f in self.payload:
            payload[f.name] = f.default(payload)
        return payload

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "placeholder": self.placeholder,
            "shortcut": self.shortcut,
            "has_text": self.has_text,
            "is_atomic": self.is_atomic,
        }


_SPECS = (
    BlockTypeSpec(BlockType.TEXT, "Text", "Plain text paragraph", "T", placeholder=""),
    BlockTypeSpec(BlockType.H1, "Heading 1", "Large section heading", "H1",
                  placeholder="Heading 1", shortcut="#", markdown=_md_prefixed("#")),
    BlockTypeSpec(BlockType.H2, "Heading 2", "Medium section heading", "H2",
                  placeholder="Heading 2", shortcut="##", markdown=_md_prefixed("##")),
    BlockTypeSpec(BlockType.H3, "Heading 3", "Small section heading", "H3",
                  placeholder="Heading 3", shortcut="###", markdown=_md_prefixed("###")),
    BlockTypeSpec(BlockType.BULLET, "Bulleted List", "Simple bullet point", "•",
                  placeholder="List item", shortcut="-", can_inherit_across_split=True,
                  markdown=_md_prefixed("-")),
    BlockTypeSpec(BlockType.NUMBERED, "Numbered List", "Numbered list item", "1.",
                  placeholder="List item", shortcut="1.", can_inherit_across_split=True,
                  markdown=_md_numbered),
    BlockTypeSpec(BlockType.TODO, "To-do", "Checkbox item", "☐",
                  placeholder="To-do", shortcut="[]", payload=_TODO_FIELDS,
                  can_inherit_across_split=True, markdown=_md_todo),
    BlockTypeSpec(BlockType.TOGGLE, "Toggle", "Collapsible content", "▶",
                  placeholder="Toggle heading", payload=_TOGGLE_FIELDS, project=_project_toggle,
                  markdown=_md_toggle),
    BlockTypeSpec(BlockType.QUOTE, "Quote", "Capture a quote", '"',
                  placeholder="Quote", shortcut=">", markdown=_md_quote),
    BlockTypeSpec(BlockType.CODE, "Code", "Code snippet", "</>",
                  placeholder="Code", shortcut="```", markdown=_md_code),
    BlockTypeSpec(BlockType.DIVIDER, "Divider", "Visual separator", "—",
                  shortcut="---", project=_project_nothing, has_text=False, is_atomic=True,
                  markdown=_md_divider),
    BlockTypeSpec(BlockType.CALLOUT, "Callout", "Highlighted info box", DEFAULT_CALLOUT_ICON,
                  placeholder="Callout", payload=_CALLOUT_FIELDS, markdown=_md_callout),
    BlockTypeSpec(BlockType.IMAGE, "Image", "Upload or embed image", "\U0001F5BC",
                  payload=_IMAGE_FIELDS, project=_project_nothing, has_text=False, is_atomic=True,
                  markdown=_md_image),
    BlockTypeSpec(BlockType.TABLE, "Table", "Simple table", "⊞",
                  payload=_TABLE_FIELDS, project=_project_table, has_text=False,
                  markdown=_md_table),
    BlockTypeSpec(BlockType.BOOKMARK, "Bookmark", "Link bookmark with preview", "\U0001F517",
                  placeholder="Paste URL...", payload=_BOOKMARK_FIELDS,
                  project=_project_nothing, has_text=False, markdown=_md_bookmark),
    BlockTypeSpec(BlockType.VIDEO, "Video", "Embed YouTube/Vimeo video", "▶️",
                  placeholder="Paste video URL...", payload=_VIDEO_FIELDS,
                  project=_project_nothing, has_text=False, markdown=_md_video),
    BlockTypeSpec(BlockType.FILE, "File", "File attachment", "\U0001F4CE",
                  payload=_FILE_FIELDS, project=_project_nothing, has_text=False,
                  markdown=_md_file),
    BlockTypeSpec(BlockType.EQUATION, "Equation", "Math equation", "∑",
                  placeholder="E = mc²", payload=_EQUATION_FIELDS,
                  project=_project_nothing, has_text=False, markdown=_md_equation),
)

REGISTRY: dict[BlockType, BlockTypeSpec] = {spec.type: spec for spec in _SPECS}

# Slash menu order
MENU_ORDER: tuple[BlockType, ...] = tuple(spec.type for spec in _SPECS)


def get_spec(block_type: BlockType | str) -> BlockTypeSpec:
    """Look up a registry row (raises ValueError for unknown types)."""
    return REGISTRY[BlockType.parse(block_type)]


def default_payload(block_type: BlockType | str) -> dict[str, Any]:
    return get_spec(block_type).default_payload()


def plain_text(block: Block) -> str:
    """Plain-text projection used for search, caret math and the AI collaborator."""
    return get_spec(block.type).project(block)


def document_text(blocks: Iterable[Block]) -> str:
    """All non-blank block projections joined by blank lines."""
    texts = (plain_text(block) for block in blocks)
    return "\n\n".join(text for text in texts if text and text.strip())


def can_merge(block: Block) -> bool:
    """Whether a block can absorb or be absorbed by a text merge."""
    spec = get_spec(block.type)
    return spec.has_text and not spec.is_atomic
