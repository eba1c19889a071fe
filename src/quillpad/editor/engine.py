"""The editing engine: every structural and content operation on one document.

One engine owns one document's block sequence. Operations validate their
preconditions first and mutate second; a refused operation raises an
EditorError internally, which ``recover_locally`` turns into a silent no-op
(``False`` / ``None``), so the sequence is never observed half-changed.

After each committed mutation the engine calls ``on_mutation`` (the session
uses it to schedule a debounced flush) and leaves ``focus`` pointing at the
block and caret offset the host should show.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

from ..errors import DanglingReference, InvalidTransition, recover_locally
from . import autoformat, tables
from .block_types import can_merge, document_text, get_spec, plain_text
from .blocks_models import Block, BlockType, Document, Focus, new_id, now_iso
from .embeds import bookmark_fields
from .rich_text import concat, sanitize, split_at_offset, text_length
from .sequence import DocumentSequence
from .serializer import dump_blocks

logger = logging.getLogger(__name__)


class EditingEngine:
    """Operation set over a single document's blocks."""

    def __init__(
        self,
        document: Document,
        blocks: Iterable[Block] = (),
        *,
        on_mutation: Callable[[], None] | None = None,
    ) -> None:
        self.document = document
        self.sequence = DocumentSequence(blocks)
        self.on_mutation = on_mutation
        self.focus: Focus | None = None
        self._removed_ids: list[str] = []

        if len(self.sequence) == 0:
            # An empty note always gets one empty text block to type into
            self.sequence.append(self.create_block(BlockType.TEXT))

        first = self.sequence.at(0)
        if first is not None:
            self.focus = Focus(first.id, text_length(first.content))

    # =========================================================================
    # Read access
    # =========================================================================

    @property
    def blocks(self) -> tuple[Block, ...]:
        return self.sequence.blocks

    def get_block(self, block_id: str) -> Block | None:
        return self.sequence.get(block_id)

    def ordinal(self, block_id: str) -> int | None:
        """Display number of a numbered-list block."""
        return self.sequence.ordinal(block_id)

    def plain_text(self, block_id: str) -> str:
        block = self.sequence.get(block_id)
        return plain_text(block) if block else ""

    def text_content(self) -> str:
        """The whole document as plain text (what the AI collaborator sees)."""
        return document_text(self.sequence)

    def snapshot(self) -> list[dict[str, Any]]:
        """Storage records for the current state, orders dense 0..N-1."""
        return dump_blocks(self.sequence, note_id=self.document.id)

    def drain_removed_ids(self) -> list[str]:
        """Ids removed since the last drain; the flush deletes them from storage."""
        removed, self._removed_ids = self._removed_ids, []
        return removed

    def requeue_removed_ids(self, block_ids: Iterable[str]) -> None:
        """Put back ids whose storage delete did not happen."""
        live = set(self.sequence.ids())
        for block_id in block_ids:
            if block_id not in live and block_id not in self._removed_ids:
                self._removed_ids.append(block_id)

    def create_block(self, block_type: BlockType | str = BlockType.TEXT, content: str = "") -> Block:
        """Build a detached block with a fresh id and its type's default payload."""
        spec = get_spec(block_type)
        now = now_iso()
        return Block(
            id=new_id("block"),
            type=spec.type,
            content=sanitize(content) if spec.has_text else "",
            created_at=now,
            updated_at=now,
            properties=spec.default_payload(),
        )

    # =========================================================================
    # Insert / split
    # =========================================================================

    def insert_after(
        self,
        block_id: str | None,
        block_type: BlockType | str = BlockType.TEXT,
        content: str = "",
    ) -> Block:
        """Insert a new block right after ``block_id`` (or at the end) and focus it.

        An unknown ``block_id`` falls back to appending at the end.
        """
        block = self.create_block(block_type, content)
        index = len(self.sequence)
        if block_id is not None:
            try:
                index = self.sequence.index_of(block_id) + 1
            except DanglingReference:
                logger.debug("insert_after: unknown block %s, appending at end", block_id)

        self.sequence.insert(index, block)
        self.focus = Focus(block.id, 0)
        self._commit()
        return block

    def add_block_at_end(self) -> Block:
        return self.insert_after(None)

    @recover_locally("split block", default=None)
    def split_at_cursor(self, block_id: str, text_before: str, text_after: str) -> Block | None:
        """Keep ``text_before`` in the block and move ``text_after`` to a new block.

        The new block continues a list (bullet, numbered, todo) only when the
        original block had text; Enter on an empty list item exits the list.
        """
        block = self.sequence.require(block_id)
        spec = get_spec(block.type)
        if not spec.has_text:
            raise InvalidTransition("Block has no text to split", block_id=block_id)

        keep_type = spec.can_inherit_across_split and plain_text(block).strip() != ""
        new_block = self.create_block(block.type if keep_type else BlockType.TEXT, text_after)

        index = self.sequence.index_of(block_id)
        block.content = sanitize(text_before)
        block.mark_updated()
        self.sequence.insert(index + 1, new_block)

        self.focus = Focus(new_block.id, 0)
        self._commit()
        return new_block

    @recover_locally("split block at offset", default=None)
    def split_at_offset(self, block_id: str, offset: int) -> Block | None:
        """Split at a caret offset into the block's plain text."""
        block = self.sequence.require(block_id)
        before, after = split_at_offset(block.content, offset)
        return self.split_at_cursor(block_id, before, after)

    # =========================================================================
    # Merge / delete
    # =========================================================================

    @recover_locally("backspace at start")
    def backspace_at_start(self, block_id: str) -> bool:
        """Backspace with the caret at offset 0.

        A typed block first converts to plain text. A text block merges into
        the previous block, unless that one is atomic (or has no text).
        """
        block = self.sequence.require(block_id)

        if block.type != BlockType.TEXT:
            self._convert(block, BlockType.TEXT)
            self.sequence.refresh()
            self.focus = Focus(block.id, 0)
            self._commit()
            return True

        previous = self.sequence.previous(block_id)
        if previous is None:
            raise InvalidTransition("No previous block to merge into", block_id=block_id)
        if not can_merge(previous):
            raise InvalidTransition(
                "Previous block cannot absorb a merge",
                block_id=block_id,
                previous_type=previous.type.value,
            )

        caret = text_length(previous.content)
        previous.content = concat(previous.content, block.content)
        previous.mark_updated()
        self._remove(block_id)

        self.focus = Focus(previous.id, caret)
        self._commit()
        return True

    @recover_locally("delete at end")
    def delete_at_end(self, block_id: str) -> bool:
        """Forward-delete with the caret at the end: pull the next block's text in."""
        block = self.sequence.require(block_id)
        if not can_merge(block):
            raise InvalidTransition("Block cannot absorb a merge", block_id=block_id)

        following = self.sequence.next(block_id)
        if following is None:
            raise InvalidTransition("No next block to merge", block_id=block_id)
        if not can_merge(following):
            raise InvalidTransition(
                "Next block cannot be merged",
                block_id=block_id,
                next_type=following.type.value,
            )

        block.content = concat(block.content, following.content)
        block.mark_updated()
        self._remove(following.id)

        self.focus = Focus(block.id, text_length(block.content))
        self._commit()
        return True

    @recover_locally("delete block")
    def delete_block(self, block_id: str) -> bool:
        """Remove a block, focusing the previous one (caret at end) or the next.

        The last block of a document is reset to an empty text block instead.
        """
        index = self.sequence.index_of(block_id)

        if len(self.sequence) == 1:
            block = self.sequence.require(block_id)
            block.type = BlockType.TEXT
            block.content = ""
            block.properties = get_spec(BlockType.TEXT).default_payload()
            block.mark_updated()
            self.sequence.refresh()
            self.focus = Focus(block.id, 0)
            self._commit()
            return True

        self._remove(block_id)
        previous = self.sequence.at(index - 1)
        if previous is not None:
            self.focus = Focus(previous.id, text_length(previous.content))
        else:
            following = self.sequence.at(0)
            self.focus = Focus(following.id, 0) if following else None
        self._commit()
        return True

    # =========================================================================
    # Type changes and reordering
    # =========================================================================

    @recover_locally("change block type")
    def change_type(self, block_id: str, new_type: BlockType | str) -> bool:
        """Convert a block in place; its id survives the conversion."""
        try:
            target = BlockType.parse(new_type)
        except ValueError as exc:
            raise InvalidTransition(f"Unknown block type {new_type!r}", block_id=block_id) from exc

        block = self.sequence.require(block_id)
        if block.type == target:
            raise InvalidTransition("Block already has that type", block_id=block_id)

        self._convert(block, target)
        self.sequence.refresh()
        self.focus = Focus(block.id, text_length(block.content))
        self._commit()
        return True

    @recover_locally("reorder blocks")
    def reorder(self, dragged_id: str, target_id: str) -> bool:
        """Drop ``dragged_id`` onto ``target_id``: it takes the target's slot.

        The target index is read before the dragged block is taken out, so
        dragging upward lands just before the target and dragging downward
        lands just after it.
        """
        if dragged_id == target_id:
            raise InvalidTransition("Block dropped onto itself", block_id=dragged_id)

        self.sequence.index_of(dragged_id)
        target_index = self.sequence.index_of(target_id)

        self.sequence.move(dragged_id, target_index)
        self._commit()
        return True

    # =========================================================================
    # Content edits
    # =========================================================================

    @recover_locally("update content")
    def update_content(self, block_id: str, content: str) -> bool:
        """Replace a block's content (one keystroke's worth) and run autoformat."""
        block = self.sequence.require(block_id)
        if not get_spec(block.type).has_text:
            raise InvalidTransition("Block has no text content", block_id=block_id)

        clean = sanitize(content)
        if clean == block.content:
            return False

        block.content = clean
        block.mark_updated()

        match = autoformat.detect(block)
        if match is not None:
            logger.debug("Autoformat %r -> %s on %s", match.trigger, match.new_type.value, block_id)
            block.content = match.content
            self._convert(block, match.new_type)
            self.sequence.refresh()
            self.focus = Focus(block.id, text_length(block.content))

        self._commit()
        return True

    @recover_locally("set toggle children")
    def set_toggle_children(self, block_id: str, content: str) -> bool:
        block = self._require_type(block_id, BlockType.TOGGLE)
        block.properties["children"] = sanitize(content)
        block.mark_updated()
        self._commit()
        return True

    @recover_locally("toggle checkbox")
    def toggle_checked(self, block_id: str) -> bool:
        block = self._require_type(block_id, BlockType.TODO)
        block.properties["checked"] = not block.properties.get("checked", False)
        block.mark_updated()
        self._commit()
        return True

    @recover_locally("toggle collapsed")
    def toggle_collapsed(self, block_id: str) -> bool:
        block = self._require_type(block_id, BlockType.TOGGLE)
        block.properties["collapsed"] = not block.properties.get("collapsed", True)
        block.mark_updated()
        self._commit()
        return True

    # =========================================================================
    # Table grid
    # =========================================================================

    @recover_locally("add table row")
    def add_row(self, block_id: str) -> bool:
        return self._table_edit(block_id, tables.add_row)

    @recover_locally("remove table row")
    def remove_row(self, block_id: str) -> bool:
        return self._table_edit(block_id, tables.remove_row)

    @recover_locally("add table column")
    def add_column(self, block_id: str) -> bool:
        return self._table_edit(block_id, tables.add_column)

    @recover_locally("remove table column")
    def remove_column(self, block_id: str) -> bool:
        return self._table_edit(block_id, tables.remove_column)

    @recover_locally("set table cell")
    def set_table_cell(self, block_id: str, row: int, col: int, text: str) -> bool:
        return self._table_edit(block_id, lambda props: tables.set_cell(props, row, col, text))

    def _table_edit(self, block_id: str, edit: Callable[[dict[str, Any]], None]) -> bool:
        block = self._require_type(block_id, BlockType.TABLE)
        edit(block.properties)
        block.mark_updated()
        self._commit()
        return True

    # =========================================================================
    # Embeds and media
    # =========================================================================

    @recover_locally("set bookmark url")
    def set_bookmark_url(self, block_id: str, url: str) -> bool:
        """Store the URL being typed; nothing is derived until commit."""
        block = self._require_type(block_id, BlockType.BOOKMARK)
        block.properties["url"] = url
        block.mark_updated()
        self._commit()
        return True

    @recover_locally("commit bookmark")
    def commit_bookmark(self, block_id: str, url: str | None = None) -> bool:
        """Turn the typed URL into a bookmark card (title from the hostname)."""
        block = self._require_type(block_id, BlockType.BOOKMARK)
        fields = bookmark_fields(url if url is not None else block.properties.get("url", ""))
        block.properties.update(fields)
        block.mark_updated()
        self._commit()
        return True

    @recover_locally("set video url")
    def set_video_url(self, block_id: str, url: str) -> bool:
        block = self._require_type(block_id, BlockType.VIDEO)
        block.properties["videoUrl"] = url.strip()
        block.mark_updated()
        self._commit()
        return True

    @recover_locally("set image")
    def set_image(self, block_id: str, image_url: str | None) -> bool:
        block = self._require_type(block_id, BlockType.IMAGE)
        block.properties["imageUrl"] = image_url
        block.mark_updated()
        self._commit()
        return True

    @recover_locally("attach file")
    def attach_file(self, block_id: str, file_name: str, file_size: int, file_data: str | None) -> bool:
        block = self._require_type(block_id, BlockType.FILE)
        if file_size < 0:
            raise InvalidTransition("File size cannot be negative", block_id=block_id)
        block.properties.update({
            "fileName": file_name,
            "fileSize": file_size,
            "fileData": file_data,
        })
        block.mark_updated()
        self._commit()
        return True

    @recover_locally("set equation")
    def set_equation(self, block_id: str, equation: str) -> bool:
        block = self._require_type(block_id, BlockType.EQUATION)
        block.properties["equation"] = equation
        block.mark_updated()
        self._commit()
        return True

    @recover_locally("set callout icon")
    def set_callout_icon(self, block_id: str, icon: str) -> bool:
        block = self._require_type(block_id, BlockType.CALLOUT)
        if not icon:
            raise InvalidTransition("Callout icon cannot be empty", block_id=block_id)
        block.properties["icon"] = icon
        block.mark_updated()
        self._commit()
        return True

    # =========================================================================
    # Document
    # =========================================================================

    def set_title(self, name: str, *, manual: bool = True) -> bool:
        """Rename the document.

        Manual edits mark the title as user-owned; generated titles do not.
        """
        new_name = (name or "").strip() or "Untitled"
        if new_name == self.document.name:
            return False
        self.document.name = new_name
        if manual:
            self.document.title_manually_set = True
        self._commit()
        return True

    # =========================================================================
    # Internals
    # =========================================================================

    def _require_type(self, block_id: str, block_type: BlockType) -> Block:
        block = self.sequence.require(block_id)
        if block.type != block_type:
            raise InvalidTransition(
                f"Expected a {block_type.value} block",
                block_id=block_id,
                actual_type=block.type.value,
            )
        return block

    def _convert(self, block: Block, new_type: BlockType) -> None:
        spec = get_spec(new_type)
        block.type = new_type
        block.properties = spec.default_payload()
        if not spec.has_text:
            block.content = ""
        block.mark_updated()

    def _remove(self, block_id: str) -> None:
        self.sequence.remove(block_id)
        self._removed_ids.append(block_id)

    def _commit(self) -> None:
        if self.on_mutation is not None:
            self.on_mutation()
