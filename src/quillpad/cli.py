#!/usr/bin/env python3
"""Command line access to the notes store.

Usage:
    quillpad-notes [command] [args...]

Commands:
    notes                       List all notes
    create [NAME]               Create a new note
    show NOTE_ID                Print a note as Markdown
    text NOTE_ID                Print a note's plain text
    add NOTE_ID TYPE TEXT       Append a block (TYPE: text, h1, bullet, todo, ...)
    delete NOTE_ID              Permanently delete a note
    types                       List block types
"""

from __future__ import annotations

import sqlite3
import sys

from .errors import QuillpadError


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print(__doc__)
        return 0

    command = args[0]

    try:
        if command == "notes":
            return cmd_notes()
        elif command == "create":
            return cmd_create(" ".join(args[1:]) or None)
        elif command == "show":
            if len(args) < 2:
                print("Usage: show NOTE_ID")
                return 1
            return cmd_show(args[1])
        elif command == "text":
            if len(args) < 2:
                print("Usage: text NOTE_ID")
                return 1
            return cmd_text(args[1])
        elif command == "add":
            if len(args) < 3:
                print("Usage: add NOTE_ID TYPE TEXT")
                return 1
            return cmd_add(args[1], args[2], " ".join(args[3:]))
        elif command == "delete":
            if len(args) < 2:
                print("Usage: delete NOTE_ID")
                return 1
            return cmd_delete(args[1])
        elif command == "types":
            return cmd_types()
        elif command in ("-h", "--help", "help"):
            print(__doc__)
            return 0
        else:
            print(f"Unknown command: {command}")
            print(__doc__)
            return 1

    except (QuillpadError, ValueError, sqlite3.Error) as e:
        print(f"Error: {e}")
        return 1


def cmd_notes() -> int:
    """List all notes."""
    from . import notes_db

    notes = notes_db.list_notes()

    print(f"\n{'ID':<20} {'Name':<30} {'Updated'}")
    print("-" * 75)
    for note in notes:
        print(f"{note['id']:<20} {note['name'][:30]:<30} {note['updated_at']}")

    print(f"\nTotal: {len(notes)} notes")
    return 0


def cmd_create(name: str | None) -> int:
    """Create a new note."""
    from . import notes_db

    note = notes_db.create_note(name=name)

    print(f"Created note: {note['id']}")
    print(f"Name: {note['name']}")
    return 0


def cmd_show(note_id: str) -> int:
    """Print a note as Markdown."""
    from .editor.markdown_renderer import render_markdown
    from .session import EditorSession
    from . import notes_db

    session = EditorSession.open(notes_db, note_id)
    with session.edit() as engine:
        print(render_markdown(engine.blocks, title=engine.document.name), end="")
    return 0


def cmd_text(note_id: str) -> int:
    """Print a note's plain-text projection."""
    from .session import EditorSession
    from . import notes_db

    session = EditorSession.open(notes_db, note_id)
    print(session.text())
    return 0


def cmd_add(note_id: str, block_type: str, text: str) -> int:
    """Append a block to a note and save it."""
    from .editor.blocks_models import BlockType
    from .session import EditorSession
    from . import notes_db

    session = EditorSession.open(notes_db, note_id)
    with session.edit() as engine:
        last = engine.blocks[-1]
        # A fresh note's bootstrap block is reused rather than left empty
        if len(engine.blocks) == 1 and last.type == BlockType.TEXT and not last.content and block_type == "text" and text:
            engine.update_content(last.id, text)
            block = last
        else:
            block = engine.insert_after(last.id, block_type, text)

    if not session.close():
        print(f"Error: failed to save note {note_id}")
        return 1

    print(f"Added {block.type.value} block: {block.id}")
    return 0


def cmd_delete(note_id: str) -> int:
    """Permanently delete a note."""
    from . import notes_db

    if not notes_db.delete_note(note_id):
        print(f"Note not found: {note_id}")
        return 1

    print(f"Deleted note: {note_id}")
    return 0


def cmd_types() -> int:
    """List block types in menu order."""
    from .editor.block_types import MENU_ORDER, REGISTRY

    for block_type in MENU_ORDER:
        spec = REGISTRY[block_type]
        shortcut = spec.shortcut or ""
        print(f"{block_type.value:<10} {spec.name:<15} {shortcut:<5} {spec.description}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
