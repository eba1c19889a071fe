from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest


@pytest.fixture
def temp_data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Create an isolated data directory for notes_db."""
    data_dir = tmp_path / "quillpad-data"
    data_dir.mkdir()
    monkeypatch.setenv("QUILLPAD_DATA_DIR", str(data_dir))

    import quillpad.notes_db as notes_db

    notes_db.close_connection()

    yield data_dir

    notes_db.close_connection()


class FakeTimer:
    """Stands in for threading.Timer; fired by hand."""

    def __init__(self, interval: float, function: Callable[[], None]) -> None:
        self.interval = interval
        self.function = function
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if self.started and not self.cancelled:
            self.function()


class FakeTimers:
    """Timer factory that records every timer it hands out."""

    def __init__(self) -> None:
        self.created: list[FakeTimer] = []

    def __call__(self, interval: float, function: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(interval, function)
        self.created.append(timer)
        return timer

    @property
    def live(self) -> list[FakeTimer]:
        return [t for t in self.created if t.started and not t.cancelled]

    def fire_all(self) -> None:
        for timer in list(self.live):
            timer.fire()


@pytest.fixture
def fake_timers() -> FakeTimers:
    return FakeTimers()


@pytest.fixture
def make_engine() -> Callable[..., Any]:
    """Build an EditingEngine from (type, content) pairs.

    Blocks get the readable ids ``b0``, ``b1``, ... in order.
    """
    from quillpad.editor.block_types import get_spec
    from quillpad.editor.blocks_models import Block, Document
    from quillpad.editor.engine import EditingEngine

    def _make(*specs: tuple[str, str] | str, on_mutation: Callable[[], None] | None = None) -> EditingEngine:
        blocks = []
        for index, spec in enumerate(specs):
            block_type, content = (spec, "") if isinstance(spec, str) else spec
            type_spec = get_spec(block_type)
            blocks.append(Block(
                id=f"b{index}",
                type=type_spec.type,
                content=content,
                order=index,
                properties=type_spec.default_payload(),
            ))
        return EditingEngine(Document(id="note-1", name="Test"), blocks, on_mutation=on_mutation)

    return _make
