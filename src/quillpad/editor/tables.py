"""Table grid helpers.

A table payload is ``rows``, ``cols`` and ``tableData`` (a rows×cols matrix of
plain strings, row 0 being the header). These helpers validate first and
mutate second, so a refused edit leaves the payload untouched.
"""

from __future__ import annotations

from typing import Any

from ..errors import InvalidTransition

MIN_ROWS = 1
MIN_COLS = 1


def header_label(col_index: int) -> str:
    """Placeholder text for a header cell (1-based in the label)."""
    return f"Header {col_index + 1}"


def blank_grid(rows: int, cols: int) -> list[list[str]]:
    """A rows×cols grid with placeholder headers and empty body cells."""
    return [
        [header_label(c) if r == 0 else "" for c in range(cols)]
        for r in range(rows)
    ]


def ensure_grid(props: dict[str, Any]) -> list[list[str]]:
    """Return the payload's grid, regenerating it when missing."""
    data = props.get("tableData")
    if not isinstance(data, list):
        data = blank_grid(props.get("rows", 2), props.get("cols", 2))
        props["tableData"] = data
    return data


def add_row(props: dict[str, Any]) -> None:
    """Append a row of empty cells matching the current column count."""
    data = ensure_grid(props)
    data.append([""] * props["cols"])
    props["rows"] += 1


def remove_row(props: dict[str, Any]) -> None:
    """Pop the last row; never below one row."""
    if props["rows"] <= MIN_ROWS:
        raise InvalidTransition("Table must keep at least one row", rows=props["rows"])
    data = ensure_grid(props)
    data.pop()
    props["rows"] -= 1


def add_column(props: dict[str, Any]) -> None:
    """Append one cell per row; the header row gets a placeholder label."""
    data = ensure_grid(props)
    for index, row in enumerate(data):
        row.append(header_label(props["cols"]) if index == 0 else "")
    props["cols"] += 1


def remove_column(props: dict[str, Any]) -> None:
    """Drop the last cell of every row; never below one column."""
    if props["cols"] <= MIN_COLS:
        raise InvalidTransition("Table must keep at least one column", cols=props["cols"])
    data = ensure_grid(props)
    for row in data:
        if row:
            row.pop()
    props["cols"] -= 1


def set_cell(props: dict[str, Any], row: int, col: int, text: str) -> None:
    """Replace one cell's text."""
    data = ensure_grid(props)
    if not (0 <= row < len(data)) or not (0 <= col < len(data[row])):
        raise InvalidTransition("Cell is outside the table", row=row, col=col)
    data[row][col] = text


def grid_text(data: Any) -> str:
    """Plain-text projection of a grid: cells joined by spaces, row by row."""
    if not isinstance(data, list):
        return ""
    return " ".join(" ".join(str(cell) for cell in row) for row in data if isinstance(row, list))
