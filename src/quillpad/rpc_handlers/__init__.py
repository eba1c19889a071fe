"""RPC handler modules for the HTTP bridge.

This package contains handler functions organized by domain:
- notes: note lifecycle (list, create, open, rename, delete, flush)
- editor: editing operations on an open note

Every handler takes the ``Workspace`` as its first argument and its
JSON-RPC params as keyword arguments.
"""

from __future__ import annotations

from typing import Any


class RpcError(RuntimeError):
    """JSON-RPC error that can be returned to the client."""

    def __init__(self, code: int, message: str, data: Any | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data
