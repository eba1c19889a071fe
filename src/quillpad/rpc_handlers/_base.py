"""Shared error mapping for the RPC handler modules.

Handlers raise domain errors; ``rpc_handler`` turns whatever escapes a
handler into an ``RpcError`` the dispatcher can put on the wire.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import TYPE_CHECKING, Any, Callable

from quillpad.errors import QuillpadError, get_error_code

from . import RpcError

if TYPE_CHECKING:
    from quillpad.session import Workspace

logger = logging.getLogger(__name__)

INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


def to_rpc_error(method_name: str, exc: Exception, params: dict[str, Any]) -> RpcError:
    """Translate an exception raised inside a handler.

    Domain errors keep their structured ``to_dict()`` payload. Bad or missing
    params (ValueError / TypeError from the handler signature) become
    invalid-params. Anything else is a bug: it is logged with its traceback
    and reported as an internal error without leaking the message.
    """
    if isinstance(exc, RpcError):
        return exc
    if isinstance(exc, QuillpadError):
        if not exc.recoverable:
            logger.info("%s refused: %s", method_name, exc.message)
        return RpcError(code=get_error_code(exc), message=exc.message, data=exc.to_dict())
    if isinstance(exc, ValueError):
        return RpcError(code=INVALID_PARAMS, message=str(exc))
    if isinstance(exc, TypeError):
        return RpcError(code=INVALID_PARAMS, message=f"Invalid parameter: {exc}")

    logger.error(
        "Internal error in RPC handler %s (params: %s): %s",
        method_name,
        sorted(params),
        exc,
        exc_info=exc,
    )
    return RpcError(
        code=INTERNAL_ERROR,
        message=f"Internal error in {method_name}",
        data={"error_type": type(exc).__name__},
    )


def rpc_handler(method_name: str) -> Callable:
    """Decorator giving a handler the standard error mapping.

    Usage:
        @rpc_handler("notes/rename")
        def handle_notes_rename(workspace: Workspace, *, note_id: str, name: str) -> dict:
            ...
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(workspace: "Workspace", **params: Any) -> Any:
            try:
                return func(workspace, **params)
            except Exception as e:
                error = to_rpc_error(method_name, e, params)
                if error is e:
                    raise
                raise error from e

        return wrapper

    return decorator
