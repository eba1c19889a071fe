"""Quillpad Error Hierarchy.

Provides a structured error hierarchy for editor and storage operations:
- QuillpadError: Base exception for all application errors
- EditorError: An editing operation was rejected (always recovered locally)
- SerializationMismatch: A stored record did not match its block type
- StorageError / PersistenceFailure: The storage collaborator failed
- NotFoundError, ValidationError, ConfigurationError: boundary errors

Each error type includes:
- Descriptive message
- Recoverable flag
- Structured representation for RPC responses

Usage:
    from quillpad.errors import InvalidTransition, recover_locally

    @recover_locally("merge blocks")
    def merge(...):
        if previous.is_atomic:
            raise InvalidTransition("Cannot merge into an atomic block", block_id=prev.id)
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Callable

logger = logging.getLogger(__name__)


# =============================================================================
# Error Base Classes
# =============================================================================


class QuillpadError(Exception):
    """Base exception for all Quillpad application errors.

    Attributes:
        message: Human-readable error description
        recoverable: Whether the caller can carry on without intervention
        context: Additional context for debugging
    """

    def __init__(
        self,
        message: str,
        *,
        recoverable: bool = False,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to structured dictionary for RPC responses."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "recoverable": self.recoverable,
            **{k: v for k, v in self.context.items() if v is not None},
        }


# =============================================================================
# Editor Errors
# =============================================================================


class EditorError(QuillpadError):
    """An editing operation was refused before it mutated anything."""

    def __init__(
        self,
        message: str,
        *,
        block_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {})
        if block_id:
            context["block_id"] = block_id
        context.update(kwargs)
        super().__init__(message, recoverable=True, context=context)
        self.block_id = block_id


class InvalidTransition(EditorError):
    """The operation would break a document invariant (atomic merge, empty grid, ...)."""


class DanglingReference(EditorError):
    """The operation referenced a block id that is not in the document."""


# =============================================================================
# Serialization Errors
# =============================================================================


class SerializationMismatch(QuillpadError):
    """A stored record is missing or has a malformed type-specific field."""

    def __init__(
        self,
        message: str,
        *,
        block_type: str | None = None,
        field: str | None = None,
    ) -> None:
        super().__init__(
            message,
            recoverable=True,
            context={"block_type": block_type, "field": field},
        )
        self.block_type = block_type
        self.field = field


# =============================================================================
# Storage Errors
# =============================================================================


class StorageError(QuillpadError):
    """Storage operation failed."""

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        recoverable: bool = False,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {})
        if operation:
            context["operation"] = operation
        super().__init__(message, recoverable=recoverable, context=context)


class PersistenceFailure(StorageError):
    """A flush to the storage collaborator failed; in-memory state is kept."""

    def __init__(self, message: str, *, note_id: str | None = None) -> None:
        super().__init__(
            message,
            operation="flush",
            recoverable=True,
            context={"note_id": note_id},
        )
        self.note_id = note_id


# =============================================================================
# Boundary Errors
# =============================================================================


class NotFoundError(QuillpadError):
    """Resource not found."""

    def __init__(
        self,
        message: str,
        *,
        resource_type: str | None = None,
        resource_id: str | None = None,
    ) -> None:
        super().__init__(
            message,
            recoverable=False,
            context={"resource_type": resource_type, "resource_id": resource_id},
        )


class ValidationError(QuillpadError):
    """Input validation failed at an outer boundary (RPC, CLI)."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
    ) -> None:
        context: dict[str, Any] = {}
        if field:
            context["field"] = field
        if value is not None:
            context["value"] = _truncate(str(value), 100)
        super().__init__(message, recoverable=False, context=context)
        self.field = field


class ConfigurationError(QuillpadError):
    """Configuration or setup issue."""

    def __init__(self, message: str, *, setting: str | None = None) -> None:
        super().__init__(message, recoverable=False, context={"setting": setting})


# =============================================================================
# Error Codes
# =============================================================================

ERROR_CODES: dict[type, int] = {
    ValidationError: -32602,
    NotFoundError: -32003,
    InvalidTransition: -32010,
    DanglingReference: -32011,
    EditorError: -32012,
    SerializationMismatch: -32013,
    PersistenceFailure: -32021,
    StorageError: -32020,
    ConfigurationError: -32030,
}


def get_error_code(exc: QuillpadError) -> int:
    """Get the JSON-RPC error code for a domain error."""
    if type(exc) in ERROR_CODES:
        return ERROR_CODES[type(exc)]
    for error_type, code in ERROR_CODES.items():
        if isinstance(exc, error_type):
            return code
    return -32603


# =============================================================================
# Local Recovery Decorator
# =============================================================================


def recover_locally(operation: str, *, default: Any = False) -> Callable:
    """Decorator that turns a refused editing operation into a quiet no-op.

    EditorError subclasses are raised by precondition checks *before* any
    mutation happens, so returning ``default`` leaves the document exactly as
    it was. Any other exception is a bug and propagates.

    Usage:
        @recover_locally("reorder blocks")
        def reorder(self, dragged_id: str, target_id: str) -> bool:
            ...
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except EditorError as e:
                logger.debug(
                    "Skipped %s: %s (%s)",
                    operation,
                    e.message,
                    type(e).__name__,
                )
                return default

        return wrapper

    return decorator


# =============================================================================
# Helpers
# =============================================================================


def _truncate(value: str | None, max_len: int) -> str | None:
    """Truncate a string to max length."""
    if value is None:
        return None
    if len(value) <= max_len:
        return value
    return value[: max_len - 3] + "..."
