"""Tests for errors.py and the RPC handler error mapping."""

from __future__ import annotations

import pytest

from quillpad.errors import (
    DanglingReference,
    EditorError,
    InvalidTransition,
    NotFoundError,
    PersistenceFailure,
    QuillpadError,
    StorageError,
    ValidationError,
    get_error_code,
    recover_locally,
)
from quillpad.rpc_handlers import RpcError
from quillpad.rpc_handlers._base import rpc_handler


class TestErrorHierarchy:
    def test_editor_errors_are_recoverable(self) -> None:
        err = InvalidTransition("Cannot merge", block_id="b1", previous_type="divider")
        assert isinstance(err, EditorError)
        assert err.recoverable is True
        assert err.to_dict() == {
            "type": "InvalidTransition",
            "message": "Cannot merge",
            "recoverable": True,
            "block_id": "b1",
            "previous_type": "divider",
        }

    def test_none_context_values_omitted(self) -> None:
        err = NotFoundError("Note not found", resource_type="note")
        assert err.to_dict() == {
            "type": "NotFoundError",
            "message": "Note not found",
            "recoverable": False,
            "resource_type": "note",
        }

    def test_persistence_failure(self) -> None:
        err = PersistenceFailure("disk full", note_id="n1")
        assert isinstance(err, StorageError)
        assert err.to_dict()["operation"] == "flush"
        assert err.to_dict()["note_id"] == "n1"

    def test_validation_value_truncated(self) -> None:
        err = ValidationError("bad", field="content", value="x" * 500)
        assert len(err.to_dict()["value"]) == 100


class TestErrorCodes:
    @pytest.mark.parametrize(
        ("exc", "code"),
        [
            (ValidationError("x"), -32602),
            (NotFoundError("x"), -32003),
            (InvalidTransition("x"), -32010),
            (DanglingReference("x"), -32011),
            (EditorError("x"), -32012),
            (PersistenceFailure("x"), -32021),
            (StorageError("x"), -32020),
            (QuillpadError("x"), -32603),
        ],
    )
    def test_codes(self, exc: QuillpadError, code: int) -> None:
        assert get_error_code(exc) == code

    def test_subclass_falls_back_to_parent_code(self) -> None:
        class NarrowTransition(InvalidTransition):
            pass

        assert get_error_code(NarrowTransition("x")) == -32010


class TestRecoverLocally:
    def test_editor_error_becomes_default(self) -> None:
        @recover_locally("test op")
        def refuse() -> bool:
            raise InvalidTransition("no")

        assert refuse() is False

    def test_custom_default(self) -> None:
        @recover_locally("test op", default=None)
        def refuse() -> object:
            raise DanglingReference("gone", block_id="b9")

        assert refuse() is None

    def test_other_errors_propagate(self) -> None:
        @recover_locally("test op")
        def broken() -> bool:
            raise KeyError("bug")

        with pytest.raises(KeyError):
            broken()

    def test_wraps_preserves_name(self) -> None:
        @recover_locally("test op")
        def some_operation() -> bool:
            return True

        assert some_operation.__name__ == "some_operation"
        assert some_operation() is True


class TestRpcHandlerMapping:
    def test_domain_error(self) -> None:
        @rpc_handler("test/method")
        def handler(_workspace: object) -> None:
            raise NotFoundError("Note not found", resource_type="note", resource_id="n1")

        with pytest.raises(RpcError) as excinfo:
            handler(None)
        assert excinfo.value.code == -32003
        assert excinfo.value.data["resource_id"] == "n1"

    def test_value_error_is_invalid_params(self) -> None:
        @rpc_handler("test/method")
        def handler(_workspace: object, *, offset: int) -> None:
            raise ValueError("offset must be an integer")

        with pytest.raises(RpcError) as excinfo:
            handler(None, offset="x")
        assert excinfo.value.code == -32602
        assert excinfo.value.message == "offset must be an integer"

    def test_missing_param_is_invalid_params(self) -> None:
        @rpc_handler("test/method")
        def handler(_workspace: object, *, note_id: str) -> str:
            return note_id

        with pytest.raises(RpcError) as excinfo:
            handler(None)
        assert excinfo.value.code == -32602

    def test_unexpected_error_is_internal(self, caplog: pytest.LogCaptureFixture) -> None:
        @rpc_handler("test/method")
        def handler(_workspace: object) -> None:
            raise RuntimeError("boom")

        with pytest.raises(RpcError) as excinfo:
            handler(None)
        assert excinfo.value.code == -32603
        assert excinfo.value.data == {"error_type": "RuntimeError"}
        assert "test/method" in caplog.text

    def test_rpc_error_passes_through(self) -> None:
        @rpc_handler("test/method")
        def handler(_workspace: object) -> None:
            raise RpcError(code=-32099, message="custom")

        with pytest.raises(RpcError) as excinfo:
            handler(None)
        assert excinfo.value.code == -32099
