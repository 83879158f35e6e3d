"""Tests for the error hierarchy and predefined errors."""

from __future__ import annotations

import pytest

from flip_manager.errors import definitions
from flip_manager.errors.chain_errors import NodeError, NodeRPCError
from flip_manager.errors.flip_errors import FlipError

# ---------------------------------------------------------------------------
# Base error
# ---------------------------------------------------------------------------


class TestFlipError:
    def test_defaults(self):
        err = FlipError("boom")
        assert str(err) == "boom"
        assert err.message == "boom"
        assert err.status_code == 500
        assert err.code == "flip-error"

    def test_custom(self):
        err = FlipError("nope", status_code=418, code="teapot")
        assert err.status_code == 418
        assert err.code == "teapot"

    def test_is_exception(self):
        with pytest.raises(FlipError, match="raised"):
            raise FlipError("raised")


# ---------------------------------------------------------------------------
# Node errors
# ---------------------------------------------------------------------------


class TestNodeErrors:
    def test_node_error(self):
        err = NodeError("unreachable")
        assert isinstance(err, FlipError)
        assert err.status_code == 502
        assert err.code == "node-error"

    def test_rpc_error(self):
        err = NodeRPCError("bad flip", rpc_code=-32000)
        assert isinstance(err, NodeError)
        assert err.status_code == 422
        assert err.code == "node-rpc-error"
        assert err.rpc_code == -32000
        assert err.message == "bad flip"


# ---------------------------------------------------------------------------
# Predefined errors
# ---------------------------------------------------------------------------


class TestDefinitions:
    @pytest.mark.parametrize(
        ("err", "status", "message"),
        [
            (definitions.ErrDuplicateSubmission, 409, "You already submitted this flip"),
            (definitions.ErrUnshuffledOrder, 400, "You must shuffle flip before submit"),
            (definitions.ErrMissingHint, 400, "Keywords for flip are not specified"),
            (definitions.ErrInvalidHint, 400, "Keywords for flip are not allowed"),
            (definitions.ErrPayloadTooLarge, 413, "Flip is too large"),
            (definitions.ErrFlipNotFound, 404, "flip not found"),
            (definitions.ErrFlipNotDraft, 409, "flip is not a draft"),
            (definitions.ErrOperationInProgress, 409, "another operation on this flip is in progress"),
        ],
    )
    def test_values(self, err, status, message):
        assert err.status_code == status
        assert err.message == message

    def test_codes_unique(self):
        errors = [v for v in vars(definitions).values() if isinstance(v, FlipError)]
        codes = [e.code for e in errors]
        assert len(codes) == len(set(codes))
