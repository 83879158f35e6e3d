"""Node RPC errors."""

from __future__ import annotations

from flip_manager.errors.flip_errors import FlipError


class NodeError(FlipError):
    """Transport-level failure talking to the node (connection, HTTP status)."""

    def __init__(self, message: str, *, status_code: int = 502) -> None:
        super().__init__(message, status_code=status_code, code="node-error")


class NodeRPCError(NodeError):
    """The node answered with a JSON-RPC error object."""

    def __init__(self, message: str, *, rpc_code: int = 0) -> None:
        super().__init__(message, status_code=422)
        self.code = "node-rpc-error"
        self.rpc_code = rpc_code
