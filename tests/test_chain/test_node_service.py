"""Tests for the node JSON-RPC client — uses httpx mock transport."""

from __future__ import annotations

import json

import httpx
import pytest

from flip_manager.chain.models import HASH_IN_MEMPOOL, EpochPeriod
from flip_manager.chain.service import NodeService
from flip_manager.config.settings import NodeConfig
from flip_manager.errors.chain_errors import NodeError, NodeRPCError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _node_config(**overrides) -> NodeConfig:
    defaults = {"url": "http://node.test:9009", "api_key": "", "timeout": 5.0}
    defaults.update(overrides)
    return NodeConfig(**defaults)


def _connected(handler, **overrides) -> NodeService:
    """Create a NodeService whose HTTP client uses a mock transport."""
    node = NodeService(_node_config(**overrides))
    node._client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler),
        base_url="http://node.test:9009",
    )
    return node


def _rpc_result(result):
    def handler(request: httpx.Request):
        body = json.loads(request.content)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    return handler


# ---------------------------------------------------------------------------
# Connection lifecycle
# ---------------------------------------------------------------------------


class TestNodeServiceLifecycle:
    async def test_not_connected_by_default(self):
        node = NodeService(_node_config())
        assert node.is_connected is False

    async def test_connect_and_close(self):
        node = NodeService(_node_config())
        await node.connect()
        assert node.is_connected is True
        await node.close()
        assert node.is_connected is False

    async def test_close_idempotent(self):
        node = NodeService(_node_config())
        await node.close()
        assert node.is_connected is False

    async def test_not_connected_raises(self):
        node = NodeService(_node_config())
        with pytest.raises(NodeError, match="not connected"):
            await node.get_transaction("0xabc")


# ---------------------------------------------------------------------------
# Request format
# ---------------------------------------------------------------------------


class TestRequestFormat:
    async def test_jsonrpc_envelope(self):
        captured = {}

        def handler(request: httpx.Request):
            captured.update(json.loads(request.content))
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": None})

        node = _connected(handler)
        await node.get_transaction("0xabc")
        assert captured["jsonrpc"] == "2.0"
        assert captured["method"] == "bcn_transaction"
        assert captured["params"] == ["0xabc"]
        assert "key" not in captured
        await node.close()

    async def test_api_key_sent(self):
        captured = {}

        def handler(request: httpx.Request):
            captured.update(json.loads(request.content))
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": None})

        node = _connected(handler, api_key="secret")
        await node.get_transaction("0xabc")
        assert captured["key"] == "secret"
        await node.close()

    async def test_ids_increase(self):
        ids = []

        def handler(request: httpx.Request):
            ids.append(json.loads(request.content)["id"])
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": ids[-1], "result": None})

        node = _connected(handler)
        await node.get_transaction("0x1")
        await node.get_transaction("0x2")
        assert ids[1] > ids[0]
        await node.close()


# ---------------------------------------------------------------------------
# Transaction lookup
# ---------------------------------------------------------------------------


class TestGetTransaction:
    async def test_mined(self):
        node = _connected(
            _rpc_result({"hash": "0xabc", "blockHash": "0xblock1", "type": "submitFlip"})
        )
        tx = await node.get_transaction("0xabc")
        assert tx is not None
        assert tx.block_hash == "0xblock1"
        assert tx.is_mined is True
        await node.close()

    async def test_mempool(self):
        node = _connected(_rpc_result({"hash": "0xabc", "blockHash": HASH_IN_MEMPOOL}))
        tx = await node.get_transaction("0xabc")
        assert tx.in_mempool is True
        await node.close()

    async def test_null_result_is_absent(self):
        node = _connected(_rpc_result(None))
        assert await node.get_transaction("0xabc") is None
        await node.close()

    async def test_rpc_error_is_absent(self):
        def handler(request: httpx.Request):
            return httpx.Response(
                200,
                json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "not found"}},
            )

        node = _connected(handler)
        assert await node.get_transaction("0xabc") is None
        await node.close()

    async def test_http_error_raises(self):
        def handler(request: httpx.Request):
            return httpx.Response(500, text="Internal Server Error")

        node = _connected(handler)
        with pytest.raises(NodeError, match="500"):
            await node.get_transaction("0xabc")
        await node.close()

    async def test_connection_error_raises(self):
        def handler(request: httpx.Request):
            raise httpx.ConnectError("connection refused")

        node = _connected(handler)
        with pytest.raises(NodeError, match="bcn_transaction"):
            await node.get_transaction("0xabc")
        await node.close()

    async def test_invalid_json_raises(self):
        def handler(request: httpx.Request):
            return httpx.Response(200, text="not json")

        node = _connected(handler)
        with pytest.raises(NodeError, match="invalid JSON"):
            await node.get_transaction("0xabc")
        await node.close()


# ---------------------------------------------------------------------------
# Submit / delete / epoch
# ---------------------------------------------------------------------------


class TestSubmitFlip:
    async def test_success(self):
        captured = {}

        def handler(request: httpx.Request):
            captured.update(json.loads(request.content))
            return httpx.Response(
                200,
                json={"jsonrpc": "2.0", "id": 1, "result": {"txHash": "0xabc", "hash": "0xflip"}},
            )

        node = _connected(handler)
        result = await node.submit_flip("0xfull", "0xpub", "0xpriv", 2)
        assert result.tx_hash == "0xabc"
        assert result.hash == "0xflip"
        assert captured["method"] == "flip_submit"
        assert captured["params"] == [
            {"hex": "0xfull", "publicHex": "0xpub", "privateHex": "0xpriv", "pairId": 2}
        ]
        await node.close()

    async def test_rejected(self):
        def handler(request: httpx.Request):
            return httpx.Response(
                200,
                json={
                    "jsonrpc": "2.0",
                    "id": 1,
                    "error": {"code": -32000, "message": "insufficient funds"},
                },
            )

        node = _connected(handler)
        with pytest.raises(NodeRPCError, match="insufficient funds") as exc_info:
            await node.submit_flip("0x", "0x", "0x", 0)
        assert exc_info.value.rpc_code == -32000
        assert exc_info.value.status_code == 422
        await node.close()

    @pytest.mark.parametrize("result", [None, {}, {"hash": "0xflip"}])
    async def test_empty_result_raises(self, result):
        node = _connected(_rpc_result(result))
        with pytest.raises(NodeError, match="no transaction"):
            await node.submit_flip("0x", "0x", "0x", 0)
        await node.close()


class TestDeleteFlip:
    async def test_success(self):
        captured = {}

        def handler(request: httpx.Request):
            captured.update(json.loads(request.content))
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "0xdel"})

        node = _connected(handler)
        assert await node.delete_flip("0xflip") == "0xdel"
        assert captured["method"] == "flip_delete"
        assert captured["params"] == ["0xflip"]
        await node.close()

    @pytest.mark.parametrize("result", [None, ""])
    async def test_empty_result_raises(self, result):
        node = _connected(_rpc_result(result))
        with pytest.raises(NodeError, match="no transaction"):
            await node.delete_flip("0xflip")
        await node.close()


class TestGetEpoch:
    async def test_success(self):
        node = _connected(
            _rpc_result(
                {
                    "epoch": 42,
                    "currentPeriod": "AfterLongSession",
                    "nextValidation": "2024-02-01T13:30:00Z",
                }
            )
        )
        info = await node.get_epoch()
        assert info.epoch == 42
        assert info.current_period == EpochPeriod.AFTER_LONG_SESSION
        assert info.next_validation == "2024-02-01T13:30:00Z"
        await node.close()
