"""Node JSON-RPC client — transaction lookup, flip submit/delete, epoch.

Provides an async HTTP client for the node's JSON-RPC API:
- ``bcn_transaction`` — look up a transaction by hash
- ``flip_submit`` — submit an encoded flip
- ``flip_delete`` — delete a published flip by content hash
- ``dna_epoch`` — current epoch and ceremony period
"""

from __future__ import annotations

import itertools
import logging
from typing import TYPE_CHECKING, Any

import httpx

from flip_manager.chain.models import EpochInfo, SubmitResult, TxInfo
from flip_manager.errors.chain_errors import NodeError, NodeRPCError

if TYPE_CHECKING:
    from flip_manager.config.settings import NodeConfig

logger = logging.getLogger(__name__)


class NodeService:
    """Async JSON-RPC client for the blockchain node.

    Usage::

        node = NodeService(config.node)
        await node.connect()
        try:
            tx = await node.get_transaction("0xabc...")
        finally:
            await node.close()
    """

    def __init__(self, config: NodeConfig) -> None:
        """Initialize the node service.

        Args:
            config: Node configuration (url, api_key, timeout).
        """
        self._config = config
        self._client: httpx.AsyncClient | None = None
        self._ids = itertools.count(1)

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self._config.url.rstrip("/"),
            headers={"Content-Type": "application/json"},
            timeout=self._config.timeout,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_connected(self) -> bool:
        """Check if the HTTP client is active."""
        return self._client is not None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_transaction(self, tx_hash: str) -> TxInfo | None:
        """Look up a transaction by hash.

        Args:
            tx_hash: Transaction hash (``0x``-prefixed hex).

        Returns:
            TxInfo, or None if the node does not know the transaction.

        Raises:
            NodeError: If the node could not be reached.
        """
        try:
            result = await self._call("bcn_transaction", [tx_hash])
        except NodeRPCError as exc:
            logger.debug("Transaction %s not found: %s", tx_hash, exc.message)
            return None
        if not result:
            return None
        return TxInfo.from_dict(result)

    async def submit_flip(
        self,
        hex_body: str,
        public_hex: str,
        private_hex: str,
        pair_id: int,
    ) -> SubmitResult:
        """Submit an encoded flip.

        Args:
            hex_body: Full flip payload.
            public_hex: Public part (first half of the images).
            private_hex: Private part (remaining images and orders).
            pair_id: Keyword pair index.

        Returns:
            SubmitResult with the pending tx hash and the flip content hash.

        Raises:
            NodeError: On transport failure or an empty result.
            NodeRPCError: If the node rejects the flip.
        """
        result = await self._call(
            "flip_submit",
            [
                {
                    "hex": hex_body,
                    "publicHex": public_hex,
                    "privateHex": private_hex,
                    "pairId": pair_id,
                }
            ],
        )
        if not result or not result.get("txHash"):
            msg = "Node flip_submit returned no transaction"
            raise NodeError(msg)
        return SubmitResult.from_dict(result)

    async def delete_flip(self, flip_hash: str) -> str:
        """Request deletion of a published flip.

        Args:
            flip_hash: Content hash returned by ``submit_flip``.

        Returns:
            Hash of the pending delete transaction.

        Raises:
            NodeError: On transport failure or an empty result.
            NodeRPCError: If the node rejects the request.
        """
        result = await self._call("flip_delete", [flip_hash])
        if not result:
            msg = "Node flip_delete returned no transaction"
            raise NodeError(msg)
        return str(result)

    async def get_epoch(self) -> EpochInfo:
        """Get the current epoch and ceremony period."""
        result = await self._call("dna_epoch", [])
        return EpochInfo.from_dict(result or {})

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _call(self, method: str, params: list[Any]) -> Any:
        """Perform a JSON-RPC call and return its ``result`` member."""
        client = self._ensure_connected()
        payload: dict[str, Any] = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        if self._config.api_key:
            payload["key"] = self._config.api_key

        try:
            response = await client.post("/", json=payload)
        except httpx.HTTPError as exc:
            raise NodeError(f"Node {method} failed: {exc}") from exc

        if response.status_code != 200:
            raise NodeError(
                f"Node {method} failed ({response.status_code}): {response.text}",
                status_code=502,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise NodeError(f"Node {method} returned invalid JSON") from exc

        error = body.get("error")
        if error:
            raise NodeRPCError(
                error.get("message", f"Node {method} failed"),
                rpc_code=error.get("code", 0),
            )
        return body.get("result")

    def _ensure_connected(self) -> httpx.AsyncClient:
        """Return the HTTP client, raising if not connected."""
        if self._client is None:
            msg = "Node service not connected. Call connect() first."
            raise NodeError(msg, status_code=500)
        return self._client
