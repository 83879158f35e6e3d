"""Collaborator protocols the lifecycle engine depends on.

:class:`~flip_manager.chain.service.NodeService` satisfies both; tests
substitute fakes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from flip_manager.chain.models import SubmitResult, TxInfo


class TransactionLookup(Protocol):
    """Resolves a transaction hash to its chain status.

    Returns None when the transaction is unknown; raises on transport failure.
    """

    async def get_transaction(self, tx_hash: str) -> TxInfo | None: ...


class FlipAPI(Protocol):
    """Submits and deletes flips on chain."""

    async def submit_flip(
        self, hex_body: str, public_hex: str, private_hex: str, pair_id: int
    ) -> SubmitResult: ...

    async def delete_flip(self, flip_hash: str) -> str: ...
