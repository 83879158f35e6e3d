"""Node data models — transaction info, submission result, epoch info.

Data classes representing node JSON-RPC response objects.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

# Block hash reported for a transaction that is known but still in the mempool
HASH_IN_MEMPOOL = "0x" + "0" * 64


# ---------------------------------------------------------------------------
# Transaction lookup
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TxInfo:
    """Transaction as reported by ``bcn_transaction``.

    Attributes:
        hash: Transaction hash (hex, ``0x``-prefixed).
        block_hash: Hash of the including block, or ``HASH_IN_MEMPOOL``.
        type: Node transaction type (e.g. ``submitFlip``).
        timestamp: Unix timestamp reported by the node.
    """

    hash: str
    block_hash: str = HASH_IN_MEMPOOL
    type: str = ""
    timestamp: int = 0

    @property
    def in_mempool(self) -> bool:
        """Whether the transaction is known but not yet in a block."""
        return self.block_hash == HASH_IN_MEMPOOL

    @property
    def is_mined(self) -> bool:
        """Whether the transaction has been included in a block."""
        return not self.in_mempool

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TxInfo:
        """Create TxInfo from a node JSON result dict."""
        return cls(
            hash=data.get("hash", ""),
            block_hash=data.get("blockHash") or HASH_IN_MEMPOOL,
            type=data.get("type", ""),
            timestamp=data.get("timestamp", 0),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dict matching the node JSON format."""
        return {
            "hash": self.hash,
            "blockHash": self.block_hash,
            "type": self.type,
            "timestamp": self.timestamp,
        }


# ---------------------------------------------------------------------------
# Flip submission
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SubmitResult:
    """Result of ``flip_submit``: the pending tx and the flip content hash."""

    tx_hash: str
    hash: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SubmitResult:
        return cls(tx_hash=data.get("txHash", ""), hash=data.get("hash", ""))


# ---------------------------------------------------------------------------
# Epoch
# ---------------------------------------------------------------------------


class EpochPeriod(enum.StrEnum):
    """Ceremony periods reported by ``dna_epoch``."""

    NONE = "None"
    FLIP_LOTTERY = "FlipLottery"
    SHORT_SESSION = "ShortSession"
    LONG_SESSION = "LongSession"
    AFTER_LONG_SESSION = "AfterLongSession"

    @classmethod
    def from_string(cls, value: str) -> EpochPeriod:
        """Parse a period string, returning NONE for unrecognised values."""
        try:
            return cls(value)
        except ValueError:
            return cls.NONE


@dataclass(frozen=True)
class EpochInfo:
    """Current epoch as reported by ``dna_epoch``."""

    epoch: int
    current_period: EpochPeriod = EpochPeriod.NONE
    next_validation: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EpochInfo:
        return cls(
            epoch=int(data.get("epoch", 0)),
            current_period=EpochPeriod.from_string(data.get("currentPeriod", "")),
            next_validation=data.get("nextValidation", ""),
        )
