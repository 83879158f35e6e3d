"""Chain integration — node JSON-RPC client and epoch observers."""

from flip_manager.chain.epoch import EpochObserver, EpochState, NodeEpochObserver
from flip_manager.chain.service import NodeService

__all__ = ["EpochObserver", "EpochState", "NodeEpochObserver", "NodeService"]
