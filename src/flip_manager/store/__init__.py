"""Flip stores — the durable side of the lifecycle engine."""

from flip_manager.store.base import FlipStore
from flip_manager.store.memory import MemoryFlipStore
from flip_manager.store.sql import SQLFlipStore

__all__ = ["FlipStore", "MemoryFlipStore", "SQLFlipStore"]
