"""Flip store protocol — durable keyed storage consumed by the engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Sequence

    from flip_manager.engine.records import FlipRecord


class FlipStore(Protocol):
    """Protocol for flip store implementations."""

    async def list_all(self) -> list[FlipRecord]: ...
    async def get(self, flip_id: str) -> FlipRecord | None: ...
    async def put_all(self, records: Sequence[FlipRecord]) -> None: ...
    async def delete(self, flip_id: str) -> None: ...
    async def is_archived(self, epoch: int) -> bool: ...
    async def mark_archived(self, epoch: int) -> None: ...
