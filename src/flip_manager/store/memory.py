"""In-memory flip store (offline mode and tests)."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from flip_manager.engine.records import FlipRecord


class MemoryFlipStore:
    """Dict-backed flip store. Contents are lost when the process exits."""

    def __init__(self, records: Sequence[FlipRecord] = ()) -> None:
        self._records: dict[str, FlipRecord] = {r.id: r for r in records}
        self._archived: set[int] = set()

    async def list_all(self) -> list[FlipRecord]:  # noqa: ASYNC910
        return list(self._records.values())

    async def get(self, flip_id: str) -> FlipRecord | None:  # noqa: ASYNC910
        return self._records.get(flip_id)

    async def put_all(self, records: Sequence[FlipRecord]) -> None:  # noqa: ASYNC910
        for record in records:
            self._records[record.id] = record

    async def delete(self, flip_id: str) -> None:  # noqa: ASYNC910
        self._records.pop(flip_id, None)

    async def is_archived(self, epoch: int) -> bool:  # noqa: ASYNC910
        return epoch in self._archived

    async def mark_archived(self, epoch: int) -> None:  # noqa: ASYNC910
        self._archived.add(epoch)
