"""SQL flip store — flips and archival markers in a SQLAlchemy database."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import delete, select

from flip_manager.engine.models import ArchivedEpoch, FlipRow

if TYPE_CHECKING:
    from collections.abc import Sequence

    from flip_manager.datastore.client import Datastore
    from flip_manager.engine.records import FlipRecord

logger = logging.getLogger(__name__)


class SQLFlipStore:
    """Data access layer for persisted flips.

    Every write commits in its own transaction; ``put_all`` writes the whole
    batch in a single transaction.
    """

    def __init__(self, datastore: Datastore) -> None:
        self._ds = datastore

    async def list_all(self) -> list[FlipRecord]:
        async with self._ds.session() as session:
            stmt = select(FlipRow).order_by(FlipRow.created_at, FlipRow.id)
            result = await session.execute(stmt)
            return [row.to_record() for row in result.scalars().all()]

    async def get(self, flip_id: str) -> FlipRecord | None:
        async with self._ds.session() as session:
            row = await session.get(FlipRow, flip_id)
            return row.to_record() if row is not None else None

    async def put_all(self, records: Sequence[FlipRecord]) -> None:
        if not records:
            return
        async with self._ds.session() as session:
            for record in records:
                await session.merge(FlipRow.from_record(record))
            await session.commit()
        logger.debug("Stored %d flips", len(records))

    async def delete(self, flip_id: str) -> None:
        async with self._ds.session() as session:
            await session.execute(delete(FlipRow).where(FlipRow.id == flip_id))
            await session.commit()

    async def is_archived(self, epoch: int) -> bool:
        async with self._ds.session() as session:
            return await session.get(ArchivedEpoch, epoch) is not None

    async def mark_archived(self, epoch: int) -> None:
        async with self._ds.session() as session:
            await session.merge(ArchivedEpoch(epoch=epoch))
            await session.commit()
