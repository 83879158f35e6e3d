"""Flip persistence models — flip rows and the epoch archival marker."""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from flip_manager.engine.models.base import Base, TimestampMixin
from flip_manager.engine.records import FlipRecord


class FlipRow(Base, TimestampMixin):
    """A persisted flip record.

    The full record is kept in ``payload`` (the :meth:`FlipRecord.to_dict`
    form); ``type`` is duplicated into its own column for filtering.
    """

    __tablename__ = "flips"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, comment="Flip ID")
    type: Mapped[str] = mapped_column(
        String(16), nullable=False, index=True,
        comment="draft | publishing | published | deleting | archived",
    )
    payload: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=dict, comment="Serialized FlipRecord"
    )

    @classmethod
    def from_record(cls, record: FlipRecord) -> FlipRow:
        return cls(id=record.id, type=record.type.value, payload=record.to_dict())

    def to_record(self) -> FlipRecord:
        return FlipRecord.from_dict(self.payload)

    def __repr__(self) -> str:
        return f"<FlipRow id={self.id} type={self.type}>"


class ArchivedEpoch(Base, TimestampMixin):
    """Marker recording that flips were archived for an epoch."""

    __tablename__ = "archived_epochs"

    epoch: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)

    def __repr__(self) -> str:
        return f"<ArchivedEpoch epoch={self.epoch}>"
