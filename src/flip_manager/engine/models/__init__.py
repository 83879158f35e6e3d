"""Flip store data models (SQLAlchemy ORM).

Import :data:`ALL_MODELS` for migration and table creation.
"""

from flip_manager.engine.models.base import Base, TimestampMixin
from flip_manager.engine.models.flip import ArchivedEpoch, FlipRow

ALL_MODELS: list[type[Base]] = [
    FlipRow,
    ArchivedEpoch,
]

__all__ = [
    "ALL_MODELS",
    "ArchivedEpoch",
    "Base",
    "FlipRow",
    "TimestampMixin",
]
