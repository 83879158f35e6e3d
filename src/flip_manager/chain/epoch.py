"""Epoch observers — report the current epoch and whether validation is done."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from flip_manager.chain.models import EpochPeriod

if TYPE_CHECKING:
    from flip_manager.chain.service import NodeService


@dataclass(frozen=True)
class EpochState:
    """Epoch identifier plus the "validation completed" signal."""

    epoch: int
    validation_completed: bool = False


class EpochObserver(Protocol):
    """Source of epoch transitions consumed by the lifecycle engine."""

    async def current_epoch(self) -> EpochState | None: ...


class NodeEpochObserver:
    """Epoch observer backed by the node's ``dna_epoch`` method.

    Validation counts as completed once the node reports the
    ``AfterLongSession`` period for the current epoch.
    """

    def __init__(self, node: NodeService) -> None:
        self._node = node

    async def current_epoch(self) -> EpochState | None:
        info = await self._node.get_epoch()
        return EpochState(
            epoch=info.epoch,
            validation_completed=info.current_period == EpochPeriod.AFTER_LONG_SESSION,
        )


class StaticEpochObserver:
    """Epoch observer with a settable state (offline mode and tests)."""

    def __init__(self, state: EpochState | None = None) -> None:
        self.state = state

    async def current_epoch(self) -> EpochState | None:  # noqa: ASYNC910
        return self.state
