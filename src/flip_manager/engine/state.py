"""Flip state machine — allowed transitions and transaction resolution."""

from __future__ import annotations

from typing import TYPE_CHECKING

from flip_manager.engine.records import FlipType
from flip_manager.errors.definitions import ErrInvalidTransition

if TYPE_CHECKING:
    from flip_manager.chain.models import TxInfo
    from flip_manager.engine.records import FlipRecord

# Allowed type transitions; every state can be archived at an epoch boundary
_TRANSITIONS: dict[FlipType, frozenset[FlipType]] = {
    FlipType.DRAFT: frozenset({FlipType.DRAFT, FlipType.PUBLISHING, FlipType.ARCHIVED}),
    FlipType.PUBLISHING: frozenset({FlipType.DRAFT, FlipType.PUBLISHED, FlipType.ARCHIVED}),
    FlipType.PUBLISHED: frozenset({FlipType.DELETING, FlipType.ARCHIVED}),
    FlipType.DELETING: frozenset({FlipType.PUBLISHED, FlipType.DRAFT, FlipType.ARCHIVED}),
    FlipType.ARCHIVED: frozenset(),
}


def can_transition(current: FlipType, target: FlipType) -> bool:
    """Whether *current* may move to *target*.

    Staying in a pending state is always allowed (the reconciliation loop
    leaves unconfirmed records where they are).
    """
    if current == target and current.is_pending:
        return True
    return target in _TRANSITIONS[current]


def ensure_transition(current: FlipType, target: FlipType) -> None:
    """Raise ``ErrInvalidTransition`` unless *current* may move to *target*."""
    if not can_transition(current, target):
        raise ErrInvalidTransition


def resolve_flip_type(flip: FlipRecord, tx: TxInfo | None) -> FlipType:
    """Resolve the next type of a pending flip from its transaction status.

    ==========  ===========  ==============  ===========
    type        tx absent    tx in mempool   tx mined
    ==========  ===========  ==============  ===========
    publishing  draft        publishing      published
    deleting    published    deleting        draft
    ==========  ===========  ==============  ===========

    Non-pending flips are returned unchanged.
    """
    if flip.type == FlipType.PUBLISHING:
        if tx is None:
            return FlipType.DRAFT
        return FlipType.PUBLISHED if tx.is_mined else flip.type
    if flip.type == FlipType.DELETING:
        if tx is None:
            return FlipType.PUBLISHED
        # Deletion confirmed: the flip goes back to being an editable draft
        return FlipType.DRAFT if tx.is_mined else flip.type
    return flip.type
