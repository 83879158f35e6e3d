"""Tests for the flip state machine."""

from __future__ import annotations

import pytest

from flip_manager.chain.models import HASH_IN_MEMPOOL, TxInfo
from flip_manager.engine.records import FlipRecord, FlipType
from flip_manager.engine.state import can_transition, ensure_transition, resolve_flip_type
from flip_manager.errors.definitions import ErrInvalidTransition
from flip_manager.errors.flip_errors import FlipError

MINED = TxInfo(hash="0x1", block_hash="0xblock1")
MEMPOOL = TxInfo(hash="0x1", block_hash=HASH_IN_MEMPOOL)


class TestTransitions:
    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (FlipType.DRAFT, FlipType.PUBLISHING),
            (FlipType.DRAFT, FlipType.DRAFT),
            (FlipType.PUBLISHING, FlipType.PUBLISHED),
            (FlipType.PUBLISHING, FlipType.DRAFT),
            (FlipType.PUBLISHING, FlipType.PUBLISHING),
            (FlipType.PUBLISHED, FlipType.DELETING),
            (FlipType.DELETING, FlipType.PUBLISHED),
            (FlipType.DELETING, FlipType.DRAFT),
            (FlipType.DELETING, FlipType.DELETING),
        ],
    )
    def test_allowed(self, current, target):
        assert can_transition(current, target) is True

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (FlipType.DRAFT, FlipType.PUBLISHED),
            (FlipType.DRAFT, FlipType.DELETING),
            (FlipType.PUBLISHED, FlipType.DRAFT),
            (FlipType.PUBLISHED, FlipType.PUBLISHED),
            (FlipType.ARCHIVED, FlipType.DRAFT),
            (FlipType.ARCHIVED, FlipType.ARCHIVED),
        ],
    )
    def test_rejected(self, current, target):
        assert can_transition(current, target) is False

    def test_everything_but_archived_can_archive(self):
        for flip_type in FlipType:
            expected = flip_type != FlipType.ARCHIVED
            assert can_transition(flip_type, FlipType.ARCHIVED) is expected

    def test_ensure_raises(self):
        with pytest.raises(FlipError) as exc_info:
            ensure_transition(FlipType.ARCHIVED, FlipType.DRAFT)
        assert exc_info.value is ErrInvalidTransition
        assert exc_info.value.status_code == 409


class TestResolveFlipType:
    @pytest.mark.parametrize(
        ("flip_type", "tx", "expected"),
        [
            (FlipType.PUBLISHING, None, FlipType.DRAFT),
            (FlipType.PUBLISHING, MEMPOOL, FlipType.PUBLISHING),
            (FlipType.PUBLISHING, MINED, FlipType.PUBLISHED),
            (FlipType.DELETING, None, FlipType.PUBLISHED),
            (FlipType.DELETING, MEMPOOL, FlipType.DELETING),
            (FlipType.DELETING, MINED, FlipType.DRAFT),
        ],
    )
    def test_policy(self, flip_type, tx, expected):
        assert resolve_flip_type(FlipRecord(id="a", type=flip_type), tx) == expected

    @pytest.mark.parametrize("flip_type", [FlipType.DRAFT, FlipType.PUBLISHED, FlipType.ARCHIVED])
    def test_non_pending_unchanged(self, flip_type):
        assert resolve_flip_type(FlipRecord(id="a", type=flip_type), MINED) == flip_type
