"""Shared test fixtures for py-flips test suite."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from flip_manager.chain.models import HASH_IN_MEMPOOL, SubmitResult, TxInfo
from flip_manager.config.settings import DatabaseEngine, StoreEngine
from flip_manager.engine.records import FlipRecord, FlipType, Hint, SubmitFlipParams
from flip_manager.errors.chain_errors import NodeError

PICS = (b"pic-0", b"pic-1", b"pic-2", b"pic-3")
COMPRESSED = (b"c-0", b"c-1", b"c-2", b"c-3")


class FakeNode:
    """In-process stand-in for the node (lookup + submit/delete API).

    ``txs`` maps tx hash to the ``TxInfo`` to report; unknown hashes are
    absent.  Hashes in ``failing`` raise ``NodeError``.  Setting ``gate``
    makes every call wait for it.
    """

    def __init__(self) -> None:
        self.txs: dict[str, TxInfo] = {}
        self.failing: set[str] = set()
        self.submit_result = SubmitResult(tx_hash="0xabc", hash="0xflip")
        self.delete_result = "0xdel"
        self.submit_error: Exception | None = None
        self.delete_error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.submit_calls: list[tuple[str, str, str, int]] = []
        self.delete_calls: list[str] = []
        self.lookup_calls: list[str] = []

    async def _wait(self) -> None:
        if self.gate is not None:
            await self.gate.wait()

    async def get_transaction(self, tx_hash: str) -> TxInfo | None:
        self.lookup_calls.append(tx_hash)
        await self._wait()
        if tx_hash in self.failing:
            raise NodeError("connection refused")
        return self.txs.get(tx_hash)

    async def submit_flip(
        self, hex_body: str, public_hex: str, private_hex: str, pair_id: int
    ) -> SubmitResult:
        self.submit_calls.append((hex_body, public_hex, private_hex, pair_id))
        await self._wait()
        if self.submit_error is not None:
            raise self.submit_error
        return self.submit_result

    async def delete_flip(self, flip_hash: str) -> str:
        self.delete_calls.append(flip_hash)
        await self._wait()
        if self.delete_error is not None:
            raise self.delete_error
        return self.delete_result

    def mine(self, tx_hash: str, block_hash: str = "0xblock1") -> None:
        self.txs[tx_hash] = TxInfo(hash=tx_hash, block_hash=block_hash)

    def mempool(self, tx_hash: str) -> None:
        self.txs[tx_hash] = TxInfo(hash=tx_hash, block_hash=HASH_IN_MEMPOOL)


class FakeClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


def _make_params(flip_id: str = "1", **overrides) -> SubmitFlipParams:
    """Submission params for a valid, shuffled flip."""
    defaults = {
        "id": flip_id,
        "pics": PICS,
        "compressed_pics": COMPRESSED,
        "order": (2, 0, 3, 1),
        "hint": Hint(id=3, words=("apple", "tree")),
    }
    defaults.update(overrides)
    return SubmitFlipParams(**defaults)


def _make_record(flip_id: str = "1", **overrides) -> FlipRecord:
    defaults = {
        "id": flip_id,
        "type": FlipType.DRAFT,
        "pics": PICS,
        "compressed_pics": COMPRESSED,
        "order": (2, 0, 3, 1),
        "hint": Hint(id=3, words=("apple", "tree")),
        "created_at": datetime(2024, 1, 1, tzinfo=UTC),
        "modified_at": datetime(2024, 1, 1, tzinfo=UTC),
    }
    defaults.update(overrides)
    return FlipRecord(**defaults)


@pytest.fixture
def app_config():
    """Provide a test AppConfig with safe defaults."""
    from flip_manager.config.settings import AppConfig, DatabaseConfig, TaskConfig

    return AppConfig(
        debug=True,
        db=DatabaseConfig(
            engine=DatabaseEngine.SQLITE,
            store=StoreEngine.MEMORY,
            dsn="sqlite+aiosqlite:///:memory:",
        ),
        task=TaskConfig(enabled=False),
    )


@pytest.fixture
def flip_config():
    from flip_manager.config.settings import FlipConfig

    return FlipConfig(max_size=1024, poll_interval=0.05, epoch_check_interval=0.05)


@pytest.fixture
def node() -> FakeNode:
    return FakeNode()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store():
    from flip_manager.store.memory import MemoryFlipStore

    return MemoryFlipStore()


@pytest.fixture
def make_engine(store, node, flip_config, clock):
    """Factory for a lifecycle engine wired to the fake node and memory store."""
    from flip_manager.engine.lifecycle import FlipLifecycleEngine

    def _make(**overrides) -> FlipLifecycleEngine:
        kwargs = {
            "store": store,
            "lookup": node,
            "api": node,
            "config": flip_config,
            "clock": clock,
        }
        kwargs.update(overrides)
        return FlipLifecycleEngine(**kwargs)

    return _make


@pytest.fixture
async def engine(make_engine):
    """A started lifecycle engine with no timers."""
    eng = make_engine()
    await eng.start()
    yield eng
    await eng.stop()


@pytest.fixture
async def datastore():
    """An open in-memory SQLite datastore with the flip tables created."""
    from flip_manager.config.settings import DatabaseConfig
    from flip_manager.datastore.client import Datastore
    from flip_manager.engine.models import Base

    ds = Datastore(DatabaseConfig(dsn="sqlite+aiosqlite:///:memory:"))
    await ds.open(base=Base)
    yield ds
    await ds.close()


@pytest.fixture
def make_params():
    """Factory for ``SubmitFlipParams`` of a valid, shuffled flip."""
    return _make_params


@pytest.fixture
def make_record():
    """Factory for ``FlipRecord`` test data (a draft by default)."""
    return _make_record
