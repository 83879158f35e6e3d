"""Flip lifecycle engine — drafts, submission, deletion, archival, reconciliation.

Owns the in-memory flip collection and keeps it in step with the flip store
and the chain:

1. Drafts — upsert locally, no network
2. Submit / Delete — validate, call the node, move to a pending type
3. Reconcile — poll pending transactions, resolve to the next type
4. Archive — at the end of an epoch's validation, archive every flip

The collection is an immutable tuple replaced as a whole under a single
``asyncio.Lock``; the store is written before the new tuple is published.
Network calls are made outside the lock.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import nullcontext
from dataclasses import replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from flip_manager.engine.encoding import encode_flip
from flip_manager.engine.records import (
    DEFAULT_ORDER,
    FLIP_LENGTH,
    FlipRecord,
    FlipType,
    draft_changes,
)
from flip_manager.engine.state import can_transition, ensure_transition, resolve_flip_type
from flip_manager.errors.chain_errors import NodeError
from flip_manager.errors.definitions import (
    ErrDuplicateSubmission,
    ErrFlipNotDraft,
    ErrFlipNotFound,
    ErrInvalidHint,
    ErrInvalidOrder,
    ErrMissingHint,
    ErrOperationInProgress,
    ErrPayloadTooLarge,
    ErrUnshuffledOrder,
)
from flip_manager.taskmanager.manager import CronJob

if TYPE_CHECKING:
    from collections.abc import Callable, Collection, Iterable
    from contextlib import AbstractContextManager

    from flip_manager.chain.epoch import EpochObserver
    from flip_manager.chain.models import TxInfo
    from flip_manager.chain.protocols import FlipAPI, TransactionLookup
    from flip_manager.config.settings import FlipConfig
    from flip_manager.engine.encoding import FlipEncoder
    from flip_manager.engine.records import SubmitFlipParams
    from flip_manager.metrics.collector import EngineMetrics
    from flip_manager.store.base import FlipStore
    from flip_manager.taskmanager.manager import TaskManager

logger = logging.getLogger(__name__)

RECONCILE_JOB = "flip_reconciliation"
EPOCH_JOB = "epoch_watch"

# Marks a lookup that failed; the flip keeps its pending type until next tick
_LOOKUP_FAILED = object()


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class FlipLifecycleEngine:
    """State machine and reconciliation loop for a collection of flips.

    Usage::

        engine = FlipLifecycleEngine(
            store=store, lookup=node, api=node, config=config.flip,
            epoch_observer=NodeEpochObserver(node), task_manager=tm,
        )
        await engine.start()
        draft = await engine.save_draft(FlipRecord(id="", pics=...))
        await engine.submit_flip(SubmitFlipParams(...))
    """

    def __init__(
        self,
        *,
        store: FlipStore,
        lookup: TransactionLookup,
        api: FlipAPI,
        config: FlipConfig,
        epoch_observer: EpochObserver | None = None,
        task_manager: TaskManager | None = None,
        encoder: FlipEncoder = encode_flip,
        metrics: EngineMetrics | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._lookup = lookup
        self._api = api
        self._config = config
        self._epoch_observer = epoch_observer
        self._task_manager = task_manager
        self._encoder = encoder
        self._metrics = metrics
        self._clock = clock

        self._flips: tuple[FlipRecord, ...] = ()
        self._lock = asyncio.Lock()
        # Flip ids with a submit or delete call awaiting the node
        self._in_flight: set[str] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Load persisted flips, arm the timers and run one epoch check."""
        records = await self._store.list_all()
        async with self._lock:
            self._commit(records)
        logger.info(
            "Loaded %d flips (%d pending)",
            len(self._flips),
            sum(1 for f in self._flips if f.is_pending),
        )

        if self._epoch_observer is None:
            return
        if self._task_manager is not None:
            self._task_manager.register(
                EPOCH_JOB,
                CronJob(handler=self._watch_epoch, period=self._config.epoch_check_interval),
            )
        try:
            await self.check_epoch()
        except Exception:
            # The epoch watcher retries on its next tick
            logger.warning("Initial epoch check failed", exc_info=True)

    async def stop(self) -> None:  # noqa: ASYNC910
        """Stop the reconciliation and epoch timers."""
        if self._task_manager is not None:
            self._task_manager.unregister(RECONCILE_JOB)
            self._task_manager.unregister(EPOCH_JOB)

    @property
    def is_polling(self) -> bool:
        """Whether the reconciliation timer is armed."""
        return self._task_manager is not None and self._task_manager.is_registered(
            RECONCILE_JOB
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_flips(self) -> tuple[FlipRecord, ...]:
        """Current snapshot of every flip."""
        return self._flips

    async def get_draft(self, flip_id: str) -> FlipRecord | None:
        """Find a flip in memory, falling back to the store."""
        flip = self._find(flip_id)
        if flip is not None:
            return flip
        return await self._store.get(flip_id)

    # ------------------------------------------------------------------
    # Drafts
    # ------------------------------------------------------------------

    async def save_draft(
        self, draft: FlipRecord, fields: Collection[str] | None = None
    ) -> FlipRecord:
        """Insert or update a draft.

        A draft without an id gets a fresh one.  Updating merges the content
        fields named in *fields* (default: those of *draft* that differ from
        an empty record) into the existing draft and keeps its
        ``created_at``; both timestamps are set on first insert.

        Raises:
            FlipError: ``ErrFlipNotDraft`` if a non-draft flip has this id.
        """
        if not draft.id:
            draft = replace(draft, id=uuid.uuid4().hex)

        async with self._lock:
            now = self._clock()
            existing = self._find(draft.id)
            if existing is None:
                record = replace(draft, type=FlipType.DRAFT, created_at=now, modified_at=now)
                flips = (*self._flips, record)
            else:
                if existing.type != FlipType.DRAFT:
                    raise ErrFlipNotDraft
                changes = {
                    name: getattr(draft, name) for name in draft_changes(draft, fields)
                }
                record = replace(
                    existing,
                    **changes,
                    created_at=existing.created_at or now,
                    modified_at=now,
                )
                flips = self._with_record(record)

            await self._store.put_all([record])
            self._commit(flips)
        return record

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit_flip(self, params: SubmitFlipParams) -> FlipRecord:
        """Validate and submit a flip, moving it to ``publishing``.

        The stored record takes ``pics``, ``compressed_pics``, ``order`` and
        ``hint`` from *params*, not from the in-memory copy, so edits made
        while the node call is outstanding are not lost.

        Raises:
            FlipError: On any validation failure (nothing is mutated).
            NodeError: If the node call fails (nothing is mutated).
        """
        self._validate_submission(params)
        encoded = self._encoder(params.compressed_pics, params.order)
        if encoded.size > 2 * self._config.max_size:
            raise ErrPayloadTooLarge

        existing = self._find(params.id)
        if existing is not None and existing.type != FlipType.DRAFT:
            raise ErrFlipNotDraft
        if params.id in self._in_flight:
            raise ErrOperationInProgress

        pair_id = max(0, params.hint.id) if params.hint is not None else 0

        self._in_flight.add(params.id)
        try:
            with self._track("submit"):
                result = await self._api.submit_flip(
                    encoded.hex, encoded.public_hex, encoded.private_hex, pair_id
                )
            if not result.tx_hash:
                msg = f"Node accepted flip {params.id} without a transaction hash"
                raise NodeError(msg)

            async with self._lock:
                now = self._clock()
                current = self._find(params.id)
                if current is not None and not can_transition(current.type, FlipType.PUBLISHING):
                    logger.warning(
                        "Flip %s became %s while submitting; tracking tx %s anyway",
                        params.id,
                        current.type,
                        result.tx_hash,
                    )
                base = current or FlipRecord(id=params.id, created_at=now)
                record = replace(
                    base,
                    type=FlipType.PUBLISHING,
                    pics=tuple(params.pics),
                    compressed_pics=tuple(params.compressed_pics),
                    order=tuple(params.order),
                    hint=params.hint,
                    tx_hash=result.tx_hash,
                    hash=result.hash,
                    mined=False,
                    modified_at=now,
                )
                await self._store.put_all([record])
                self._commit(self._with_record(record))
        finally:
            self._in_flight.discard(params.id)

        logger.info("Flip %s submitted in tx %s", record.id, record.tx_hash)
        return record

    def _validate_submission(self, params: SubmitFlipParams) -> None:
        compressed = tuple(params.compressed_pics)
        if any(
            f.type == FlipType.PUBLISHED and f.has_content(compressed) for f in self._flips
        ):
            raise ErrDuplicateSubmission
        if tuple(params.order) == DEFAULT_ORDER:
            raise ErrUnshuffledOrder
        if sorted(params.order) != list(range(FLIP_LENGTH)):
            raise ErrInvalidOrder
        if params.hint is None:
            raise ErrMissingHint
        if params.hint.id < 0:
            raise ErrInvalidHint

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    async def delete_flip(self, flip_id: str) -> FlipRecord | None:
        """Delete a flip.

        A published flip is deleted on chain and moves to ``deleting``; the
        new record is returned.  Any other flip has nothing on chain and is
        removed from memory and the store; ``None`` is returned.

        Raises:
            FlipError: ``ErrFlipNotFound`` for an unknown id.
            NodeError: If the node call fails (nothing is mutated).
        """
        flip = await self.get_draft(flip_id)
        if flip is None:
            raise ErrFlipNotFound
        if flip_id in self._in_flight:
            raise ErrOperationInProgress

        if flip.type != FlipType.PUBLISHED:
            async with self._lock:
                # Reconciliation may have published it while we waited
                flip = self._find(flip_id) or flip
                removed = flip.type != FlipType.PUBLISHED
                if removed:
                    await self._store.delete(flip_id)
                    self._commit(f for f in self._flips if f.id != flip_id)
            if removed:
                logger.info("Flip %s (%s) removed locally", flip_id, flip.type)
                return None
            if flip_id in self._in_flight:
                raise ErrOperationInProgress

        self._in_flight.add(flip_id)
        try:
            with self._track("delete"):
                delete_tx_hash = await self._api.delete_flip(flip.hash or "")
            if not delete_tx_hash:
                msg = f"Node accepted deletion of flip {flip_id} without a transaction hash"
                raise NodeError(msg)

            async with self._lock:
                current = self._find(flip_id) or flip
                ensure_transition(current.type, FlipType.DELETING)
                record = replace(
                    current,
                    type=FlipType.DELETING,
                    delete_tx_hash=delete_tx_hash,
                    modified_at=self._clock(),
                )
                await self._store.put_all([record])
                self._commit(self._with_record(record))
        finally:
            self._in_flight.discard(flip_id)

        logger.info("Flip %s deletion sent in tx %s", flip_id, delete_tx_hash)
        return record

    # ------------------------------------------------------------------
    # Archival
    # ------------------------------------------------------------------

    async def archive_flips(self, epoch: int) -> bool:
        """Archive every flip for *epoch*.

        Returns False without touching anything when *epoch* was already
        archived (including by a previous process).
        """
        async with self._lock:
            if await self._store.is_archived(epoch):
                logger.debug("Flips already archived for epoch %d", epoch)
                return False

            now = self._clock()
            archived = tuple(
                f if f.type == FlipType.ARCHIVED else replace(
                    f, type=FlipType.ARCHIVED, modified_at=now
                )
                for f in self._flips
            )
            await self._store.put_all(archived)
            await self._store.mark_archived(epoch)
            self._commit(archived)

        logger.info("Archived %d flips for epoch %d", len(archived), epoch)
        return True

    async def check_epoch(self) -> bool:
        """Archive flips if the observer reports a validated, unarchived epoch."""
        if self._epoch_observer is None:
            return False
        state = await self._epoch_observer.current_epoch()
        if state is None or not state.validation_completed:
            return False
        return await self.archive_flips(state.epoch)

    async def _watch_epoch(self) -> None:
        await self.check_epoch()

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    async def reconcile(self) -> int:
        """Run one reconciliation pass over every pending flip.

        Lookups run concurrently.  Results are applied only to flips that are
        still waiting on the transaction that was looked up; a failed lookup
        leaves its flip untouched.  Changed flips are stored in one batch.

        Returns:
            Number of flips whose type changed.
        """
        pending = [f for f in self._flips if f.is_pending]
        if not pending:
            return 0

        txs = await asyncio.gather(*(self._lookup_tx(f) for f in pending))
        resolved: dict[tuple[str, FlipType, str | None], TxInfo | None] = {
            (f.id, f.type, f.pending_tx_hash): tx
            for f, tx in zip(pending, txs, strict=True)
            if tx is not _LOOKUP_FAILED
        }

        async with self._lock:
            now = self._clock()
            changed: list[FlipRecord] = []
            transitions: list[tuple[FlipRecord, FlipType]] = []
            next_flips: list[FlipRecord] = []
            for flip in self._flips:
                key = (flip.id, flip.type, flip.pending_tx_hash)
                if not flip.is_pending or key not in resolved:
                    next_flips.append(flip)
                    continue

                next_type = resolve_flip_type(flip, resolved[key])
                ensure_transition(flip.type, next_type)
                mined = next_type == FlipType.PUBLISHED
                if next_type == flip.type and mined == flip.mined:
                    next_flips.append(flip)
                    continue

                updated = replace(flip, type=next_type, mined=mined, modified_at=now)
                next_flips.append(updated)
                changed.append(updated)
                if next_type != flip.type:
                    transitions.append((flip, next_type))

            if changed:
                await self._store.put_all(changed)
                self._commit(next_flips)

        for flip, next_type in transitions:
            logger.info("Flip %s: %s -> %s", flip.id, flip.type, next_type)
            if self._metrics is not None:
                self._metrics.record_transition(flip.type, next_type)
        return len(transitions)

    async def _lookup_tx(self, flip: FlipRecord) -> TxInfo | None | object:
        tx_hash = flip.pending_tx_hash
        if not tx_hash:
            return None
        try:
            with self._track("lookup"):
                return await self._lookup.get_transaction(tx_hash)
        except Exception:
            logger.warning("Lookup of tx %s for flip %s failed", tx_hash, flip.id, exc_info=True)
            return _LOOKUP_FAILED

    async def _poll(self) -> None:
        await self.reconcile()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _find(self, flip_id: str) -> FlipRecord | None:
        return next((f for f in self._flips if f.id == flip_id), None)

    def _with_record(self, record: FlipRecord) -> tuple[FlipRecord, ...]:
        """Snapshot with *record* replacing the flip of the same id (or appended)."""
        if self._find(record.id) is None:
            return (*self._flips, record)
        return tuple(record if f.id == record.id else f for f in self._flips)

    def _commit(self, flips: Iterable[FlipRecord]) -> None:
        """Publish a new snapshot and re-arm the poller. Call under the lock."""
        self._flips = tuple(flips)
        self._sync_poller()
        if self._metrics is not None:
            self._metrics.set_flip_counts(self._flips)

    def _sync_poller(self) -> None:
        """Run the reconciliation timer only while some flip is pending."""
        if self._task_manager is None:
            return
        pending = any(f.is_pending for f in self._flips)
        registered = self._task_manager.is_registered(RECONCILE_JOB)
        if pending and not registered:
            self._task_manager.register(
                RECONCILE_JOB,
                CronJob(handler=self._poll, period=self._config.poll_interval),
            )
            logger.debug("Reconciliation polling started")
        elif not pending and registered:
            self._task_manager.unregister(RECONCILE_JOB)
            logger.debug("Reconciliation polling stopped")

    def _track(self, operation: str) -> AbstractContextManager[None]:
        if self._metrics is None:
            return nullcontext()
        if operation == "submit":
            return self._metrics.track_submit()
        if operation == "delete":
            return self._metrics.track_delete()
        return self._metrics.track_lookup()
