"""FlipsEngine — central engine client owning all services."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from flip_manager.config.settings import StoreEngine

if TYPE_CHECKING:
    from flip_manager.chain.epoch import EpochObserver
    from flip_manager.chain.service import NodeService
    from flip_manager.config.settings import AppConfig
    from flip_manager.datastore.client import Datastore
    from flip_manager.engine.lifecycle import FlipLifecycleEngine
    from flip_manager.metrics.collector import EngineMetrics
    from flip_manager.store.base import FlipStore
    from flip_manager.taskmanager.manager import TaskManager

logger = logging.getLogger(__name__)

# Error messages
_ERR_NOT_INITIALIZED = "Engine not initialized. Call initialize() first."


class FlipsEngine:
    """Central engine that owns the store, node client, timers and lifecycle.

    Collaborators can be injected for tests or offline use; anything left as
    None is built from *config* during :meth:`initialize`.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        store: FlipStore | None = None,
        node: NodeService | None = None,
        epoch_observer: EpochObserver | None = None,
        metrics: EngineMetrics | None = None,
    ) -> None:
        """Initialize engine with configuration.

        Args:
            config: Application configuration.
            store: Flip store override.
            node: Node client override (used for lookups, submit and delete).
            epoch_observer: Epoch observer override.
            metrics: Metrics override.
        """
        self._config = config
        self._initialized = False

        self._datastore: Datastore | None = None
        self._store = store
        self._owns_store = store is None
        self._node = node
        self._owns_node = node is None
        self._epoch_observer = epoch_observer
        self._owns_observer = epoch_observer is None
        self._metrics = metrics
        self._task_manager: TaskManager | None = None
        self._flips: FlipLifecycleEngine | None = None

    async def initialize(self) -> None:
        """Open the store, connect the node, start timers and load flips.

        Raises:
            RuntimeError: If already initialized.
        """
        if self._initialized:
            msg = "Engine already initialized"
            raise RuntimeError(msg)

        from flip_manager.chain.epoch import NodeEpochObserver
        from flip_manager.chain.service import NodeService
        from flip_manager.engine.lifecycle import FlipLifecycleEngine
        from flip_manager.metrics.collector import EngineMetrics
        from flip_manager.taskmanager.manager import TaskManager

        if self._store is None:
            self._store = await self._open_store()

        if self._node is None:
            self._node = NodeService(self._config.node)
            await self._node.connect()

        if self._epoch_observer is None:
            self._epoch_observer = NodeEpochObserver(self._node)

        if self._metrics is None and self._config.metrics.enabled:
            self._metrics = EngineMetrics()

        if self._config.task.enabled:
            self._task_manager = TaskManager(metrics=self._metrics)

        self._flips = FlipLifecycleEngine(
            store=self._store,
            lookup=self._node,
            api=self._node,
            config=self._config.flip,
            epoch_observer=self._epoch_observer,
            task_manager=self._task_manager,
            metrics=self._metrics,
        )
        await self._flips.start()

        if self._task_manager is not None:
            await self._task_manager.start()

        self._initialized = True
        logger.info("Flips engine initialized")

    async def _open_store(self) -> FlipStore:
        from flip_manager.store.memory import MemoryFlipStore

        if self._config.db.store == StoreEngine.MEMORY:
            return MemoryFlipStore()

        from flip_manager.datastore.client import Datastore
        from flip_manager.engine.models import Base
        from flip_manager.store.sql import SQLFlipStore

        self._datastore = Datastore(self._config.db)
        await self._datastore.open(base=Base)
        return SQLFlipStore(self._datastore)

    async def close(self) -> None:
        """Gracefully shut down all services and connections.

        Can be called multiple times (idempotent).
        """
        if not self._initialized:
            return

        if self._flips is not None:
            await self._flips.stop()

        # Stop timers before closing what they depend on
        if self._task_manager is not None:
            await self._task_manager.stop()
            self._task_manager = None

        if self._node is not None and self._owns_node:
            await self._node.close()
            self._node = None

        if self._datastore is not None:
            await self._datastore.close()
            self._datastore = None
        if self._owns_store:
            self._store = None

        if self._owns_observer:
            self._epoch_observer = None

        self._flips = None
        self._initialized = False
        logger.info("Flips engine shut down")

    @property
    def is_initialized(self) -> bool:
        """Check if the engine is initialized."""
        return self._initialized

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def flips(self) -> FlipLifecycleEngine:
        """The flip lifecycle engine.

        Raises:
            RuntimeError: If the engine is not initialized.
        """
        if self._flips is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._flips

    @property
    def store(self) -> FlipStore:
        if self._store is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._store

    @property
    def node(self) -> NodeService | None:
        return self._node

    @property
    def task_manager(self) -> TaskManager | None:
        return self._task_manager

    @property
    def metrics(self) -> EngineMetrics | None:
        return self._metrics
