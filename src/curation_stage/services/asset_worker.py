"""Background maintenance for the asset store.

This module provides the AssetMaintenanceWorker class that periodically drains
the deferred-deletion queue and sweeps abandoned uploads out of the staging
area. Both loops run off the request path; blocking filesystem work is pushed
to a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from curation_stage.core.settings import Settings
from curation_stage.services.assets import AssetStore
from curation_stage.services.deletion import RetryingDeletion

# Configure logger for this module
logger = logging.getLogger(__name__)


class AssetMaintenanceWorker:
    """Runs the retry-queue drain and the orphan sweep on fixed intervals.

    The retry loop only runs when the store uses queued deletion.
    """

    def __init__(
        self,
        store: AssetStore,
        *,
        retry_interval: float,
        sweep_interval: float,
        orphan_max_age: float,
    ) -> None:
        """Initialize the maintenance worker.

        Args:
            store: Asset store whose files are maintained.
            retry_interval: Seconds between retry-queue drains.
            sweep_interval: Seconds between orphan sweeps.
            orphan_max_age: Age in seconds after which a staged file is an orphan.
        """
        self.store = store
        self.retry_interval = max(0.1, float(retry_interval))
        self.sweep_interval = max(0.1, float(sweep_interval))
        self.orphan_max_age = max(0.0, float(orphan_max_age))
        self._tasks: list[asyncio.Task[None]] = []
        self._stopping = asyncio.Event()

    @classmethod
    def from_settings(cls, store: AssetStore, settings: Settings) -> AssetMaintenanceWorker:
        return cls(
            store,
            retry_interval=settings.asset_retry_interval_seconds,
            sweep_interval=settings.asset_sweep_interval_seconds,
            orphan_max_age=settings.asset_orphan_max_age_seconds,
        )

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def start(self) -> None:
        """Start the background loops."""
        if self.running:
            return

        self._stopping.clear()
        self._tasks = [asyncio.create_task(self._loop("sweep", self.sweep_interval, self.sweep_once))]
        if isinstance(self.store.deletion, RetryingDeletion):
            self._tasks.append(
                asyncio.create_task(self._loop("retry", self.retry_interval, self.drain_once))
            )

    async def stop(self) -> None:
        """Stop the background loops and wait for them to finish."""
        if not self._tasks:
            return

        self._stopping.set()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

    async def drain_once(self) -> int:
        """Attempt every due deferred deletion once."""
        deletion = self.store.deletion
        if not isinstance(deletion, RetryingDeletion):
            return 0
        return await asyncio.to_thread(deletion.queue.drain)

    async def sweep_once(self) -> int:
        """Remove staged files older than the orphan age."""
        return await asyncio.to_thread(self.store.sweep_orphans, self.orphan_max_age)

    async def _loop(
        self,
        name: str,
        interval: float,
        action: Callable[[], Awaitable[int]],
    ) -> None:
        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=interval)
                return
            except TimeoutError:
                pass

            try:
                handled = await action()
            except OSError as e:
                logger.warning("Asset %s pass hit a filesystem error: %s", name, e)
                continue
            except Exception as e:
                logger.error("Asset %s pass failed: %s", name, e, exc_info=True)
                continue
            if handled:
                logger.debug("Asset %s pass handled %d files", name, handled)
