from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional

from ..errors import PipelineCancelled
from .cancel import CancelToken
from .ports import CollectionSource, PersistenceGateway
from .types import Collection

log = logging.getLogger(__name__)


class DiscoveryService:
    """Poll the collection source on a fixed cadence and forward whole batches."""

    def __init__(
        self,
        queue: "asyncio.Queue[list[Collection]]",
        source: CollectionSource,
        cancel: CancelToken,
        *,
        interval: float = 60.0,
        gateway: Optional[PersistenceGateway] = None,
    ) -> None:
        self.queue = queue
        self.source = source
        self.cancel = cancel
        self.interval = max(0.0, float(interval))
        self.gateway = gateway
        self.stats: Dict[str, int] = {
            "ticks": 0,
            "batches": 0,
            "empty": 0,
            "failures": 0,
        }
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self.run(), name="discovery_service")

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    async def run(self) -> None:
        log.info("Starting discovery with %.1f second intervals", self.interval)
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self.interval
        try:
            while True:
                await self.cancel.sleep(next_tick - loop.time())
                next_tick += self.interval
                now = loop.time()
                if next_tick <= now and self.interval > 0:
                    # fetch overran one or more ticks; skip them like a ticker would
                    missed = int((now - next_tick) // self.interval) + 1
                    next_tick += missed * self.interval
                await self.tick()
        except PipelineCancelled:
            pass
        log.info("Collection discovery stopped")

    async def tick(self) -> None:
        """Run one poll: fetch a batch and forward it downstream."""

        self.stats["ticks"] += 1
        log.debug("Fetching collection data...")
        try:
            batch = await self.cancel.run(self.source.fetch_collections())
        except PipelineCancelled:
            raise
        except Exception as exc:
            self.stats["failures"] += 1
            log.warning("Error fetching collection data: %s", exc)
            await self._record_error("fetch_collections", str(exc))
            return

        if not batch:
            self.stats["empty"] += 1
            log.info("Discovery tick returned no collections")
            return

        log.info("Successfully fetched %d collections", len(batch))
        try:
            await self.cancel.run(self.queue.put(list(batch)))
        except PipelineCancelled:
            log.info("Cancellation while forwarding batch; dropping %d collections", len(batch))
            raise
        self.stats["batches"] += 1
        log.debug("Batch sent to selection queue")

    async def _record_error(self, kind: str, message: str) -> None:
        if self.gateway is None:
            return
        await self.cancel.run(self.gateway.record_error(kind, message, "discovery"))
