from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional, Sequence

from ..errors import PipelineCancelled, SelectionError
from .cancel import CancelToken
from .ports import CandidateSource, PersistenceGateway
from .selection import select_minimal_candidate
from .types import Collection, SelectedItem

log = logging.getLogger(__name__)


class SelectionService:
    """Expand collection batches into one minimal-unit-count item per contract."""

    def __init__(
        self,
        input_queue: "asyncio.Queue[list[Collection]]",
        output_queue: "asyncio.Queue[SelectedItem]",
        candidates: CandidateSource,
        gateway: PersistenceGateway,
        cancel: CancelToken,
    ) -> None:
        self.input_queue = input_queue
        self.output_queue = output_queue
        self.candidates = candidates
        self.gateway = gateway
        self.cancel = cancel
        self.stats: Dict[str, int] = {
            "batches": 0,
            "selected": 0,
            "skipped": 0,
        }
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self.run(), name="selection_service")

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
        log.info("Starting selection worker...")
        try:
            while True:
                batch = await self.cancel.run(self.input_queue.get())
                try:
                    await self.process_batch(batch)
                finally:
                    self.input_queue.task_done()
        except PipelineCancelled:
            pass
        log.info("Selection worker stopped")

    async def process_batch(self, batch: Sequence[Collection]) -> None:
        self.stats["batches"] += 1
        log.info("Processing %d collections...", len(batch))
        for collection in batch:
            self.cancel.raise_if_cancelled()
            item = await self.select(collection)
            if item is None:
                self.stats["skipped"] += 1
                continue
            await self.cancel.run(self.output_queue.put(item))
            self.stats["selected"] += 1
            log.info(
                "Collection %s queued for minting (units=%d)",
                collection.name,
                item.unit_count,
            )
        log.info("Finished processing %d collections", len(batch))

    async def select(self, collection: Collection) -> Optional[SelectedItem]:
        """Return the selected item for ``collection`` or ``None`` when it is skipped."""

        try:
            await self.cancel.run(self.gateway.store_collection(collection))
        except PipelineCancelled:
            raise
        except Exception as exc:
            log.warning("Error storing collection %s: %s", collection.name, exc)
            await self._record_error("store_collection", str(exc), collection)

        try:
            candidates = await self.cancel.run(
                self.candidates.fetch_candidates(collection)
            )
        except PipelineCancelled:
            raise
        except Exception as exc:
            log.warning("Error getting candidates for %s: %s", collection.name, exc)
            await self._record_error("fetch_candidates", str(exc), collection)
            return None

        try:
            return select_minimal_candidate(collection, candidates)
        except SelectionError as exc:
            log.warning("Error processing candidates for %s: %s", collection.name, exc)
            await self._record_error(exc.kind, str(exc), collection)
            return None

    async def _record_error(self, kind: str, message: str, collection: Collection) -> None:
        await self.cancel.run(
            self.gateway.record_error(kind, message, collection.contract_address)
        )
