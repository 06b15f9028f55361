from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..config import ScoutConfig
from .cancel import CancelToken
from .discovery_service import DiscoveryService
from .ports import CandidateSource, CollectionSource, PersistenceGateway, Signer
from .selection_service import SelectionService
from .submission_service import SubmissionService
from .types import Collection, SelectedItem, SubmissionReceipt

log = logging.getLogger(__name__)


class PipelineCoordinator:
    """Coordinate staged discovery→selection→submission."""

    def __init__(
        self,
        config: ScoutConfig,
        *,
        collections: CollectionSource,
        candidates: CandidateSource,
        gateway: PersistenceGateway,
        signer: Signer,
        cancel: Optional[CancelToken] = None,
        on_receipt: Optional[Callable[[SubmissionReceipt], Awaitable[None] | None]] = None,
    ) -> None:
        self.config = config
        self.cancel_token = cancel or CancelToken()
        capacity = max(1, int(config.queue_capacity))
        self._discovery_queue: asyncio.Queue[list[Collection]] = asyncio.Queue(maxsize=capacity)
        self._selection_queue: asyncio.Queue[SelectedItem] = asyncio.Queue(maxsize=capacity)

        self._discovery_service = DiscoveryService(
            self._discovery_queue,
            collections,
            self.cancel_token,
            interval=config.poll_interval,
            gateway=gateway,
        )
        self._selection_service = SelectionService(
            self._discovery_queue,
            self._selection_queue,
            candidates,
            gateway,
            self.cancel_token,
        )
        self._submission_service = SubmissionService(
            self._selection_queue,
            gateway,
            signer,
            self.cancel_token,
            gas_limit=config.gas_limit,
            on_receipt=on_receipt,
        )
        self._started = asyncio.Event()

    @property
    def services(self) -> tuple[DiscoveryService, SelectionService, SubmissionService]:
        return (
            self._discovery_service,
            self._selection_service,
            self._submission_service,
        )

    async def start(self) -> None:
        if self._started.is_set():
            return
        await self._submission_service.start()
        await self._selection_service.start()
        await self._discovery_service.start()
        self._started.set()
        log.info(
            "PipelineCoordinator: started (interval=%.3fs, queue_capacity=%d)",
            self.config.poll_interval,
            self._discovery_queue.maxsize,
        )

    def cancel(self) -> None:
        """Fire the shared cancellation signal; stages return at their next suspension point."""

        if not self.cancel_token.cancelled:
            log.info("Shutting down gracefully...")
        self.cancel_token.cancel()

    async def wait(self) -> None:
        tasks = self._tasks()
        if not tasks:
            return
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        if any(not t.cancelled() and t.exception() is not None for t in done):
            # a stage crashed outside its own error handling; bring the others down
            self.cancel_token.cancel()
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for service, result in zip(self.services, results):
            if isinstance(result, BaseException) and not isinstance(
                result, asyncio.CancelledError
            ):
                log.error(
                    "%s exited with an error",
                    type(service).__name__,
                    exc_info=result,
                )

    async def stop(self) -> None:
        if not self._started.is_set():
            return
        self.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self.wait()
        self._started.clear()
        log.info("PipelineCoordinator: stopped")

    async def run(self) -> None:
        """Run every stage until the cancellation signal fires."""

        await self.start()
        try:
            await self.wait()
        finally:
            await self.stop()

    def _tasks(self) -> List[asyncio.Task]:
        return [svc.task for svc in self.services if svc.task is not None]

    def queue_snapshot(self) -> Dict[str, int]:
        return {
            "discovery_queue": self._discovery_queue.qsize(),
            "selection_queue": self._selection_queue.qsize(),
        }

    def snapshot_health(self) -> Dict[str, Any]:
        return {
            "started": self._started.is_set(),
            "cancelled": self.cancel_token.cancelled,
            **self.queue_snapshot(),
            "discovery": dict(self._discovery_service.stats),
            "selection": dict(self._selection_service.stats),
            "submission": dict(self._submission_service.stats),
        }
