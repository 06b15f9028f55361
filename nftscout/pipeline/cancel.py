"""Broadcast cancellation signal shared by every pipeline stage."""

from __future__ import annotations

import asyncio
import contextlib
from typing import Awaitable, TypeVar

from ..errors import PipelineCancelled

T = TypeVar("T")


class CancelToken:
    """One-shot signal observed at every suspension point of the pipeline.

    :meth:`run` races an awaitable against the signal. When the signal wins the
    awaitable is cancelled and :class:`PipelineCancelled` is raised, so a
    blocked ``queue.put`` never completes after shutdown was requested.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise PipelineCancelled("cancellation requested")

    async def run(self, aw: Awaitable[T]) -> T:
        if self._event.is_set():
            if asyncio.iscoroutine(aw):
                aw.close()
            raise PipelineCancelled("cancellation requested")

        task = asyncio.ensure_future(aw)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task in done:
            return task.result()

        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        raise PipelineCancelled("cancellation requested")

    async def sleep(self, delay: float) -> None:
        """Sleep for ``delay`` seconds unless the signal fires first."""

        if delay <= 0:
            self.raise_if_cancelled()
            return
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        raise PipelineCancelled("cancellation requested")
