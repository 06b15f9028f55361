import asyncio

import pytest

from nftscout.errors import PipelineCancelled
from nftscout.pipeline.cancel import CancelToken


def test_run_returns_result_when_not_cancelled():
    async def runner() -> None:
        token = CancelToken()

        async def work() -> int:
            await asyncio.sleep(0)
            return 42

        assert await token.run(work()) == 42

    asyncio.run(runner())


def test_run_propagates_errors_from_awaitable():
    async def runner() -> None:
        token = CancelToken()

        async def boom() -> None:
            raise RuntimeError("upstream down")

        with pytest.raises(RuntimeError, match="upstream down"):
            await token.run(boom())

    asyncio.run(runner())


def test_run_refuses_new_work_after_cancel():
    async def runner() -> None:
        token = CancelToken()
        token.cancel()
        started = []

        async def work() -> None:
            started.append(True)

        with pytest.raises(PipelineCancelled):
            await token.run(work())
        assert started == []

    asyncio.run(runner())


def test_cancel_unblocks_full_queue_put_without_enqueueing():
    async def runner() -> None:
        token = CancelToken()
        queue: asyncio.Queue[int] = asyncio.Queue(maxsize=1)
        queue.put_nowait(1)

        blocked = asyncio.create_task(token.run(queue.put(2)))
        await asyncio.sleep(0.01)
        assert not blocked.done()

        token.cancel()
        with pytest.raises(PipelineCancelled):
            await asyncio.wait_for(blocked, timeout=0.5)

        assert queue.qsize() == 1
        assert queue.get_nowait() == 1

    asyncio.run(runner())


def test_sleep_returns_after_delay_and_raises_on_cancel():
    async def runner() -> None:
        token = CancelToken()
        await token.sleep(0.001)

        sleeper = asyncio.create_task(token.sleep(30))
        await asyncio.sleep(0)
        token.cancel()
        with pytest.raises(PipelineCancelled):
            await asyncio.wait_for(sleeper, timeout=0.5)

    asyncio.run(runner())
