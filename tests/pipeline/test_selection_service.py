import asyncio

from nftscout.errors import ProviderError
from nftscout.pipeline.cancel import CancelToken
from nftscout.pipeline.selection_service import SelectionService

from tests.fakes import (
    ADDR_A,
    ADDR_B,
    ADDR_C,
    DEST_1,
    DEST_2,
    DEST_3,
    drain_until,
    make_candidate,
    make_collection,
)


def _service(candidate_source, gateway, *, capacity: int = 4, token=None):
    inbound: asyncio.Queue[list] = asyncio.Queue(maxsize=capacity)
    outbound: asyncio.Queue = asyncio.Queue(maxsize=capacity)
    service = SelectionService(
        inbound, outbound, candidate_source, gateway, token or CancelToken()
    )
    return service, inbound, outbound


def test_batch_yields_one_item_per_contract_in_order(candidate_source, gateway):
    async def runner() -> None:
        service, _, outbound = _service(candidate_source, gateway)
        candidate_source.results[ADDR_A] = [
            make_candidate("3", DEST_1),
            make_candidate("1", DEST_2),
            make_candidate("5", DEST_3),
        ]
        candidate_source.results[ADDR_B] = [make_candidate("2", DEST_3)]

        await service.process_batch([make_collection(ADDR_A), make_collection(ADDR_B)])

        first = outbound.get_nowait()
        second = outbound.get_nowait()
        assert (first.contract_address, first.unit_count, first.destination_address) == (ADDR_A, 1, DEST_2)
        assert (second.contract_address, second.unit_count) == (ADDR_B, 2)
        assert [c.contract_address for c in gateway.collections] == [ADDR_A, ADDR_B]

    asyncio.run(runner())


def test_empty_candidates_logged_as_no_items_and_batch_continues(candidate_source, gateway):
    async def runner() -> None:
        service, _, outbound = _service(candidate_source, gateway)
        candidate_source.results[ADDR_C] = []
        candidate_source.results[ADDR_A] = [make_candidate("1", DEST_1)]

        await service.process_batch([make_collection(ADDR_C), make_collection(ADDR_A)])

        assert outbound.qsize() == 1
        assert outbound.get_nowait().contract_address == ADDR_A
        assert gateway.errors == [("no_items", "no items provided", ADDR_C)]
        assert service.stats["skipped"] == 1

    asyncio.run(runner())


def test_candidate_fetch_failure_skips_only_that_collection(candidate_source, gateway):
    async def runner() -> None:
        service, _, outbound = _service(candidate_source, gateway)
        candidate_source.results[ADDR_A] = ProviderError("mint feed: HTTP 500")
        candidate_source.results[ADDR_B] = [make_candidate("4", DEST_2)]

        await service.process_batch([make_collection(ADDR_A), make_collection(ADDR_B)])

        assert outbound.qsize() == 1
        assert outbound.get_nowait().contract_address == ADDR_B
        assert gateway.error_kinds() == ["fetch_candidates"]

    asyncio.run(runner())


def test_malformed_unit_count_skips_collection(candidate_source, gateway):
    async def runner() -> None:
        service, _, outbound = _service(candidate_source, gateway)
        candidate_source.results[ADDR_A] = [make_candidate("two", DEST_1)]

        await service.process_batch([make_collection(ADDR_A)])

        assert outbound.qsize() == 0
        assert gateway.error_kinds() == ["invalid_unit_count"]

    asyncio.run(runner())


def test_store_failure_does_not_block_selection(candidate_source, gateway):
    async def runner() -> None:
        service, _, outbound = _service(candidate_source, gateway)
        gateway.fail["store_collection"] = RuntimeError("database is locked")
        candidate_source.results[ADDR_A] = [make_candidate("1", DEST_1)]

        await service.process_batch([make_collection(ADDR_A)])

        assert outbound.qsize() == 1
        assert gateway.error_kinds() == ["store_collection"]

    asyncio.run(runner())


def test_cancellation_checked_before_each_collection(candidate_source, gateway):
    async def runner() -> None:
        token = CancelToken()
        service, inbound, outbound = _service(candidate_source, gateway, capacity=1, token=token)
        for address in (ADDR_A, ADDR_B, ADDR_C):
            candidate_source.results[address] = [make_candidate("1", DEST_1)]

        await service.start()
        inbound.put_nowait([make_collection(ADDR_A), make_collection(ADDR_B), make_collection(ADDR_C)])

        # ADDR_A fills the output queue, ADDR_B blocks on the send
        await drain_until(lambda: len(candidate_source.calls) == 2)
        token.cancel()
        await asyncio.wait_for(service.task, timeout=0.5)

        assert candidate_source.calls == [ADDR_A, ADDR_B]
        assert outbound.qsize() == 1
        assert outbound.get_nowait().contract_address == ADDR_A

    asyncio.run(runner())
