import asyncio

from nftscout.pipeline.coordinator import PipelineCoordinator
from nftscout.pipeline.types import SubmissionState

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


def _coordinator(config, collection_source, candidate_source, gateway, signer, receipts):
    return PipelineCoordinator(
        config,
        collections=collection_source,
        candidates=candidate_source,
        gateway=gateway,
        signer=signer,
        on_receipt=receipts.append,
    )


def test_end_to_end_mints_new_contract_and_skips_minted_one(
    config, collection_source, candidate_source, gateway, signer
):
    async def runner() -> None:
        receipts = []
        gateway.minted.add(ADDR_B)
        collection_source.results.append([make_collection(ADDR_A, "Alpha"), make_collection(ADDR_B, "Beta")])
        candidate_source.results[ADDR_A] = [
            make_candidate("3", DEST_1, b"\x03"),
            make_candidate("1", DEST_2, b"\x01"),
            make_candidate("5", DEST_3, b"\x05"),
        ]
        candidate_source.results[ADDR_B] = [make_candidate("2", DEST_1)]
        coordinator = _coordinator(config, collection_source, candidate_source, gateway, signer, receipts)

        await coordinator.start()
        await drain_until(lambda: len(receipts) == 2)
        await coordinator.stop()

        assert [r.state for r in receipts] == [SubmissionState.DONE, SubmissionState.SKIPPED]
        assert signer.estimate_calls == 1
        assert len(signer.broadcasts) == 1
        assert signer.requests[0].data == b"\x01"
        assert signer.requests[0].value == 0
        assert len(gateway.transactions) == 1
        record = gateway.transactions[0]
        assert (record.name, record.contract_address, record.unit_count) == ("Alpha", ADDR_A, 1)

    asyncio.run(runner())


def test_collection_without_candidates_never_reaches_submission(
    config, collection_source, candidate_source, gateway, signer
):
    async def runner() -> None:
        receipts = []
        collection_source.results.append([make_collection(ADDR_C), make_collection(ADDR_A)])
        candidate_source.results[ADDR_C] = []
        candidate_source.results[ADDR_A] = [make_candidate("2", DEST_1)]
        coordinator = _coordinator(config, collection_source, candidate_source, gateway, signer, receipts)

        await coordinator.start()
        await drain_until(lambda: len(receipts) == 1)
        await coordinator.stop()

        assert gateway.dedup_calls == [ADDR_A]
        assert ("no_items", "no items provided", ADDR_C) in gateway.errors
        assert [t.contract_address for t in gateway.transactions] == [ADDR_A]

    asyncio.run(runner())


def test_run_returns_once_cancelled(config, collection_source, candidate_source, gateway, signer):
    async def runner() -> None:
        coordinator = _coordinator(config, collection_source, candidate_source, gateway, signer, [])

        running = asyncio.create_task(coordinator.run())
        await drain_until(lambda: collection_source.calls >= 2)
        coordinator.cancel()
        await asyncio.wait_for(running, timeout=1.0)

        health = coordinator.snapshot_health()
        assert health["cancelled"] is True
        assert health["started"] is False
        assert all(svc.task is None or svc.task.done() for svc in coordinator.services)

    asyncio.run(runner())


def test_snapshot_reports_queue_depths_and_stats(config, collection_source, candidate_source, gateway, signer):
    async def runner() -> None:
        coordinator = _coordinator(config, collection_source, candidate_source, gateway, signer, [])

        health = coordinator.snapshot_health()

        assert health["started"] is False
        assert health["discovery_queue"] == 0
        assert health["selection_queue"] == 0
        assert health["submission"]["submitted"] == 0
        assert coordinator.queue_snapshot() == {"discovery_queue": 0, "selection_queue": 0}

    asyncio.run(runner())
