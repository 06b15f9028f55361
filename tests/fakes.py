"""In-memory fakes for the pipeline collaborator protocols."""

import asyncio
from typing import Any, Dict, List, Optional

from nftscout.pipeline.types import (
    Candidate,
    Collection,
    TransactionRecord,
    TransactionRequest,
)

TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"


class FakeGateway:
    """In-memory persistence gateway recording every call."""

    def __init__(self) -> None:
        self.minted: set[str] = set()
        self.transactions: List[TransactionRecord] = []
        self.errors: List[tuple[str, str, str]] = []
        self.collections: List[Collection] = []
        self.dedup_calls: List[str] = []
        self.fail: Dict[str, Exception] = {}
        self.record_delay = 0.0

    async def has_existing_transaction(self, contract_address: str) -> bool:
        self.dedup_calls.append(contract_address)
        if "has_existing_transaction" in self.fail:
            raise self.fail["has_existing_transaction"]
        return contract_address.lower() in self.minted

    async def record_transaction(self, record: TransactionRecord) -> None:
        if self.record_delay:
            await asyncio.sleep(self.record_delay)
        if "record_transaction" in self.fail:
            raise self.fail["record_transaction"]
        self.transactions.append(record)
        self.minted.add(record.contract_address.lower())

    async def record_error(self, kind: str, message: str, context: str) -> None:
        self.errors.append((kind, message, context))

    async def store_collection(self, collection: Collection) -> None:
        if "store_collection" in self.fail:
            raise self.fail["store_collection"]
        self.collections.append(collection)

    def error_kinds(self) -> List[str]:
        return [kind for kind, _, _ in self.errors]


class FakeSigner:
    def __init__(self) -> None:
        self.gas_price = 1_000_000_000
        self.estimate_calls = 0
        self.requests: List[TransactionRequest] = []
        self.broadcasts: List[Any] = []
        self.fail: Dict[str, Exception] = {}
        self.fail_for: Dict[str, str] = {}

    def _maybe_fail(self, step: str, to: Optional[str] = None) -> None:
        target = self.fail_for.get(step)
        if target is not None and to is not None and to.lower() != target.lower():
            return
        if step in self.fail:
            raise self.fail[step]

    async def estimate_gas_price(self) -> int:
        self.estimate_calls += 1
        self._maybe_fail("estimate_gas_price")
        return self.gas_price

    async def build_and_sign(self, request: TransactionRequest) -> Any:
        self._maybe_fail("build_and_sign", request.to)
        self.requests.append(request)
        return ("signed", request)

    async def broadcast(self, signed: Any) -> str:
        self._maybe_fail("broadcast", signed[1].to)
        self.broadcasts.append(signed)
        return "0x" + f"{len(self.broadcasts):064x}"


class FakeCollectionSource:
    """Return queued batches (or raise queued exceptions), then empty batches."""

    def __init__(self) -> None:
        self.results: List[Any] = []
        self.calls = 0

    async def fetch_collections(self) -> list[Collection]:
        self.calls += 1
        if not self.results:
            return []
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return list(result)


class FakeCandidateSource:
    def __init__(self) -> None:
        self.results: Dict[str, Any] = {}
        self.calls: List[str] = []

    async def fetch_candidates(self, collection: Collection) -> list[Candidate]:
        self.calls.append(collection.contract_address)
        result = self.results.get(collection.contract_address, [])
        if isinstance(result, Exception):
            raise result
        return list(result)


def make_collection(address: str, name: Optional[str] = None) -> Collection:
    return Collection(contract_address=address, name=name or f"collection-{address[-4:]}")


def make_candidate(count: str, to: str, payload: bytes = b"\x01") -> Candidate:
    return Candidate(destination_address=to, payload=payload, unit_count=count, native_value="0")


ADDR_A = "0x" + "a" * 40
ADDR_B = "0x" + "b" * 40
ADDR_C = "0x" + "c" * 40
DEST_1 = "0x" + "1" * 40
DEST_2 = "0x" + "2" * 40
DEST_3 = "0x" + "3" * 40


async def drain_until(predicate, *, timeout: float = 2.0) -> None:
    """Yield to the loop until ``predicate()`` holds or ``timeout`` expires."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached before timeout")
        await asyncio.sleep(0.005)
