"""Fixed demo data used when no upstream provider is configured."""

from __future__ import annotations

from ..pipeline.types import Candidate, Collection

DEMO_COLLECTIONS: tuple[Collection, ...] = (
    Collection(
        contract_address="0x1234567890123456789012345678901234567890",
        name="Demo NFT Collection 1",
        deployer_address="0x1111111111111111111111111111111111111111",
        total_mints="1000",
        source="demo",
    ),
    Collection(
        contract_address="0x0987654321098765432109876543210987654321",
        name="Demo NFT Collection 2",
        deployer_address="0x2222222222222222222222222222222222222222",
        total_mints="500",
        source="demo",
    ),
)


class DemoCollectionSource:
    name = "demo"

    async def fetch_collections(self) -> list[Collection]:
        return list(DEMO_COLLECTIONS)


class DemoCandidateSource:
    """One plain mint call per collection, sent straight to the contract."""

    async def fetch_candidates(self, collection: Collection) -> list[Candidate]:
        return [
            Candidate(
                destination_address=collection.contract_address,
                payload=b"",
                unit_count="1",
                native_value="0.01",
            )
        ]
