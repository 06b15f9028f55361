"""Protocols describing the collaborators driven by the pipeline stages."""

from __future__ import annotations

from typing import Any, Protocol

from .types import Candidate, Collection, TransactionRecord, TransactionRequest


class CollectionSource(Protocol):
    """Supplies one batch of candidate contracts per poll."""

    async def fetch_collections(self) -> list[Collection]:
        ...


class CandidateSource(Protocol):
    """Supplies the mint-transaction candidates for one collection."""

    async def fetch_candidates(self, collection: Collection) -> list[Candidate]:
        ...


class PersistenceGateway(Protocol):
    async def has_existing_transaction(self, contract_address: str) -> bool:
        ...

    async def record_transaction(self, record: TransactionRecord) -> None:
        ...

    async def record_error(self, kind: str, message: str, context: str) -> None:
        """Best-effort audit write; implementations swallow their own failures."""
        ...

    async def store_collection(self, collection: Collection) -> None:
        ...


class Signer(Protocol):
    async def estimate_gas_price(self) -> int:
        ...

    async def build_and_sign(self, request: TransactionRequest) -> Any:
        ...

    async def broadcast(self, signed: Any) -> str:
        ...
