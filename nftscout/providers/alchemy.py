"""Alchemy-shaped collection adapter."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Mapping

import aiohttp

from ..errors import ProviderError
from ..http import HTTPError, fetch_json
from ..pipeline.types import Collection

log = logging.getLogger(__name__)

SOURCE_NAME = "alchemy"


def parse_contracts(payload: Any) -> List[Collection]:
    """Map a ``getContractsForOwner`` payload onto :class:`Collection` values.

    Spam contracts and contracts without a name are dropped.
    """

    if not isinstance(payload, Mapping):
        raise ProviderError("alchemy: unexpected response shape")
    out: List[Collection] = []
    for contract in payload.get("contracts") or []:
        if not isinstance(contract, Mapping):
            continue
        if contract.get("isSpam"):
            continue
        name = str(contract.get("name") or "").strip()
        address = str(contract.get("address") or "").strip()
        if not name or not address:
            continue
        deployer = contract.get("contractDeployer")
        total = contract.get("totalSupply")
        out.append(
            Collection(
                contract_address=address,
                name=name,
                deployer_address=str(deployer) if deployer else None,
                total_mints=str(total) if total not in (None, "") else None,
                source=SOURCE_NAME,
            )
        )
    return out


class AlchemySource:
    """Fetch NFT contracts from Alchemy's NFT API."""

    name = SOURCE_NAME

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://base-mainnet.g.alchemy.com/nft/v3",
        owner: str = "0x0000000000000000000000000000000000000000",
        page_size: int = 20,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.owner = owner
        self.page_size = max(1, int(page_size))

    async def fetch_collections(self) -> list[Collection]:
        url = f"{self.base_url}/{self.api_key}/getContractsForOwner"
        params = {
            "owner": self.owner,
            "withMetadata": "true",
            "pageSize": str(self.page_size),
        }
        try:
            payload = await fetch_json(url, params=params)
        except HTTPError as exc:
            # the key is part of the path, keep it out of logs and error records
            raise ProviderError(f"alchemy: HTTP {exc.status}") from exc
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise ProviderError(
                f"alchemy: {type(exc).__name__}: {str(exc).replace(self.api_key, '***')}"
            ) from exc
        collections = parse_contracts(payload)
        log.debug("Alchemy returned %d collections", len(collections))
        return collections
