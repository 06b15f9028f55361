"""OpenSea-shaped collection adapter."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Mapping, Optional

import aiohttp

from ..errors import ProviderError
from ..http import HTTPError, fetch_json
from ..pipeline.types import Collection

log = logging.getLogger(__name__)

SOURCE_NAME = "opensea"


def parse_collections(payload: Any, *, chain: Optional[str] = None) -> List[Collection]:
    """Map an OpenSea ``/api/v2/collections`` payload onto :class:`Collection` values.

    A collection listing several contracts yields one entry per contract; when
    ``chain`` is given, contracts on other chains are ignored.
    """

    if not isinstance(payload, Mapping):
        raise ProviderError("opensea: unexpected response shape")
    entries = payload.get("collections") or []
    out: List[Collection] = []
    for entry in entries:
        if not isinstance(entry, Mapping):
            continue
        name = str(entry.get("name") or entry.get("collection") or "").strip()
        if not name:
            continue
        total = entry.get("total_supply")
        owner = entry.get("owner")
        flags = _reported_flags(entry)
        for contract in entry.get("contracts") or []:
            if not isinstance(contract, Mapping):
                continue
            address = str(contract.get("address") or "").strip()
            if not address:
                continue
            if chain and contract.get("chain") and contract.get("chain") != chain:
                continue
            out.append(
                Collection(
                    contract_address=address,
                    name=name,
                    deployer_address=str(owner) if owner else None,
                    reported_flags=flags,
                    total_mints=str(total) if total is not None else None,
                    source=SOURCE_NAME,
                )
            )
    return out


def _reported_flags(entry: Mapping[str, Any]) -> frozenset[str]:
    flags: set[str] = set()
    if entry.get("is_disabled"):
        flags.add("disabled")
    if entry.get("is_nsfw"):
        flags.add("nsfw")
    status = entry.get("safelist_status")
    if status in {"disabled_top_trending", "not_requested_flagged"}:
        flags.add(str(status))
    return frozenset(flags)


class OpenSeaSource:
    """Fetch recently created collections on one chain from OpenSea."""

    name = SOURCE_NAME

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://api.opensea.io",
        chain: str = "base",
        limit: int = 50,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.chain = chain
        self.limit = max(1, int(limit))

    async def fetch_collections(self) -> list[Collection]:
        url = f"{self.base_url}/api/v2/collections"
        params = {
            "chain": self.chain,
            "order_by": "created_date",
            "limit": str(self.limit),
        }
        try:
            payload = await fetch_json(
                url, params=params, headers={"X-API-KEY": self.api_key}
            )
        except (HTTPError, aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise ProviderError(f"opensea: {exc}") from exc
        collections = parse_collections(payload, chain=self.chain)
        log.debug("OpenSea returned %d collections", len(collections))
        return collections
