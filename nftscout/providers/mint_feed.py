"""HTTP candidate source returning mint transactions observed for a contract."""

from __future__ import annotations

import asyncio
import binascii
import logging
from typing import Any, List, Mapping

import aiohttp
from eth_utils import decode_hex

from ..errors import ProviderError
from ..http import HTTPError, fetch_json
from ..pipeline.types import Candidate, Collection

log = logging.getLogger(__name__)


def decode_call_data(value: Any) -> bytes:
    """Decode ``0x``-prefixed (or bare) hex call data; empty and ``"0x"`` give ``b""``."""

    if value is None:
        return b""
    text = str(value).strip()
    if text in ("", "0x", "0X"):
        return b""
    try:
        return decode_hex(text)
    except (binascii.Error, ValueError) as exc:
        raise ProviderError(f"mint feed: malformed call data {text[:18]!r}") from exc


def parse_candidates(payload: Any) -> List[Candidate]:
    """Build typed candidates from a ``{"transactions": [...]}`` payload.

    Each entry carries ``to``, ``callData``, ``nftCount`` and ``ethValue``.
    ``nftCount`` is kept as reported; a bare integer is converted to its
    decimal string.
    """

    if not isinstance(payload, Mapping):
        raise ProviderError("mint feed: unexpected response shape")
    out: List[Candidate] = []
    for entry in payload.get("transactions") or []:
        if not isinstance(entry, Mapping):
            raise ProviderError("mint feed: malformed transaction entry")
        to = str(entry.get("to") or "").strip()
        if not to:
            raise ProviderError("mint feed: transaction without destination")
        count = entry.get("nftCount")
        out.append(
            Candidate(
                destination_address=to,
                payload=decode_call_data(entry.get("callData")),
                unit_count="" if count is None else str(count),
                native_value=str(entry.get("ethValue") or "0"),
            )
        )
    return out


class MintFeedSource:
    """Query ``{url}?contract=<address>`` for the mint transactions of a contract."""

    def __init__(self, url: str) -> None:
        self.url = url

    async def fetch_candidates(self, collection: Collection) -> list[Candidate]:
        try:
            payload = await fetch_json(
                self.url, params={"contract": collection.contract_address}
            )
        except (HTTPError, aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise ProviderError(f"mint feed: {exc}") from exc
        candidates = parse_candidates(payload)
        log.debug(
            "Mint feed returned %d candidates for %s",
            len(candidates),
            collection.contract_address,
        )
        return candidates
