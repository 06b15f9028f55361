from __future__ import annotations

import logging
from typing import Iterable, List, Sequence

from ..errors import ProviderError
from ..pipeline.ports import CollectionSource
from ..pipeline.types import Collection

log = logging.getLogger(__name__)


def filter_collections(collections: Iterable[Collection]) -> List[Collection]:
    """Drop reported collections and repeated contract addresses (first one wins)."""

    seen: set[str] = set()
    filtered: List[Collection] = []
    for collection in collections:
        key = collection.contract_address.lower()
        if key in seen or collection.reported_flags:
            continue
        seen.add(key)
        filtered.append(collection)
    return filtered


class CollectionFeed:
    """Single collection source merging every configured provider adapter.

    Sources are queried in order. A failing source is logged and skipped; the
    poll only fails when every source failed.
    """

    def __init__(self, sources: Sequence[CollectionSource]) -> None:
        if not sources:
            raise ValueError("CollectionFeed needs at least one source")
        self.sources = list(sources)

    async def fetch_collections(self) -> list[Collection]:
        merged: List[Collection] = []
        failures: List[str] = []
        for source in self.sources:
            label = getattr(source, "name", type(source).__name__)
            try:
                batch = await source.fetch_collections()
            except ProviderError as exc:
                log.warning("%s fetch error: %s", label, exc)
                failures.append(str(exc))
                continue
            merged.extend(batch)

        if failures and len(failures) == len(self.sources):
            raise ProviderError("; ".join(failures))

        filtered = filter_collections(merged)
        log.info(
            "Fetched %d collections from %d sources (%d filtered)",
            len(filtered),
            len(self.sources),
            len(merged) - len(filtered),
        )
        return filtered
