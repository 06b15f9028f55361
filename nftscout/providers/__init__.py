"""Collection and candidate sources behind the pipeline's source protocols."""

from __future__ import annotations

import logging

from ..config import ScoutConfig
from ..pipeline.ports import CandidateSource, CollectionSource
from .alchemy import AlchemySource
from .demo import DemoCandidateSource, DemoCollectionSource
from .feed import CollectionFeed, filter_collections
from .mint_feed import MintFeedSource
from .opensea import OpenSeaSource

log = logging.getLogger(__name__)

__all__ = [
    "AlchemySource",
    "CollectionFeed",
    "DemoCandidateSource",
    "DemoCollectionSource",
    "MintFeedSource",
    "OpenSeaSource",
    "build_candidate_source",
    "build_collection_source",
    "filter_collections",
]


def build_collection_source(config: ScoutConfig) -> CollectionSource:
    if config.demo_collections:
        log.warning("No API keys configured, running in DEMO mode with mock collections")
        return CollectionFeed([DemoCollectionSource()])
    sources: list[CollectionSource] = []
    if config.opensea_api_key:
        sources.append(
            OpenSeaSource(
                config.opensea_api_key,
                base_url=config.opensea_base_url,
                chain=config.opensea_chain,
            )
        )
    if config.alchemy_api_key:
        sources.append(
            AlchemySource(
                config.alchemy_api_key,
                base_url=config.alchemy_base_url,
                owner=config.alchemy_owner_address,
            )
        )
    return CollectionFeed(sources)


def build_candidate_source(config: ScoutConfig) -> CandidateSource:
    if config.mint_feed_url:
        return MintFeedSource(config.mint_feed_url)
    log.warning("MINT_FEED_URL not configured, using demo mint candidates")
    return DemoCandidateSource()
