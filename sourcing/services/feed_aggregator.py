# sourcing/services/feed_aggregator.py

"""Concurrent multi-feed retrieval and deduplication."""

import asyncio
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field

from sourcing.clients.platform_api import PlatformApiClient
from sourcing.config.settings import Settings
from sourcing.filters.deduplicator import ListingDeduplicator
from sourcing.filters.listing_validator import ListingValidator
from sourcing.models.listing import SourceListing

logger = logging.getLogger("product_sourcing.aggregator")


@dataclass
class FeedBatch:
    """Deduplicated listings from one fan-out over a feed set."""

    listings: list[SourceListing] = field(
        default_factory=lambda: list[SourceListing]()
    )
    retrieved_count: int = 0
    duplicates_removed: int = 0
    invalid_count: int = 0
    feeds_used: list[str] = field(
        default_factory=lambda: list[str]()
    )
    errors: list[str] = field(
        default_factory=lambda: list[str]()
    )
    empty_feeds: list[str] = field(
        default_factory=lambda: list[str]()
    )


class FeedAggregator:
    """Pulls several curated feeds in parallel and merges them."""

    def __init__(self, client: PlatformApiClient) -> None:
        self.client = client

    @staticmethod
    def per_feed_count(target_count: int, feed_count: int) -> int:
        """Listings requested from each feed: ``ceil(target / feeds)``."""
        if feed_count <= 0:
            return 0
        return max(1, math.ceil(target_count / feed_count))

    async def aggregate(
        self,
        target_count: int,
        page: int = 1,
        feeds: Sequence[str] | None = None,
    ) -> FeedBatch:
        """Fetch every feed concurrently and deduplicate the union.

        All calls are started before any is awaited, and every call is
        allowed to settle.  A failing feed contributes nothing and is
        reported in ``errors``.  The result is not truncated.
        """
        feed_names = list(
            feeds if feeds is not None else Settings.AVAILABLE_FEEDS
        )
        batch = FeedBatch()
        if not feed_names:
            return batch

        per_feed = self.per_feed_count(target_count, len(feed_names))
        logger.info(
            "Fetching %d feeds, %d listings each (page %d)",
            len(feed_names),
            per_feed,
            page,
        )

        results = await asyncio.gather(
            *(
                asyncio.to_thread(
                    self.client.fetch_feed, name, per_feed, page
                )
                for name in feed_names
            ),
            return_exceptions=True,
        )

        merged: list[SourceListing] = []
        for name, result in zip(feed_names, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.error(
                    "Feed '%s' raised: %s",
                    name,
                    result,
                    exc_info=result,
                )
                batch.errors.append(f"{name}: {result}")
                continue
            if not result:
                batch.empty_feeds.append(name)
                continue
            batch.feeds_used.append(name)
            merged.extend(result)

        batch.retrieved_count = len(merged)
        valid, batch.invalid_count = ListingValidator.validate(merged)
        batch.listings, batch.duplicates_removed = (
            ListingDeduplicator.deduplicate(valid)
        )
        logger.info(
            "Aggregated %d listings (%d unique) from %s",
            batch.retrieved_count,
            len(batch.listings),
            ", ".join(batch.feeds_used) or "no feeds",
        )
        return batch
