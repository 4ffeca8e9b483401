# sourcing/services/search_orchestrator.py

"""Feed-backed product search: aggregate, filter, rank, truncate."""

import logging

from sourcing.clients.platform_api import PlatformApiClient
from sourcing.filters.listing_filter import ListingFilter
from sourcing.filters.relevance_ranker import RelevanceRanker
from sourcing.models.search import SearchRequest, SearchResult
from sourcing.services.feed_aggregator import FeedAggregator, FeedBatch
from sourcing.storage.feed_cache import FeedCache

logger = logging.getLogger("product_sourcing.orchestrator")


class SearchOrchestrator:
    """Simulates keyword/category search over the platform's curated feeds."""

    def __init__(
        self,
        client: PlatformApiClient,
        ranker: RelevanceRanker | None = None,
        cache: FeedCache | None = None,
    ) -> None:
        self.aggregator = FeedAggregator(client)
        self.ranker = ranker or RelevanceRanker()
        self.feed_cache = cache if cache is not None else FeedCache()

    async def _fetch(
        self, request: SearchRequest, result: SearchResult,
    ) -> FeedBatch:
        """Aggregate feeds for *request*, going through the cache."""
        key = FeedCache.make_key(
            request.feed_set, request.page_size, request.page,
        )
        cached = self.feed_cache.get(key)
        if cached is not None:
            result.cache_hits = 1
            return cached

        batch = await self.aggregator.aggregate(
            request.page_size, request.page, request.feed_set,
        )
        self.feed_cache.store(key, batch)
        return batch

    async def search(self, request: SearchRequest) -> SearchResult:
        """Run *request* end to end.

        Filtering and ranking see the full deduplicated set; truncation
        to ``page_size`` happens last.
        """
        result = SearchResult()
        batch = await self._fetch(request, result)

        result.total_retrieved = batch.retrieved_count
        result.duplicates_removed = batch.duplicates_removed
        result.feeds_used = list(batch.feeds_used)
        result.errors.extend(batch.errors)

        keywords = request.keywords()
        filtered, excluded = ListingFilter.apply(batch.listings, request)
        result.total_after_filtering = len(filtered)

        ranked = self.ranker.rank(filtered, keywords)
        result.listings = ranked[: max(request.page_size, 0)]

        logger.info(
            "Search %r: %d retrieved, %d excluded, %d returned",
            " ".join(keywords) or "(no keywords)",
            result.total_retrieved,
            excluded,
            len(result.listings),
        )
        return result

    def clear_cache(self) -> int:
        """Drop every cached feed batch."""
        return self.feed_cache.clear()
