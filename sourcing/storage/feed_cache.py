# sourcing/storage/feed_cache.py

"""In-memory TTL cache of aggregated feed batches."""

import logging
import time
from dataclasses import dataclass

from sourcing.config.settings import Settings
from sourcing.services.feed_aggregator import FeedBatch

logger = logging.getLogger("product_sourcing.cache")

FeedKey = tuple[tuple[str, ...], int, int]


@dataclass
class CacheEntry:
    """A cached aggregation for one feed set, per-request count and page."""

    key: FeedKey
    batch: FeedBatch
    timestamp: float


class FeedCache:
    """Keeps recent feed batches so re-filtering does not refetch.

    Keys are ``(feed names, target count, page)``; filters are applied
    after the cache, so searches that differ only in keywords, price or
    quality thresholds share one entry.
    """

    def __init__(self, ttl: float | None = None) -> None:
        self._entries: dict[FeedKey, CacheEntry] = {}
        self._ttl: float = (
            ttl if ttl is not None else Settings.FEED_CACHE_TTL
        )

    @staticmethod
    def make_key(
        feeds: tuple[str, ...], target_count: int, page: int,
    ) -> FeedKey:
        return (tuple(feeds), target_count, page)

    def get(self, key: FeedKey) -> FeedBatch | None:
        """Return the cached batch for *key*, or None on miss/expiry."""
        self._evict_expired(time.time())
        entry = self._entries.get(key)
        if entry is None:
            return None
        logger.info("Feed cache hit for %s", key)
        return entry.batch

    def store(self, key: FeedKey, batch: FeedBatch) -> None:
        """Cache *batch*; batches with failed or empty feeds are not cached."""
        if batch.errors or batch.empty_feeds:
            logger.debug(
                "Not caching partial batch for %s (empty feeds: %s)",
                key,
                batch.empty_feeds,
            )
            return
        self._entries[key] = CacheEntry(
            key=key, batch=batch, timestamp=time.time(),
        )
        logger.info(
            "Cached %d listings for %s", len(batch.listings), key,
        )

    def clear(self) -> int:
        """Purge all cached entries.

        Returns the number of entries that were removed.
        """
        count = len(self._entries)
        self._entries.clear()
        logger.info("Feed cache purged (%d entries removed)", count)
        return count

    def __len__(self) -> int:
        return len(self._entries)

    def _evict_expired(self, now: float) -> None:
        """Remove entries older than the TTL threshold."""
        expired = [
            key
            for key, entry in self._entries.items()
            if now - entry.timestamp >= self._ttl
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Evicted %d expired cache entries", len(expired))
