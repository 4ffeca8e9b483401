# sourcing/filters/deduplicator.py

"""Listing deduplication across multiple recommendation feeds."""

import logging

from sourcing.models.listing import SourceListing

logger = logging.getLogger("product_sourcing.filters")


class ListingDeduplicator:
    """Remove repeated listings by ``external_id``."""

    @staticmethod
    def deduplicate(
        listings: list[SourceListing],
    ) -> tuple[list[SourceListing], int]:
        """Keep the first occurrence of each ``external_id``.

        Order is the caller's iteration order (feed order, then
        position within the feed).  Later copies are dropped even when
        they carry more complete data.

        Returns the deduplicated list and the count of removed dupes.
        """
        if not listings:
            return [], 0

        seen: set[str] = set()
        kept: list[SourceListing] = []
        removed = 0

        for listing in listings:
            key = str(listing.external_id)
            if key in seen:
                removed += 1
                continue
            seen.add(key)
            kept.append(listing)

        if removed:
            logger.info(
                "Deduplication removed %d duplicate listings", removed,
            )

        return kept, removed
