# sourcing/filters/listing_filter.py

"""Keyword, price and quality filters over aggregated listings.

The platform's feeds cannot be searched, so these filters stand in
for keyword search and quality thresholds.  Each returns the kept
listings and the number excluded.
"""

import logging

from sourcing.models.listing import SourceListing
from sourcing.models.search import SearchRequest
from sourcing.services.normalizer import ProductNormalizer

logger = logging.getLogger("product_sourcing.filters")


class ListingFilter:
    """Static filters applied in sequence by :meth:`apply`."""

    @staticmethod
    def filter_by_keywords(
        listings: list[SourceListing],
        keywords: list[str],
    ) -> tuple[list[SourceListing], int]:
        """Keep listings whose title contains at least one keyword.

        Case-insensitive substring match; an empty keyword list keeps
        everything.
        """
        lowered = [kw.lower() for kw in keywords if kw.strip()]
        if not lowered:
            return list(listings), 0

        kept: list[SourceListing] = []
        excluded = 0
        for listing in listings:
            title_lower = listing.title.lower()
            if any(kw in title_lower for kw in lowered):
                kept.append(listing)
            else:
                excluded += 1

        if excluded:
            logger.info(
                "Keyword filter excluded %d listings", excluded,
            )
        return kept, excluded

    @staticmethod
    def filter_by_price(
        listings: list[SourceListing],
        min_price: int | None = None,
        max_price: int | None = None,
    ) -> tuple[list[SourceListing], int]:
        """Keep listings whose converted sale price is within the bounds.

        Bounds are target-currency minor units and inclusive.
        """
        if min_price is None and max_price is None:
            return list(listings), 0

        kept: list[SourceListing] = []
        excluded = 0
        for listing in listings:
            price = ProductNormalizer.convert_to_target(
                listing.sale_price_minor_units
            )
            if min_price is not None and price < min_price:
                excluded += 1
            elif max_price is not None and price > max_price:
                excluded += 1
            else:
                kept.append(listing)

        if excluded:
            logger.info("Price filter excluded %d listings", excluded)
        return kept, excluded

    @staticmethod
    def filter_by_quality(
        listings: list[SourceListing],
        min_rating: float | None = None,
        min_sales: int | None = None,
    ) -> tuple[list[SourceListing], int]:
        """Drop listings below either threshold; unknown values count as 0."""
        if min_rating is None and min_sales is None:
            return list(listings), 0

        kept: list[SourceListing] = []
        excluded = 0
        for listing in listings:
            rating = listing.rating or 0.0
            sales = listing.recent_sales_volume or 0
            if min_rating is not None and rating < min_rating:
                excluded += 1
            elif min_sales is not None and sales < min_sales:
                excluded += 1
            else:
                kept.append(listing)

        if excluded:
            logger.info("Quality filter excluded %d listings", excluded)
        return kept, excluded

    @classmethod
    def apply(
        cls,
        listings: list[SourceListing],
        request: SearchRequest,
    ) -> tuple[list[SourceListing], int]:
        """Run keyword, price and quality filters for *request*."""
        kept, by_keyword = cls.filter_by_keywords(
            listings, request.keywords()
        )
        kept, by_price = cls.filter_by_price(
            kept, request.min_price, request.max_price
        )
        kept, by_quality = cls.filter_by_quality(
            kept, request.min_rating, request.min_sales
        )
        return kept, by_keyword + by_price + by_quality
