# sourcing/filters/relevance_ranker.py

"""Relevance scoring for filtered listings.

score = 10 per keyword found in the title
      + 2 x rating
      + log10(recent sales + 1)

The weights are a tunable policy; pass different ones to
:class:`RelevanceRanker` to experiment.
"""

import logging
import math

from sourcing.models.listing import SourceListing

logger = logging.getLogger("product_sourcing.filters")


class RelevanceRanker:
    """Score and order listings by keyword hits, rating and sales."""

    def __init__(
        self,
        keyword_weight: float = 10.0,
        rating_weight: float = 2.0,
    ) -> None:
        self.keyword_weight = keyword_weight
        self.rating_weight = rating_weight

    def score(
        self, listing: SourceListing, keywords: list[str],
    ) -> float:
        """Relevance score of one listing for lower-cased *keywords*."""
        title = listing.title.lower()
        hits = sum(1 for kw in keywords if kw and kw in title)
        rating = listing.rating or 0.0
        sales = max(listing.recent_sales_volume or 0, 0)
        return (
            hits * self.keyword_weight
            + self.rating_weight * rating
            + math.log10(sales + 1)
        )

    def rank(
        self, listings: list[SourceListing], keywords: list[str],
    ) -> list[SourceListing]:
        """Return *listings* sorted by descending score (stable on ties)."""
        lowered = [kw.lower() for kw in keywords]
        ranked = sorted(
            listings,
            key=lambda listing: self.score(listing, lowered),
            reverse=True,
        )
        if ranked:
            logger.debug(
                "Ranked %d listings, top score %.2f",
                len(ranked),
                self.score(ranked[0], lowered),
            )
        return ranked
