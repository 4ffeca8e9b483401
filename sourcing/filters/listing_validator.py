# sourcing/filters/listing_validator.py

"""Listing validation, run before deduplication."""

import logging
from dataclasses import replace

from sourcing.config.settings import Settings
from sourcing.models.listing import SourceListing

logger = logging.getLogger("product_sourcing.filters")


class ListingValidator:
    """Drop listings that cannot be keyed and patch empty titles."""

    @staticmethod
    def validate(
        listings: list[SourceListing],
    ) -> tuple[list[SourceListing], int]:
        """Drop listings with no ``external_id``; placeholder empty titles.

        Returns the valid listings and the count of dropped items.
        """
        valid: list[SourceListing] = []
        dropped = 0

        for listing in listings:
            if not str(listing.external_id or "").strip():
                logger.debug(
                    "Dropped listing without external id (title=%s)",
                    listing.title,
                )
                dropped += 1
                continue
            if not (listing.title or "").strip():
                listing = replace(
                    listing, title=Settings.PLACEHOLDER_TITLE
                )
            valid.append(listing)

        if dropped:
            logger.info(
                "Validation dropped %d unkeyed listings", dropped,
            )

        return valid, dropped
