# sourcing/storage/file_manager.py

"""Saves search listings and imported drafts to disk."""

import csv
import json
import logging
import re
from dataclasses import asdict
from datetime import datetime
from pathlib import Path

from sourcing.config.settings import Settings
from sourcing.models.draft import ProductDraft
from sourcing.models.listing import SourceListing
from sourcing.services.normalizer import ProductNormalizer

logger = logging.getLogger("product_sourcing.storage")


def _slug(text: str) -> str:
    slug = re.sub(r"[^a-zA-Z0-9]+", "_", text).strip("_")
    return slug[:60] or "all"


class FileManager:
    """Writes timestamped JSON/CSV result files under ``results/``."""

    def __init__(self, results_dir: Path | None = None) -> None:
        self.results_dir: Path = results_dir or Settings.RESULTS_DIR
        self.results_dir.mkdir(parents=True, exist_ok=True)
        logger.debug("FileManager initialised, results_dir=%s", self.results_dir)

    @staticmethod
    def _timestamp() -> str:
        return datetime.now().strftime("%Y%m%d_%H%M%S")

    def save_listings(
        self, label: str, listings: list[SourceListing],
    ) -> Path:
        """Save ranked search listings to a timestamped JSON file."""
        filepath = (
            self.results_dir / f"search_{_slug(label)}_{self._timestamp()}.json"
        )
        data = [
            {
                **asdict(listing),
                "price_target_minor_units": ProductNormalizer.convert_to_target(
                    listing.sale_price_minor_units
                ),
                "target_currency": Settings.TARGET_CURRENCY,
            }
            for listing in listings
        ]
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

        logger.info(
            "Saved %d listings for '%s' to %s", len(listings), label, filepath,
        )
        return filepath

    def save_draft(self, draft: ProductDraft) -> Path:
        """Save one imported draft as JSON, named after its SKU."""
        filepath = (
            self.results_dir
            / f"draft_{_slug(draft.sku)}_{self._timestamp()}.json"
        )
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(asdict(draft), f, ensure_ascii=False, indent=2)
        logger.info("Saved draft %s to %s", draft.sku, filepath)
        return filepath

    def export_csv(
        self, label: str, listings: list[SourceListing],
    ) -> Path:
        """Export listings to a human-readable CSV file in ranked order."""
        filepath = (
            self.results_dir / f"export_{_slug(label)}_{self._timestamp()}.csv"
        )
        with open(filepath, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow([
                "External ID",
                "Title",
                f"Price ({Settings.TARGET_CURRENCY})",
                "Rating",
                "Sales",
                "URL",
            ])
            for listing in listings:
                writer.writerow([
                    listing.external_id,
                    listing.title,
                    ProductNormalizer.convert_to_target(
                        listing.sale_price_minor_units
                    ),
                    listing.rating if listing.rating is not None else "",
                    listing.recent_sales_volume or 0,
                    listing.detail_url,
                ])

        logger.info(
            "Exported %d listings for '%s' to %s",
            len(listings),
            label,
            filepath,
        )
        return filepath
