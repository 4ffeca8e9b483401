# sourcing/services/fallback_chain.py

"""First-success-wins chain of page retrieval strategies.

Stages run strictly in order, each at most once.  A stage fails when
it raises or returns no product name; the next stage is then tried.
When every stage fails the chain returns None, never a partial draft.
"""

import logging
from collections.abc import Sequence

from sourcing.config.settings import Settings
from sourcing.errors import ConfigurationError, ExtractionFailure
from sourcing.models.draft import ProductDraft
from sourcing.scrapers.base_scraper import BaseScraper
from sourcing.scrapers.extraction_api import ExtractionApiScraper
from sourcing.scrapers.headless_render import HeadlessRenderScraper
from sourcing.scrapers.structured_page import StructuredPageScraper
from sourcing.services.normalizer import ProductNormalizer, detect_platform

logger = logging.getLogger("product_sourcing.fallback")


class FallbackChain:
    """Iterates strategies until one yields a usable record."""

    def __init__(self, strategies: Sequence[BaseScraper]) -> None:
        self.strategies = list(strategies)
        self.failures: list[ExtractionFailure] = []

    @property
    def strategy_names(self) -> list[str]:
        return [s.name for s in self.strategies]

    async def resolve(
        self,
        url: str,
        platform: str | None = None,
        external_id: str | None = None,
    ) -> ProductDraft | None:
        """Return a normalised draft for *url*, or None if every stage fails.

        ``failures`` holds one entry per failed stage of this call.
        """
        self.failures = []
        platform = platform or detect_platform(url) or Settings.API_PLATFORM

        for strategy in self.strategies:
            logger.info("Trying %s for %s", strategy.name, url)
            try:
                raw = await strategy.extract(url, platform)
            except Exception as exc:
                logger.warning(
                    "Stage %s failed: %s",
                    strategy.name,
                    exc,
                    exc_info=True,
                )
                self.failures.append(
                    exc if isinstance(exc, ExtractionFailure)
                    else ExtractionFailure(strategy.name, str(exc))
                )
                continue

            if not raw.name.strip():
                logger.warning("Stage %s returned no name", strategy.name)
                self.failures.append(
                    ExtractionFailure(strategy.name, "empty product name")
                )
                continue

            draft = ProductNormalizer.from_raw(
                raw, url, platform, strategy.name, external_id,
            )
            logger.info(
                "Resolved %s via %s (price %d %s)",
                url,
                strategy.name,
                draft.price_minor_units,
                Settings.TARGET_CURRENCY,
            )
            return draft

        logger.error(
            "All %d strategies failed for %s", len(self.strategies), url,
        )
        return None


def build_default_chain(settings: Settings | None = None) -> FallbackChain:
    """Structured parse, headless render, then the paid API when keyed.

    At least one extraction-service key must be configured.
    """
    settings = settings or Settings()
    if not settings.SCRAPINGBEE_API_KEY and not settings.SCRAPERAPI_API_KEY:
        raise ConfigurationError(
            ["SCRAPINGBEE_API_KEY or SCRAPERAPI_API_KEY"]
        )

    strategies: list[BaseScraper] = [
        StructuredPageScraper(settings),
        HeadlessRenderScraper(settings),
    ]
    if settings.SCRAPERAPI_API_KEY:
        strategies.append(ExtractionApiScraper(settings))
    return FallbackChain(strategies)
