# sourcing/scrapers/extraction_api.py

"""Last fallback stage: a paid scraping API (ScraperAPI)."""

import asyncio

from sourcing.config.settings import Settings
from sourcing.errors import ConfigurationError, ExtractionFailure
from sourcing.models.draft import RawExtraction
from sourcing.scrapers.base_scraper import BaseScraper


class ExtractionApiScraper(BaseScraper):
    """Fetch through ScraperAPI with rendering and premium proxies."""

    name = "paid_extraction"

    def __init__(self, settings: Settings | None = None) -> None:
        super().__init__(settings)
        if not self.settings.SCRAPERAPI_API_KEY:
            raise ConfigurationError(["SCRAPERAPI_API_KEY"])

    def _fetch_html(self, url: str) -> str:
        resp = self._fetch_get(
            self.settings.SCRAPERAPI_URL,
            params={
                "api_key": self.settings.SCRAPERAPI_API_KEY,
                "url": url,
                "render": "true",
                "premium": "true",
                "country_code": self.settings.PROXY_COUNTRY,
            },
            timeout=self.settings.RENDER_TIMEOUT,
            attempts=1,
        )
        return resp.text

    async def extract(self, url: str, platform: str) -> RawExtraction:
        html = await asyncio.to_thread(self._fetch_html, url)
        raw = self._parse_with_selectors(html, platform)
        if not raw.name:
            raise ExtractionFailure(
                self.name, "selectors matched no product name"
            )
        self.logger.info("[%s] Extracted '%s'", self.name, raw.name[:60])
        return raw
