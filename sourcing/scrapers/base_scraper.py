# sourcing/scrapers/base_scraper.py

"""Abstract base class for the fallback retrieval strategies."""

import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any

from bs4 import BeautifulSoup
from curl_cffi import requests as curl_requests

from sourcing.config.settings import Settings
from sourcing.errors import TransportError
from sourcing.models.draft import RawExtraction

RETRYABLE_STATUS: frozenset[int] = frozenset({429, 500, 502, 503, 504})


def absolute_image_url(src: str | None) -> str:
    """Upgrade protocol-relative ``//cdn...`` sources to https."""
    if not src:
        return ""
    src = src.strip()
    if src.startswith("//"):
        return "https:" + src
    return src


class BaseScraper(ABC):
    """One strategy of the fallback chain: product URL in, raw fields out."""

    name: str = "base"

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings()
        self.logger = logging.getLogger(f"product_sourcing.{self.name}")
        self.selectors: dict[str, dict[str, str]] = self._load_selectors()
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )

    def _load_selectors(self) -> dict[str, dict[str, str]]:
        """Load the per-platform CSS selectors from selectors.json."""
        with open(self.settings.SELECTORS_PATH) as f:
            all_selectors: dict[str, dict[str, str]] = json.load(f)
        return all_selectors

    def selectors_for(self, platform: str) -> dict[str, str]:
        return self.selectors.get(platform, {})

    def _fetch_get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: int | None = None,
        attempts: int | None = None,
    ) -> curl_requests.Response:
        """GET with exponential backoff on 429/5xx and transport errors.

        Other non-2xx codes are permanent for this attempt and raise
        immediately.  Raises TransportError once attempts run out.
        """
        max_attempts = attempts or self.settings.MAX_RETRIES
        last_error: TransportError | None = None

        for attempt in range(max_attempts):
            try:
                resp = self.session.get(
                    url,
                    params=params,
                    headers=headers,
                    timeout=timeout or self.settings.REQUEST_TIMEOUT,
                )
            except Exception as exc:
                self.logger.warning(
                    "[%s] Request error on attempt %d: %s",
                    self.name,
                    attempt + 1,
                    exc,
                    exc_info=True,
                )
                last_error = TransportError(str(exc))
            else:
                if 200 <= resp.status_code < 300:
                    return resp
                self.logger.warning(
                    "[%s] HTTP %d on attempt %d",
                    self.name,
                    resp.status_code,
                    attempt + 1,
                )
                last_error = TransportError(
                    f"HTTP {resp.status_code}",
                    status_code=resp.status_code,
                )
                if resp.status_code not in RETRYABLE_STATUS:
                    raise last_error

            if attempt + 1 < max_attempts:
                time.sleep(self.settings.BACKOFF_BASE_DELAY * 2 ** attempt)

        raise last_error or TransportError("No attempts made")

    def _parse_with_selectors(
        self, html: str, platform: str,
    ) -> RawExtraction:
        """Extract the four product fields with the platform's CSS selectors."""
        selectors = self.selectors_for(platform)
        soup = BeautifulSoup(html, "lxml")
        raw = RawExtraction()

        if selectors.get("name"):
            tag = soup.select_one(selectors["name"])
            if tag:
                raw.name = tag.get_text(" ", strip=True)

        if selectors.get("price"):
            tag = soup.select_one(selectors["price"])
            if tag:
                raw.price_text = tag.get_text(" ", strip=True)

        if selectors.get("images"):
            for img in soup.select(selectors["images"]):
                src = absolute_image_url(
                    str(img.get("src") or img.get("data-src") or "")
                )
                if src.startswith("http") and src not in raw.images:
                    raw.images.append(src)

        if selectors.get("description"):
            tag = soup.select_one(selectors["description"])
            if tag:
                raw.description = tag.get_text(" ", strip=True)

        return raw

    @abstractmethod
    async def extract(self, url: str, platform: str) -> RawExtraction:
        """Fetch *url* and return its raw fields.

        Raises ExtractionFailure or TransportError when nothing usable
        could be retrieved.
        """
        ...
