# sourcing/scrapers/structured_page.py

"""First fallback stage: fetch the page and read its structured data.

With a render-proxy key the page goes through ScrapingBee (JavaScript
rendering, premium egress, fixed wait).  Without one it is fetched
directly with a browser-impersonating session, then cloudscraper.
"""

import asyncio
import json
from typing import Any

import cloudscraper  # type: ignore[import-untyped]
from bs4 import BeautifulSoup

from sourcing.errors import ExtractionFailure, TransportError
from sourcing.models.draft import RawExtraction
from sourcing.scrapers.base_scraper import BaseScraper, absolute_image_url


def _json_ld_product(soup: BeautifulSoup) -> dict[str, Any]:
    """Return the first schema.org Product object embedded in the page."""
    for tag in soup.find_all(
        "script", type=lambda t: bool(t) and "ld+json" in t
    ):
        try:
            data = json.loads(tag.string or "{}")
        except (TypeError, ValueError):
            continue
        candidates: list[Any] = data if isinstance(data, list) else [data]
        if isinstance(data, dict) and isinstance(data.get("@graph"), list):
            candidates = data["@graph"]
        for item in candidates:
            if not isinstance(item, dict):
                continue
            kind = item.get("@type")
            kinds = kind if isinstance(kind, list) else [kind]
            if "Product" in kinds:
                return item
    return {}


def _offer_prices(product: dict[str, Any]) -> tuple[str, str]:
    """(sale price, list price) text from a Product's ``offers``."""
    offers = product.get("offers") or {}
    if isinstance(offers, list):
        offers = offers[0] if offers and isinstance(offers[0], dict) else {}
    if not isinstance(offers, dict):
        return "", ""
    sale = offers.get("price") or offers.get("lowPrice") or ""
    original = offers.get("highPrice") or ""
    return str(sale), str(original) if original != sale else ""


def _meta(soup: BeautifulSoup, *keys: str) -> str:
    for key in keys:
        tag = soup.find("meta", attrs={"property": key}) or soup.find(
            "meta", attrs={"name": key}
        )
        if tag and tag.get("content"):
            return str(tag["content"]).strip()
    return ""


def parse_structured(html: str, img_scan_limit: int = 10) -> RawExtraction:
    """Read name, price, images and description from *html*.

    Priority per field: schema.org Product JSON-LD, then social-preview
    meta tags, then the page heading/title, then the first
    *img_scan_limit* ``<img>`` tags for images.
    """
    soup = BeautifulSoup(html, "lxml")
    product = _json_ld_product(soup)
    raw = RawExtraction()

    raw.name = str(product.get("name") or "").strip() or _meta(
        soup, "og:title", "twitter:title"
    )
    if not raw.name:
        heading = soup.find("h1") or soup.title
        if heading:
            raw.name = heading.get_text(" ", strip=True)

    raw.price_text, raw.original_price_text = _offer_prices(product)
    if not raw.price_text:
        raw.price_text = _meta(
            soup, "product:price:amount", "og:price:amount"
        )

    images = product.get("image")
    if isinstance(images, str):
        images = [images]
    if isinstance(images, list):
        for image in images:
            if isinstance(image, dict):
                image = image.get("url")
            src = absolute_image_url(image if isinstance(image, str) else "")
            if src.startswith("http") and src not in raw.images:
                raw.images.append(src)
    if not raw.images:
        og_image = absolute_image_url(_meta(soup, "og:image", "twitter:image"))
        if og_image.startswith("http"):
            raw.images.append(og_image)
    if not raw.images:
        for img in soup.find_all("img", limit=img_scan_limit):
            src = absolute_image_url(
                str(img.get("src") or img.get("data-src") or "")
            )
            if src.startswith("http") and src not in raw.images:
                raw.images.append(src)

    raw.description = str(product.get("description") or "").strip() or _meta(
        soup, "og:description", "description"
    )
    return raw


class StructuredPageScraper(BaseScraper):
    """Render-proxy (or direct) fetch plus structured-data parsing."""

    name = "structured_parse"

    async def extract(self, url: str, platform: str) -> RawExtraction:
        html = await asyncio.to_thread(self._fetch_html, url, platform)
        raw = parse_structured(html, self.settings.IMG_SCAN_LIMIT)
        if not raw.name:
            raise ExtractionFailure(self.name, "no product name in page")
        self.logger.info("[%s] Extracted '%s'", self.name, raw.name[:60])
        return raw

    def _fetch_html(self, url: str, platform: str) -> str:
        if self.settings.SCRAPINGBEE_API_KEY:
            return self._fetch_rendered(url)
        return self._fetch_direct(url, platform)

    def _fetch_rendered(self, url: str) -> str:
        """Fetch through the render proxy with JS, premium proxy and a wait."""
        resp = self._fetch_get(
            self.settings.SCRAPINGBEE_URL,
            params={
                "api_key": self.settings.SCRAPINGBEE_API_KEY,
                "url": url,
                "render_js": "true",
                "premium_proxy": "true",
                "wait": str(self.settings.RENDER_WAIT_MS),
                "country_code": self.settings.PROXY_COUNTRY,
            },
            timeout=self.settings.RENDER_TIMEOUT,
        )
        return resp.text

    def _fetch_direct(self, url: str, platform: str) -> str:
        """curl_cffi first, cloudscraper when that is blocked or fails."""
        homepage = self.settings.SUPPORTED_PLATFORMS.get(platform, {}).get(
            "homepage", ""
        )
        headers: dict[str, str] = {
            **self.settings.DEFAULT_HEADERS,
            "Referer": homepage,
        }
        try:
            return self._fetch_get(url, headers=headers).text
        except TransportError as exc:
            self.logger.info(
                "[%s] curl_cffi failed (%s), falling back to cloudscraper",
                self.name,
                exc,
            )

        try:
            _cs: Any = cloudscraper
            scraper: Any = _cs.create_scraper()
            resp: Any = scraper.get(
                url,
                headers=headers,
                timeout=self.settings.REQUEST_TIMEOUT,
            )
        except Exception as exc:
            raise TransportError(f"cloudscraper: {exc}") from exc
        if resp.status_code != 200:
            raise TransportError(
                f"cloudscraper: HTTP {resp.status_code}",
                status_code=resp.status_code,
            )
        return str(resp.text)
