# tests/test_structured_page.py

"""Tests for the structured-data stage using saved pages and mocked HTTP."""

import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from sourcing.config.settings import Settings
from sourcing.errors import ExtractionFailure, TransportError
from sourcing.scrapers.structured_page import (
    StructuredPageScraper,
    parse_structured,
)

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def _resp(status: int, text: str = "") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.text = text
    return resp


class TestParseStructured(unittest.TestCase):
    """parse_structured field priority."""

    def test_json_ld_product_wins(self) -> None:
        with open(FIXTURES_DIR / "structured_item.html", encoding="utf-8") as f:
            raw = parse_structured(f.read())
        self.assertEqual(raw.name, "Smart Watch S8")
        self.assertEqual(raw.price_text, "25.50")
        self.assertEqual(raw.original_price_text, "40.00")
        self.assertEqual(
            raw.images,
            ["https://cdn.example.com/w1.jpg", "https://cdn.example.com/w2.jpg"],
        )
        self.assertEqual(raw.description, "Fitness tracking smart watch.")

    def test_meta_tags_when_no_json_ld(self) -> None:
        html = (
            '<html><head>'
            '<meta property="og:title" content="Desk Lamp">'
            '<meta property="og:image" content="//cdn/lamp.jpg">'
            '<meta property="product:price:amount" content="9.90">'
            '<meta name="description" content="LED lamp">'
            '</head><body><h1>Other</h1></body></html>'
        )
        raw = parse_structured(html)
        self.assertEqual(raw.name, "Desk Lamp")
        self.assertEqual(raw.price_text, "9.90")
        self.assertEqual(raw.images, ["https://cdn/lamp.jpg"])
        self.assertEqual(raw.description, "LED lamp")

    def test_heading_and_img_scan_fallback(self) -> None:
        imgs = "".join(
            f'<img src="https://cdn/{i}.jpg">' for i in range(15)
        )
        html = f"<html><body><h1> Plain  Item </h1>{imgs}</body></html>"
        raw = parse_structured(html, img_scan_limit=10)
        self.assertEqual(raw.name, "Plain  Item")
        self.assertEqual(len(raw.images), 10)
        self.assertEqual(raw.price_text, "")

    def test_malformed_json_ld_ignored(self) -> None:
        html = (
            '<html><head><script type="application/ld+json">{not json'
            "</script><title>Fallback</title></head></html>"
        )
        self.assertEqual(parse_structured(html).name, "Fallback")


class TestStructuredPageScraper(unittest.IsolatedAsyncioTestCase):
    """Fetch routing of StructuredPageScraper."""

    @patch("sourcing.scrapers.base_scraper.curl_requests.Session")
    def _scraper(
        self, mock_session_cls: MagicMock, bee_key: str = "",
    ) -> StructuredPageScraper:
        mock_session_cls.return_value = MagicMock()
        settings = Settings()
        settings.SCRAPINGBEE_API_KEY = bee_key
        return StructuredPageScraper(settings)

    async def test_render_proxy_params(self) -> None:
        scraper = self._scraper(bee_key="bee-key")
        with open(FIXTURES_DIR / "structured_item.html", encoding="utf-8") as f:
            scraper.session.get.return_value = _resp(200, f.read())

        raw = await scraper.extract(
            "https://www.aliexpress.com/item/1.html", "aliexpress"
        )

        self.assertEqual(raw.name, "Smart Watch S8")
        args, kwargs = scraper.session.get.call_args
        self.assertEqual(args[0], Settings.SCRAPINGBEE_URL)
        params = kwargs["params"]
        self.assertEqual(params["api_key"], "bee-key")
        self.assertEqual(params["url"], "https://www.aliexpress.com/item/1.html")
        self.assertEqual(params["render_js"], "true")
        self.assertEqual(params["premium_proxy"], "true")
        self.assertEqual(params["wait"], "3000")
        self.assertEqual(params["country_code"], "fr")
        self.assertEqual(kwargs["timeout"], Settings.RENDER_TIMEOUT)

    async def test_direct_fetch_sends_referer(self) -> None:
        scraper = self._scraper()
        scraper.session.get.return_value = _resp(
            200, "<html><h1>Bag</h1></html>"
        )

        raw = await scraper.extract(
            "https://www.alibaba.com/product-detail/bag.html", "alibaba"
        )

        self.assertEqual(raw.name, "Bag")
        headers = scraper.session.get.call_args.kwargs["headers"]
        self.assertEqual(headers["Referer"], "https://www.alibaba.com/")

    @patch("sourcing.scrapers.structured_page.cloudscraper.create_scraper")
    async def test_cloudscraper_fallback(self, mock_create: MagicMock) -> None:
        scraper = self._scraper()
        scraper.session.get.return_value = _resp(403)
        mock_create.return_value.get.return_value = _resp(
            200, "<html><title>Recovered</title></html>"
        )

        raw = await scraper.extract(
            "https://www.aliexpress.com/item/1.html", "aliexpress"
        )

        self.assertEqual(raw.name, "Recovered")
        mock_create.return_value.get.assert_called_once()

    @patch("sourcing.scrapers.structured_page.cloudscraper.create_scraper")
    async def test_cloudscraper_blocked_raises(
        self, mock_create: MagicMock,
    ) -> None:
        scraper = self._scraper()
        scraper.session.get.return_value = _resp(403)
        mock_create.return_value.get.return_value = _resp(503)

        with self.assertRaises(TransportError):
            await scraper.extract(
                "https://www.aliexpress.com/item/1.html", "aliexpress"
            )

    async def test_nameless_page_is_failure(self) -> None:
        scraper = self._scraper()
        scraper.session.get.return_value = _resp(200, "<html></html>")
        with self.assertRaises(ExtractionFailure):
            await scraper.extract(
                "https://www.aliexpress.com/item/1.html", "aliexpress"
            )


if __name__ == "__main__":
    unittest.main()
