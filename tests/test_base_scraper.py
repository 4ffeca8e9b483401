# tests/test_base_scraper.py

"""Tests for the shared retry loop and selector parsing of BaseScraper."""

import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from sourcing.errors import TransportError
from sourcing.models.draft import RawExtraction
from sourcing.scrapers.base_scraper import BaseScraper, absolute_image_url

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class DummyScraper(BaseScraper):
    """Concrete scraper for exercising the base class."""

    name = "dummy"

    async def extract(self, url: str, platform: str) -> RawExtraction:
        return RawExtraction()


def _resp(status: int, text: str = "") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.text = text
    return resp


class TestFetchGet(unittest.TestCase):
    """Retry and backoff behaviour of _fetch_get."""

    @patch("sourcing.scrapers.base_scraper.curl_requests.Session")
    def setUp(self, mock_session_cls: MagicMock) -> None:
        self.session = MagicMock()
        mock_session_cls.return_value = self.session
        self.scraper = DummyScraper()

    @patch("sourcing.scrapers.base_scraper.time.sleep")
    def test_retries_429_then_succeeds(self, mock_sleep: MagicMock) -> None:
        self.session.get.side_effect = [_resp(429), _resp(200, "ok")]

        resp = self.scraper._fetch_get("https://example.com")

        self.assertEqual(resp.text, "ok")
        self.assertEqual(self.session.get.call_count, 2)
        mock_sleep.assert_called_once_with(1.0)

    @patch("sourcing.scrapers.base_scraper.time.sleep")
    def test_backoff_doubles(self, mock_sleep: MagicMock) -> None:
        self.session.get.side_effect = [
            _resp(503), _resp(502), _resp(200),
        ]
        self.scraper._fetch_get("https://example.com")
        self.assertEqual(
            [c.args[0] for c in mock_sleep.call_args_list], [1.0, 2.0]
        )

    def test_non_retryable_status_raises_immediately(self) -> None:
        self.session.get.return_value = _resp(404)

        with self.assertRaises(TransportError) as ctx:
            self.scraper._fetch_get("https://example.com")

        self.assertEqual(ctx.exception.status_code, 404)
        self.assertEqual(self.session.get.call_count, 1)

    def test_gives_up_after_max_retries(self) -> None:
        self.session.get.return_value = _resp(503)

        with self.assertRaises(TransportError) as ctx:
            self.scraper._fetch_get("https://example.com")

        self.assertEqual(ctx.exception.status_code, 503)
        self.assertEqual(
            self.session.get.call_count, self.scraper.settings.MAX_RETRIES
        )

    def test_transport_exception_retried(self) -> None:
        self.session.get.side_effect = [
            ConnectionError("reset"), _resp(200, "ok"),
        ]
        resp = self.scraper._fetch_get("https://example.com")
        self.assertEqual(resp.text, "ok")

    def test_single_attempt(self) -> None:
        self.session.get.return_value = _resp(500)
        with self.assertRaises(TransportError):
            self.scraper._fetch_get("https://example.com", attempts=1)
        self.assertEqual(self.session.get.call_count, 1)


class TestSelectorParsing(unittest.TestCase):
    """_parse_with_selectors against a saved product page."""

    @patch("sourcing.scrapers.base_scraper.curl_requests.Session")
    def setUp(self, mock_session_cls: MagicMock) -> None:
        self.scraper = DummyScraper()
        with open(FIXTURES_DIR / "aliexpress_item.html", encoding="utf-8") as f:
            self.html = f.read()

    def test_fields_extracted(self) -> None:
        raw = self.scraper._parse_with_selectors(self.html, "aliexpress")
        self.assertEqual(raw.name, "Wireless Earbuds Bluetooth 5.3")
        self.assertEqual(raw.price_text, "US $12.99")
        self.assertIn("charging case", raw.description)

    def test_images_absolute_and_unique(self) -> None:
        raw = self.scraper._parse_with_selectors(self.html, "aliexpress")
        self.assertEqual(
            raw.images,
            [
                "https://ae01.alicdn.com/kf/earbuds-1.jpg",
                "https://ae01.alicdn.com/kf/earbuds-2.jpg",
            ],
        )

    def test_unknown_platform_yields_empty_record(self) -> None:
        raw = self.scraper._parse_with_selectors(self.html, "nowhere")
        self.assertEqual(raw.name, "")
        self.assertEqual(raw.images, [])

    def test_absolute_image_url(self) -> None:
        self.assertEqual(absolute_image_url("//a/b.jpg"), "https://a/b.jpg")
        self.assertEqual(absolute_image_url(None), "")
        self.assertEqual(absolute_image_url(" http://a "), "http://a")


if __name__ == "__main__":
    unittest.main()
