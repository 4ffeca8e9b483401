# tests/test_headless_render.py

"""Tests for the headless-browser stage with a mocked Playwright."""

import unittest
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

from sourcing.config.settings import Settings
from sourcing.errors import ExtractionFailure
from sourcing.scrapers.headless_render import HeadlessRenderScraper

FIXTURES_DIR = Path(__file__).parent / "fixtures"
PLAYWRIGHT_PATH = "sourcing.scrapers.headless_render.async_playwright"


def _playwright(html: str) -> tuple[MagicMock, MagicMock, MagicMock]:
    """Build (async_playwright factory, browser, page) mocks."""
    page = MagicMock()
    page.goto = AsyncMock()
    page.wait_for_timeout = AsyncMock()
    page.content = AsyncMock(return_value=html)

    context = MagicMock()
    context.new_page = AsyncMock(return_value=page)

    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()

    pw = MagicMock()
    pw.chromium.launch = AsyncMock(return_value=browser)

    manager = MagicMock()
    manager.__aenter__ = AsyncMock(return_value=pw)
    manager.__aexit__ = AsyncMock(return_value=False)

    factory = MagicMock(return_value=manager)
    return factory, browser, page


class TestHeadlessRender(unittest.IsolatedAsyncioTestCase):
    """HeadlessRenderScraper.extract behaviour."""

    @patch("sourcing.scrapers.base_scraper.curl_requests.Session")
    def setUp(self, mock_session_cls: MagicMock) -> None:
        self.settings = Settings()
        self.settings.BROWSER_SANDBOX = True
        self.scraper = HeadlessRenderScraper(self.settings)
        self.scraper._jitter = MagicMock(return_value=0.0)  # type: ignore[method-assign]
        with open(FIXTURES_DIR / "aliexpress_item.html", encoding="utf-8") as f:
            self.html = f.read()

    async def test_renders_and_parses(self) -> None:
        factory, browser, page = _playwright(self.html)
        with patch(PLAYWRIGHT_PATH, factory):
            raw = await self.scraper.extract(
                "https://www.aliexpress.com/item/1.html", "aliexpress"
            )

        self.assertEqual(raw.name, "Wireless Earbuds Bluetooth 5.3")
        self.assertEqual(raw.price_text, "US $12.99")
        page.goto.assert_awaited_once()
        self.assertEqual(
            page.goto.call_args.kwargs["timeout"],
            Settings.NAVIGATION_TIMEOUT_MS,
        )
        page.wait_for_timeout.assert_awaited_once_with(Settings.RENDER_WAIT_MS)
        browser.close.assert_awaited_once()

    async def test_user_agent_rotated_from_pool(self) -> None:
        factory, browser, _ = _playwright(self.html)
        with patch(PLAYWRIGHT_PATH, factory):
            await self.scraper.extract(
                "https://www.aliexpress.com/item/1.html", "aliexpress"
            )
        user_agent = browser.new_context.call_args.kwargs["user_agent"]
        self.assertIn(user_agent, Settings.USER_AGENTS)

    async def test_sandbox_disabled_adds_flag(self) -> None:
        self.settings.BROWSER_SANDBOX = False
        factory, _, _ = _playwright(self.html)
        with patch(PLAYWRIGHT_PATH, factory):
            await self.scraper.extract(
                "https://www.aliexpress.com/item/1.html", "aliexpress"
            )
        pw = factory.return_value.__aenter__.return_value
        launch_kwargs = pw.chromium.launch.call_args.kwargs
        self.assertFalse(launch_kwargs["chromium_sandbox"])
        self.assertIn("--no-sandbox", launch_kwargs["args"])

    async def test_browser_closed_on_navigation_error(self) -> None:
        factory, browser, page = _playwright(self.html)
        page.goto.side_effect = TimeoutError("navigation timed out")

        with patch(PLAYWRIGHT_PATH, factory):
            with self.assertRaises(TimeoutError):
                await self.scraper.extract(
                    "https://www.aliexpress.com/item/1.html", "aliexpress"
                )

        browser.close.assert_awaited_once()

    async def test_no_name_is_failure(self) -> None:
        factory, browser, _ = _playwright("<html><body></body></html>")
        with patch(PLAYWRIGHT_PATH, factory):
            with self.assertRaises(ExtractionFailure):
                await self.scraper.extract(
                    "https://www.aliexpress.com/item/1.html", "aliexpress"
                )
        browser.close.assert_awaited_once()


if __name__ == "__main__":
    unittest.main()
