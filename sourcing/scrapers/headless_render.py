# sourcing/scrapers/headless_render.py

"""Second fallback stage: render the page in a headless Chromium."""

import asyncio
import random

from playwright.async_api import async_playwright

from sourcing.errors import ExtractionFailure
from sourcing.models.draft import RawExtraction
from sourcing.scrapers.base_scraper import BaseScraper


class HeadlessRenderScraper(BaseScraper):
    """Playwright render with a rotated user agent and jittered pacing.

    The browser is closed on every exit path, including navigation
    errors and timeouts.
    """

    name = "headless_render"

    def _jitter(self) -> float:
        low, high = self.settings.JITTER_RANGE
        return random.uniform(low, high)

    async def _render(self, url: str) -> str:
        user_agent = random.choice(self.settings.USER_AGENTS)
        launch_args = [] if self.settings.BROWSER_SANDBOX else ["--no-sandbox"]

        async with async_playwright() as pw:
            browser = await pw.chromium.launch(
                headless=True,
                chromium_sandbox=self.settings.BROWSER_SANDBOX,
                args=launch_args,
            )
            try:
                context = await browser.new_context(
                    user_agent=user_agent,
                    viewport={"width": 1366, "height": 768},
                    extra_http_headers={
                        "Accept-Language": self.settings.DEFAULT_HEADERS[
                            "Accept-Language"
                        ],
                    },
                )
                page = await context.new_page()
                await asyncio.sleep(self._jitter())
                await page.goto(
                    url,
                    wait_until="domcontentloaded",
                    timeout=self.settings.NAVIGATION_TIMEOUT_MS,
                )
                await page.wait_for_timeout(self.settings.RENDER_WAIT_MS)
                await asyncio.sleep(self._jitter())
                return await page.content()
            finally:
                await browser.close()
                self.logger.debug("[%s] Browser closed", self.name)

    async def extract(self, url: str, platform: str) -> RawExtraction:
        html = await self._render(url)
        raw = self._parse_with_selectors(html, platform)
        if not raw.name:
            raise ExtractionFailure(
                self.name, "selectors matched no product name"
            )
        self.logger.info("[%s] Extracted '%s'", self.name, raw.name[:60])
        return raw
