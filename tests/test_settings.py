# tests/test_settings.py

"""Tests for the Settings configuration class."""

import json
import unittest
from pathlib import Path

from sourcing.config.settings import Settings


class TestSettings(unittest.TestCase):
    """Verify Settings constants and platform registry."""

    def test_request_timeout_is_positive_int(self) -> None:
        """REQUEST_TIMEOUT must be a positive integer."""
        self.assertIsInstance(Settings.REQUEST_TIMEOUT, int)
        self.assertGreater(Settings.REQUEST_TIMEOUT, 0)

    def test_max_retries_is_positive(self) -> None:
        """MAX_RETRIES must be >= 1."""
        self.assertGreaterEqual(Settings.MAX_RETRIES, 1)

    def test_feed_cache_ttl_positive(self) -> None:
        self.assertGreater(Settings.FEED_CACHE_TTL, 0)

    def test_feed_names_unique(self) -> None:
        self.assertEqual(
            len(Settings.AVAILABLE_FEEDS), len(set(Settings.AVAILABLE_FEEDS))
        )

    def test_page_size_within_feed_limit(self) -> None:
        self.assertLessEqual(
            Settings.DEFAULT_PAGE_SIZE, Settings.MAX_FEED_PAGE_SIZE
        )

    def test_each_platform_has_required_keys(self) -> None:
        """Every platform must have domain, label, sku_prefix and homepage."""
        for platform_id, info in Settings.SUPPORTED_PLATFORMS.items():
            with self.subTest(platform=platform_id):
                for key in ("domain", "label", "sku_prefix", "homepage"):
                    self.assertIn(key, info)

    def test_api_platform_is_supported(self) -> None:
        self.assertIn(Settings.API_PLATFORM, Settings.SUPPORTED_PLATFORMS)

    def test_default_prices_positive_per_platform(self) -> None:
        for platform_id in Settings.SUPPORTED_PLATFORMS:
            with self.subTest(platform=platform_id):
                self.assertGreater(Settings.DEFAULT_PRICES[platform_id], 0)

    def test_pricing_constants(self) -> None:
        self.assertEqual(Settings.TARGET_CURRENCY, "XOF")
        self.assertEqual(Settings.EXCHANGE_RATE, 655.0)
        self.assertEqual(Settings.ORIGINAL_PRICE_MARKUP, 1.3)

    def test_path_constants_are_paths(self) -> None:
        """Path-typed settings are Path instances."""
        self.assertIsInstance(Settings.BASE_DIR, Path)
        self.assertIsInstance(Settings.SELECTORS_PATH, Path)
        self.assertIsInstance(Settings.RESULTS_DIR, Path)
        self.assertIsInstance(Settings.LOGS_DIR, Path)
        self.assertIsInstance(Settings.CREDENTIAL_DB_PATH, Path)

    def test_selectors_cover_every_platform(self) -> None:
        """selectors.json must define the four fields for each platform."""
        with open(Settings.SELECTORS_PATH) as f:
            selectors = json.load(f)
        for platform_id in Settings.SUPPORTED_PLATFORMS:
            with self.subTest(platform=platform_id):
                self.assertEqual(
                    set(selectors[platform_id]),
                    {"name", "price", "images", "description"},
                )

    def test_impersonate_browser_is_string(self) -> None:
        """IMPERSONATE_BROWSER must be a non-empty string."""
        self.assertIsInstance(Settings.IMPERSONATE_BROWSER, str)
        self.assertTrue(len(Settings.IMPERSONATE_BROWSER) > 0)

    def test_user_agent_pool_not_empty(self) -> None:
        self.assertGreater(len(Settings.USER_AGENTS), 1)

    def test_jitter_range_ordered(self) -> None:
        low, high = Settings.JITTER_RANGE
        self.assertLessEqual(low, high)


if __name__ == "__main__":
    unittest.main()
