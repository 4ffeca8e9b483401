# tests/test_normalizer.py

"""Tests for price parsing and draft normalisation."""

import unittest
from decimal import Decimal

from sourcing.config.settings import Settings
from sourcing.errors import UnsupportedSourceError
from sourcing.models.draft import RawExtraction
from sourcing.models.listing import SourceListing
from sourcing.services.normalizer import (
    ProductNormalizer,
    detect_platform,
    validate_product_url,
)


class TestParseAmount(unittest.TestCase):
    """Separator-aware number parsing."""

    def test_formats(self) -> None:
        cases = {
            "US $1,299.00": Decimal("1299.00"),
            "1.299,50 €": Decimal("1299.50"),
            "12,5": Decimal("12.5"),
            "1,299": Decimal("1299"),
            "1.299.000": Decimal("1299000"),
            "€ 4.99 - 9.99": Decimal("4.99"),
            "USD 0.00": Decimal("0.00"),
        }
        for text, expected in cases.items():
            with self.subTest(text=text):
                self.assertEqual(ProductNormalizer.parse_amount(text), expected)

    def test_numbers_and_garbage(self) -> None:
        self.assertEqual(ProductNormalizer.parse_amount(3.5), Decimal("3.5"))
        self.assertEqual(ProductNormalizer.parse_amount(7), Decimal("7"))
        self.assertIsNone(ProductNormalizer.parse_amount("free"))
        self.assertIsNone(ProductNormalizer.parse_amount(None))
        self.assertIsNone(ProductNormalizer.parse_amount(""))


class TestPrices(unittest.TestCase):
    """Conversion, defaults and original-price derivation."""

    def test_conversion_uses_fixed_rate(self) -> None:
        self.assertEqual(ProductNormalizer.convert_to_target(1000), 6550)
        self.assertEqual(ProductNormalizer.convert_to_target(1250), 8188)

    def test_zero_price_text_uses_platform_default(self) -> None:
        self.assertEqual(
            ProductNormalizer.price_from_text("USD 0.00", "aliexpress"),
            Settings.DEFAULT_PRICES["aliexpress"],
        )
        self.assertEqual(
            ProductNormalizer.price_from_text("", "alibaba"),
            Settings.DEFAULT_PRICES["alibaba"],
        )
        self.assertNotEqual(
            Settings.DEFAULT_PRICES["aliexpress"],
            Settings.DEFAULT_PRICES["alibaba"],
        )

    def test_non_positive_texts_never_emit_zero(self) -> None:
        for text in ("0", "0,00", "-5", "n/a", "$0.001"):
            with self.subTest(text=text):
                self.assertGreater(
                    ProductNormalizer.price_from_text(text, "aliexpress"), 0
                )

    def test_valid_price_text(self) -> None:
        self.assertEqual(
            ProductNormalizer.price_from_text("US $10.00", "aliexpress"),
            6550,
        )

    def test_original_price_kept_when_higher(self) -> None:
        self.assertEqual(
            ProductNormalizer.derive_original_price(1000, 2000), 2000
        )

    def test_original_price_synthesised(self) -> None:
        for sale, original in ((1000, None), (1000, 1000), (8188, 500)):
            with self.subTest(sale=sale, original=original):
                self.assertEqual(
                    ProductNormalizer.derive_original_price(sale, original),
                    round(sale * 1.3),
                )


class TestText(unittest.TestCase):
    """Name, description and image clean-up."""

    def test_name_whitespace_collapsed(self) -> None:
        self.assertEqual(ProductNormalizer.normalize_name("  a   b "), "a b")

    def test_name_truncated(self) -> None:
        name = ProductNormalizer.normalize_name("word " * 100)
        self.assertLessEqual(len(name), 200)
        self.assertFalse(name.endswith(" "))

    def test_empty_name_placeholder(self) -> None:
        self.assertEqual(
            ProductNormalizer.normalize_name(" \n\t "),
            Settings.PLACEHOLDER_TITLE,
        )
        self.assertEqual(
            ProductNormalizer.normalize_name(None), Settings.PLACEHOLDER_TITLE
        )

    def test_shorten(self) -> None:
        self.assertEqual(ProductNormalizer.shorten("abc", 10), "abc")
        short = ProductNormalizer.shorten("x" * 200, 150)
        self.assertEqual(len(short), 150)
        self.assertTrue(short.endswith("..."))

    def test_images_filtered_and_capped(self) -> None:
        urls = [
            "ftp://files/a.jpg",
            "/relative.jpg",
            "https://",
            "https://img/1.jpg",
            "https://img/1.jpg",
            "http://img/2.jpg",
            "https://img/3.jpg",
            "https://img/4.jpg",
            "https://img/5.jpg",
            "https://img/6.jpg",
        ]
        kept = ProductNormalizer.filter_images(urls)
        self.assertEqual(
            kept,
            [
                "https://img/1.jpg",
                "http://img/2.jpg",
                "https://img/3.jpg",
                "https://img/4.jpg",
                "https://img/5.jpg",
            ],
        )

    def test_filter_images_skips_malformed_urls(self) -> None:
        kept = ProductNormalizer.filter_images(
            ["http://[broken", "https://ok.example/a.jpg"]
        )
        self.assertEqual(kept, ["https://ok.example/a.jpg"])


class TestDrafts(unittest.TestCase):
    """from_raw / from_listing."""

    def test_from_raw(self) -> None:
        raw = RawExtraction(
            name="  Smart   Watch  ",
            price_text="US $20.00",
            images=["https://img/w.jpg", "data:image/png;base64,xx"],
            description="A watch. " * 40,
        )
        draft = ProductNormalizer.from_raw(
            raw,
            "https://www.aliexpress.com/item/77.html",
            "aliexpress",
            "structured_parse",
            external_id="77",
        )
        self.assertEqual(draft.name, "Smart Watch")
        self.assertEqual(draft.price_minor_units, 13100)
        self.assertEqual(draft.original_price_minor_units, round(13100 * 1.3))
        self.assertEqual(draft.image_urls, ["https://img/w.jpg"])
        self.assertLessEqual(len(draft.short_description), 150)
        self.assertEqual(draft.sku, "AE-77")
        self.assertEqual(draft.stock_quantity, 100)
        self.assertEqual(draft.source_platform, "aliexpress")
        self.assertEqual(draft.specifications["Source"], "structured_parse")

    def test_from_raw_zero_price_and_empty_fields(self) -> None:
        raw = RawExtraction(name="", price_text="USD 0.00")
        draft = ProductNormalizer.from_raw(
            raw, "https://www.alibaba.com/product-detail/x.html",
            "alibaba", "headless_render",
        )
        self.assertEqual(draft.price_minor_units, 10000)
        self.assertEqual(draft.name, Settings.PLACEHOLDER_TITLE)
        self.assertEqual(draft.description, Settings.PLACEHOLDER_DESCRIPTION)
        self.assertRegex(draft.sku, r"^AB-[0-9A-F]{12}$")

    def test_from_raw_keeps_higher_original_price(self) -> None:
        raw = RawExtraction(
            name="Bag", price_text="$10", original_price_text="$15",
        )
        draft = ProductNormalizer.from_raw(
            raw, "https://www.aliexpress.com/item/1.html", "aliexpress", "s",
        )
        self.assertEqual(draft.original_price_minor_units, 9825)

    def test_from_listing(self) -> None:
        listing = SourceListing(
            external_id="123",
            title="Blue Phone Case",
            sale_price_minor_units=1250,
            main_image_url="https://img/1.jpg",
            extra_image_urls=["https://img/2.jpg", "not-a-url"],
            rating=4.7,
            recent_sales_volume=321,
        )
        draft = ProductNormalizer.from_listing(listing)
        self.assertEqual(draft.sku, "AE-DS-123")
        self.assertEqual(draft.price_minor_units, 8188)
        self.assertEqual(draft.original_price_minor_units, round(8188 * 1.3))
        self.assertEqual(
            draft.image_urls, ["https://img/1.jpg", "https://img/2.jpg"]
        )
        self.assertIn("Rating: 4.7", draft.description)
        self.assertIn("Recent sales: 321", draft.description)
        self.assertEqual(
            draft.source_url, "https://www.aliexpress.com/item/123.html"
        )
        self.assertEqual(draft.specifications["Product ID"], "123")

    def test_from_listing_without_price(self) -> None:
        listing = SourceListing(
            external_id="9", title="", sale_price_minor_units=0,
        )
        draft = ProductNormalizer.from_listing(listing)
        self.assertEqual(
            draft.price_minor_units, Settings.DEFAULT_PRICES["aliexpress"]
        )
        self.assertEqual(draft.name, Settings.PLACEHOLDER_TITLE)


class TestPlatformDetection(unittest.TestCase):
    """detect_platform / validate_product_url."""

    def test_detects_supported_domains(self) -> None:
        self.assertEqual(
            detect_platform("https://fr.aliexpress.com/item/1.html"),
            "aliexpress",
        )
        self.assertEqual(
            detect_platform("https://www.alibaba.com/product-detail/x.html"),
            "alibaba",
        )
        self.assertIsNone(detect_platform("https://www.amazon.com/dp/1"))

    def test_validate_rejects_bad_scheme_and_domain(self) -> None:
        for url in (
            "ftp://www.aliexpress.com/item/1.html",
            "www.aliexpress.com/item/1.html",
            "https://www.amazon.com/dp/1",
        ):
            with self.subTest(url=url):
                with self.assertRaises(UnsupportedSourceError):
                    validate_product_url(url)

    def test_validate_returns_platform(self) -> None:
        self.assertEqual(
            validate_product_url("https://www.aliexpress.us/item/5.html"),
            "aliexpress",
        )


if __name__ == "__main__":
    unittest.main()
