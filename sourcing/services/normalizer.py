# sourcing/services/normalizer.py

"""Price and record normalisation into :class:`ProductDraft`.

Source prices arrive in US dollars (text from scraped pages, or minor
units from the API) and leave as target-currency minor units.  The
exchange rate is a fixed linear approximation, not a live quote.
"""

import hashlib
import logging
import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from urllib.parse import urlparse

from sourcing.config.settings import Settings
from sourcing.errors import UnsupportedSourceError
from sourcing.models.draft import ProductDraft, RawExtraction
from sourcing.models.listing import SourceListing

logger = logging.getLogger("product_sourcing.normalizer")

_AMOUNT_RE = re.compile(r"\d[\d.,]*")
_WHITESPACE_RE = re.compile(r"\s+")


def detect_platform(url: str) -> str | None:
    """Return the supported platform id whose domain appears in *url*."""
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return None
    for platform_id, info in Settings.SUPPORTED_PLATFORMS.items():
        if info["domain"] in host:
            return platform_id
    return None


def validate_product_url(url: str) -> str:
    """Check *url* is an absolute http(s) URL on a supported platform.

    Returns the platform id; raises UnsupportedSourceError otherwise.
    """
    try:
        parsed = urlparse(url.strip())
    except (AttributeError, ValueError) as exc:
        raise UnsupportedSourceError(f"Invalid URL: {url!r}") from exc
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise UnsupportedSourceError(f"Not an http(s) URL: {url!r}")
    platform = detect_platform(url.strip())
    if platform is None:
        supported = ", ".join(
            info["label"] for info in Settings.SUPPORTED_PLATFORMS.values()
        )
        raise UnsupportedSourceError(
            f"Unsupported platform for {url!r} (supported: {supported})"
        )
    return platform


class ProductNormalizer:
    """Turn raw listings and page extractions into product drafts."""

    # ── Prices ───────────────────────────────────────────

    @staticmethod
    def parse_amount(
        value: str | float | int | None,
    ) -> Decimal | None:
        """Parse the first number in *value*, e.g. ``'US $1,299.00'``.

        Both ``.`` and ``,`` are accepted as decimal separators; the
        right-most one wins when both appear, and a lone ``,`` followed
        by three digits is read as a thousands separator.
        """
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            try:
                return Decimal(str(value))
            except InvalidOperation:
                return None

        match = _AMOUNT_RE.search(value)
        if not match:
            return None
        token = match.group(0).rstrip(".,")

        if "," in token and "." in token:
            if token.rfind(",") > token.rfind("."):
                token = token.replace(".", "").replace(",", ".")
            else:
                token = token.replace(",", "")
        elif "," in token:
            head, _, tail = token.rpartition(",")
            if token.count(",") == 1 and 1 <= len(tail) <= 2:
                token = f"{head}.{tail}"
            else:
                token = token.replace(",", "")
        elif token.count(".") > 1:
            head, _, tail = token.rpartition(".")
            if len(tail) == 3:
                token = token.replace(".", "")
            else:
                token = head.replace(".", "") + "." + tail

        try:
            return Decimal(token)
        except InvalidOperation:
            return None

    @staticmethod
    def to_source_minor(amount: Decimal) -> int:
        """Convert a source-currency amount to source minor units."""
        scaled = amount * Settings.SOURCE_MINOR_PER_UNIT
        return int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_UP))

    @staticmethod
    def convert_to_target(source_minor_units: int) -> int:
        """Convert source minor units to target minor units at the fixed rate."""
        amount = (
            Decimal(source_minor_units)
            / Settings.SOURCE_MINOR_PER_UNIT
            * Decimal(str(Settings.EXCHANGE_RATE))
            * Settings.TARGET_MINOR_PER_UNIT
        )
        return int(amount.quantize(Decimal(1), rounding=ROUND_HALF_UP))

    @staticmethod
    def default_price(platform: str) -> int:
        """Platform-specific fallback price in target minor units."""
        defaults = Settings.DEFAULT_PRICES
        return defaults.get(platform, min(defaults.values()))

    @classmethod
    def price_from_text(cls, price_text: str, platform: str) -> int:
        """Parse scraped price text into a positive target-currency price."""
        amount = cls.parse_amount(price_text)
        if amount is None or amount <= 0:
            logger.info(
                "Unusable price text %r, using %s default",
                price_text,
                platform,
            )
            return cls.default_price(platform)
        converted = cls.convert_to_target(cls.to_source_minor(amount))
        return converted if converted > 0 else cls.default_price(platform)

    @staticmethod
    def derive_original_price(
        sale_price: int, original_price: int | None,
    ) -> int:
        """Keep a real list price above *sale_price*, else mark sale up by 30%."""
        if original_price is not None and original_price > sale_price:
            return original_price
        return round(sale_price * Settings.ORIGINAL_PRICE_MARKUP)

    # ── Text and images ──────────────────────────────────

    @staticmethod
    def normalize_name(name: str | None) -> str:
        """Collapse whitespace, trim, and cap at MAX_NAME_LENGTH characters."""
        collapsed = _WHITESPACE_RE.sub(" ", name or "").strip()
        if not collapsed:
            return Settings.PLACEHOLDER_TITLE
        return collapsed[: Settings.MAX_NAME_LENGTH].rstrip()

    @staticmethod
    def shorten(text: str, limit: int) -> str:
        """Truncate *text* to *limit* characters with a trailing ellipsis."""
        if len(text) <= limit:
            return text
        return text[: limit - 3].rstrip() + "..."

    @staticmethod
    def filter_images(urls: list[str]) -> list[str]:
        """Keep unique absolute http(s) URLs, at most MAX_IMAGES of them."""
        kept: list[str] = []
        for url in urls:
            if not isinstance(url, str):
                continue
            candidate = url.strip()
            try:
                parsed = urlparse(candidate)
            except ValueError:
                logger.debug("Malformed image URL dropped: %r", candidate)
                continue
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                continue
            if candidate in kept:
                continue
            kept.append(candidate)
            if len(kept) == Settings.MAX_IMAGES:
                break
        return kept

    # ── Drafts ───────────────────────────────────────────

    @staticmethod
    def build_sku(
        platform: str, external_id: str | None, source_url: str,
    ) -> str:
        """``<PREFIX>-<id>``, or a URL digest when the id is unknown."""
        prefix = Settings.SUPPORTED_PLATFORMS.get(platform, {}).get(
            "sku_prefix", platform[:2].upper() or "XX"
        )
        if external_id:
            return f"{prefix}-{external_id}"
        digest = hashlib.sha1(source_url.encode("utf-8")).hexdigest()
        return f"{prefix}-{digest[:12].upper()}"

    @classmethod
    def from_raw(
        cls,
        raw: RawExtraction,
        source_url: str,
        platform: str,
        strategy: str,
        external_id: str | None = None,
    ) -> ProductDraft:
        """Normalise a page extraction from one fallback strategy."""
        name = cls.normalize_name(raw.name)
        price = cls.price_from_text(raw.price_text, platform)

        original: int | None = None
        if raw.original_price_text:
            amount = cls.parse_amount(raw.original_price_text)
            if amount is not None and amount > 0:
                original = cls.convert_to_target(cls.to_source_minor(amount))

        description = _WHITESPACE_RE.sub(" ", raw.description or "").strip()
        if not description:
            description = Settings.PLACEHOLDER_DESCRIPTION
        label = Settings.SUPPORTED_PLATFORMS.get(platform, {}).get(
            "label", platform
        )

        return ProductDraft(
            name=name,
            price_minor_units=price,
            original_price_minor_units=cls.derive_original_price(
                price, original
            ),
            image_urls=cls.filter_images(raw.images),
            description=description,
            short_description=cls.shorten(
                description, Settings.MAX_SHORT_DESCRIPTION
            ),
            sku=cls.build_sku(platform, external_id, source_url),
            stock_quantity=Settings.DEFAULT_STOCK_QUANTITY,
            source_url=source_url,
            source_platform=platform,
            specifications={
                "Source": strategy,
                "Platform": label,
                "Imported on": date.today().isoformat(),
                "Original URL": source_url,
            },
        )

    @classmethod
    def from_listing(
        cls,
        listing: SourceListing,
        platform: str = Settings.API_PLATFORM,
    ) -> ProductDraft:
        """Normalise a structured API listing."""
        name = cls.normalize_name(listing.title)

        if listing.sale_price_minor_units > 0:
            price = cls.convert_to_target(listing.sale_price_minor_units)
        else:
            price = 0
        if price <= 0:
            price = cls.default_price(platform)

        original: int | None = None
        if listing.original_price_minor_units:
            original = cls.convert_to_target(
                listing.original_price_minor_units
            )

        rating = (
            f"{listing.rating:.1f}" if listing.rating is not None else "N/A"
        )
        sales = listing.recent_sales_volume or 0
        description = (
            f"{name}\n\n"
            "Imported from AliExpress via the Dropship API.\n\n"
            f"Rating: {rating}\n"
            f"Recent sales: {sales}"
        )
        images = [listing.main_image_url, *listing.extra_image_urls]

        return ProductDraft(
            name=name,
            price_minor_units=price,
            original_price_minor_units=cls.derive_original_price(
                price, original
            ),
            image_urls=cls.filter_images(images),
            description=description,
            short_description=cls.shorten(
                name, Settings.MAX_SHORT_DESCRIPTION
            ),
            sku=f"AE-DS-{listing.external_id}",
            stock_quantity=Settings.DEFAULT_STOCK_QUANTITY,
            source_url=listing.detail_url
            or f"https://www.aliexpress.com/item/{listing.external_id}.html",
            source_platform=platform,
            specifications={
                "Product ID": listing.external_id,
                "Rating": rating,
                "Sales": str(sales),
                "Source": "Dropship API",
                "Imported on": date.today().isoformat(),
            },
        )
