# sourcing/clients/platform_api.py

"""Signed client for the platform's remote-procedure style endpoints.

Every call carries the app key, the current access token, a
millisecond timestamp and an MD5 ``sign`` over all parameters.
Single-product lookups raise typed errors; feed lookups degrade to an
empty list so a multi-feed caller can continue with partial data.
"""

import logging
import re
from typing import Any
from urllib.parse import parse_qs, urlparse

from curl_cffi import requests as curl_requests

from sourcing.clients import field_rules as rules
from sourcing.clients.field_rules import at, first_value
from sourcing.clients.signing import sign_params, timestamp_ms
from sourcing.config.settings import Settings
from sourcing.errors import (
    ConfigurationError,
    PlatformApplicationError,
    TransportError,
)
from sourcing.models.listing import SourceListing
from sourcing.services.credential_manager import CredentialManager
from sourcing.services.normalizer import ProductNormalizer

logger = logging.getLogger("product_sourcing.api")

# Tried in order; the first capture group is the numeric product id.
EXTERNAL_ID_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"/item/(\d+)\.html"),
    re.compile(r"aliexpress\.[a-z.]+/(?:[\w-]+/)*item/(\d+)", re.IGNORECASE),
]
EXTERNAL_ID_QUERY_PARAMS: tuple[str, ...] = ("product_id", "productId")


def _response_key(method: str) -> str:
    """``aliexpress.ds.product.get`` -> ``aliexpress_ds_product_get_response``."""
    return method.replace(".", "_") + "_response"


def _positive_price(value: Any) -> bool:
    amount = ProductNormalizer.parse_amount(value)
    return amount is not None and amount > 0


def _to_minor(value: Any) -> int | None:
    amount = ProductNormalizer.parse_amount(value)
    if amount is None or amount <= 0:
        return None
    return ProductNormalizer.to_source_minor(amount)


def _to_rating(value: Any) -> float | None:
    """Parse a rating; percentage scores such as ``'96.4%'`` map onto 0-5."""
    if value is None:
        return None
    text = str(value).strip()
    amount = ProductNormalizer.parse_amount(text)
    if amount is None:
        return None
    rating = float(amount)
    if text.endswith("%") or rating > 5:
        rating = rating / 20
    return round(min(max(rating, 0.0), 5.0), 2)


def _to_int(value: Any) -> int | None:
    amount = ProductNormalizer.parse_amount(value)
    return int(amount) if amount is not None else None


def _split_images(value: Any) -> list[str]:
    """Image lists come as ``;``-joined strings or JSON arrays."""
    if isinstance(value, str):
        parts = value.split(";")
    elif isinstance(value, list):
        parts = [p for p in value if isinstance(p, str)]
    else:
        return []
    urls: list[str] = []
    for part in parts:
        url = part.strip()
        if url.startswith("//"):
            url = "https:" + url
        if url:
            urls.append(url)
    return urls


class PlatformApiClient:
    """Authenticated access to the product and recommendation-feed endpoints."""

    def __init__(
        self,
        credentials: CredentialManager,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or Settings()
        missing = [
            name
            for name, value in (
                ("ALIEXPRESS_APP_KEY", self.settings.APP_KEY),
                ("ALIEXPRESS_APP_SECRET", self.settings.APP_SECRET),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(missing)

        self.credentials = credentials
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )

    # ── Transport ────────────────────────────────────────

    def build_params(
        self, method: str, params: dict[str, Any], access_token: str,
    ) -> dict[str, Any]:
        """Assemble the common parameters plus *params* and sign them."""
        request: dict[str, Any] = {
            "app_key": self.settings.APP_KEY,
            "access_token": access_token,
            "method": method,
            "timestamp": timestamp_ms(),
            "sign_method": self.settings.SIGN_METHOD,
            "format": "json",
            "v": self.settings.API_VERSION,
        }
        request.update(
            {k: v for k, v in params.items() if v is not None}
        )
        request["sign"] = sign_params(request, self.settings.APP_SECRET)
        return request

    def _call(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        """Issue one signed GET and return the decoded JSON body.

        Raises CredentialError subclasses (from the token lookup),
        TransportError, or PlatformApplicationError.
        """
        token = self.credentials.get_valid_token()
        request = self.build_params(method, params, token)
        logger.debug("Calling %s", method)

        try:
            resp = self.session.get(
                self.settings.API_URL,
                params=request,
                timeout=self.settings.REQUEST_TIMEOUT,
            )
        except Exception as exc:
            raise TransportError(f"{method}: {exc}") from exc

        if not 200 <= resp.status_code < 300:
            raise TransportError(
                f"{method}: HTTP {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise TransportError(
                f"{method}: response is not JSON",
                status_code=resp.status_code,
            ) from exc
        if not isinstance(data, dict):
            raise TransportError(f"{method}: unexpected response body")

        error = data.get("error_response")
        if error:
            error = error if isinstance(error, dict) else {"msg": str(error)}
            raise PlatformApplicationError(
                str(error.get("msg") or "Platform reported an error"),
                code=error.get("code"),
                sub_code=error.get("sub_code"),
            )
        return data

    # ── Product lookup ───────────────────────────────────

    @staticmethod
    def extract_external_id(url: str) -> str | None:
        """Pull the numeric product id out of a product URL.

        Accepts ``/item/<id>.html`` paths, regional-subdomain variants
        such as ``m.aliexpress.us/item/<id>`` and a ``product_id`` query
        parameter.  Returns None when nothing matches.
        """
        if not isinstance(url, str) or not url:
            return None
        for pattern in EXTERNAL_ID_PATTERNS:
            match = pattern.search(url)
            if match:
                return match.group(1)
        try:
            query = parse_qs(urlparse(url).query)
        except ValueError:
            return None
        for name in EXTERNAL_ID_QUERY_PARAMS:
            values = query.get(name) or []
            if values and values[0].isdigit():
                return values[0]
        return None

    def fetch_product(self, external_id: str) -> SourceListing | None:
        """Look up one product.  Returns None for a structurally empty response."""
        method = self.settings.PRODUCT_METHOD
        data = self._call(method, {
            "product_id": external_id,
            "target_currency": self.settings.SOURCE_CURRENCY,
            "target_language": self.settings.TARGET_LANGUAGE,
            "ship_to_country": self.settings.SHIP_TO_COUNTRY,
        })
        result = at(_response_key(method), "result")(data)
        if not isinstance(result, dict) or not result:
            logger.warning("No product result for id %s", external_id)
            return None
        return self._parse_product(external_id, result)

    def _parse_product(
        self, external_id: str, result: dict[str, Any],
    ) -> SourceListing:
        match = rules.first_match(
            result, rules.PRODUCT_SALE_PRICE_RULES, accept=_positive_price
        )
        if match:
            logger.debug("Sale price for %s from %s", external_id, match[0])
            sale = _to_minor(match[1]) or 0
        else:
            logger.info("No usable price for product %s", external_id)
            sale = 0

        original = _to_minor(
            first_value(
                result,
                rules.PRODUCT_ORIGINAL_PRICE_RULES,
                accept=_positive_price,
            )
        )

        images = _split_images(
            first_value(result, rules.PRODUCT_IMAGE_RULES)
        )
        rating = _to_rating(first_value(result, rules.PRODUCT_RATING_RULES))

        return SourceListing(
            external_id=str(external_id),
            title=str(
                first_value(
                    result,
                    rules.PRODUCT_TITLE_RULES,
                    self.settings.PLACEHOLDER_TITLE,
                )
            ),
            sale_price_minor_units=sale,
            original_price_minor_units=original,
            detail_url=f"https://www.aliexpress.com/item/{external_id}.html",
            main_image_url=images[0] if images else "",
            extra_image_urls=images[1:5],
            rating=(
                rating if rating is not None
                else self.settings.DEFAULT_RATING
            ),
            recent_sales_volume=_to_int(
                first_value(result, rules.PRODUCT_SALES_RULES)
            ) or 0,
        )

    # ── Feeds ────────────────────────────────────────────

    def fetch_feed(
        self, feed_name: str, count: int, page: int = 1,
    ) -> list[SourceListing]:
        """Return up to *count* listings from one recommendation feed.

        Transport, application and response-shape failures are logged
        and produce an empty list.  Credential errors propagate.
        """
        if feed_name not in self.settings.AVAILABLE_FEEDS:
            logger.warning("Unknown feed '%s' ignored", feed_name)
            return []

        method = self.settings.FEED_METHOD
        page_size = max(1, min(count, self.settings.MAX_FEED_PAGE_SIZE))
        try:
            data = self._call(method, {
                "feed_name": feed_name,
                "page_no": page,
                "page_size": page_size,
                "target_currency": self.settings.SOURCE_CURRENCY,
                "target_language": self.settings.TARGET_LANGUAGE,
                "ship_to_country": self.settings.SHIP_TO_COUNTRY,
            })
        except (TransportError, PlatformApplicationError) as exc:
            logger.warning(
                "Feed '%s' failed: %s", feed_name, exc, exc_info=True,
            )
            return []

        items = at(
            _response_key(method), "result", "products", "product"
        )(data)
        if isinstance(items, dict):
            items = [items]
        if not isinstance(items, list):
            logger.warning(
                "Feed '%s' returned no product list", feed_name,
            )
            return []

        listings: list[SourceListing] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            listing = self._parse_feed_item(item)
            if listing is not None:
                listings.append(listing)

        logger.info(
            "Feed '%s' page %d: %d listings", feed_name, page, len(listings),
        )
        return listings

    def _parse_feed_item(self, item: dict[str, Any]) -> SourceListing | None:
        product_id = first_value(item, rules.FEED_ID_RULES)
        if product_id is None:
            logger.debug("Feed item without product id skipped")
            return None
        product_id = str(product_id)

        main_image = first_value(item, rules.FEED_MAIN_IMAGE_RULES, "")
        main_images = _split_images(main_image)
        extra = _split_images(
            first_value(item, rules.FEED_EXTRA_IMAGE_RULES)
        )
        rating = _to_rating(first_value(item, rules.FEED_RATING_RULES))

        return SourceListing(
            external_id=product_id,
            title=str(
                first_value(
                    item,
                    rules.FEED_TITLE_RULES,
                    self.settings.PLACEHOLDER_TITLE,
                )
            ),
            sale_price_minor_units=_to_minor(
                first_value(
                    item, rules.FEED_SALE_PRICE_RULES, accept=_positive_price
                )
            ) or 0,
            original_price_minor_units=_to_minor(
                first_value(
                    item,
                    rules.FEED_ORIGINAL_PRICE_RULES,
                    accept=_positive_price,
                )
            ),
            detail_url=str(
                first_value(
                    item,
                    rules.FEED_DETAIL_URL_RULES,
                    f"https://www.aliexpress.com/item/{product_id}.html",
                )
            ),
            main_image_url=main_images[0] if main_images else "",
            extra_image_urls=extra,
            rating=(
                rating if rating is not None
                else self.settings.DEFAULT_RATING
            ),
            recent_sales_volume=_to_int(
                first_value(item, rules.FEED_VOLUME_RULES)
            ) or 0,
        )
