# sourcing/clients/field_rules.py

"""Ordered field-extraction rules for loosely-shaped platform JSON.

The platform reports the same concept under several field names
depending on endpoint and API version.  Each concept is an ordered
list of :class:`FieldRule`; :func:`first_match` walks the list and
returns the first rule that yields a usable value, so the fallback
order is plain data that can be inspected and tested.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

Getter = Callable[[dict[str, Any]], Any]


@dataclass(frozen=True)
class FieldRule:
    """One named way of reading a value out of a payload."""

    name: str
    getter: Getter


def at(*path: str | int) -> Getter:
    """Getter that follows *path* through nested dicts and lists."""

    def _get(payload: dict[str, Any]) -> Any:
        node: Any = payload
        for step in path:
            if isinstance(step, int):
                if not isinstance(node, list) or len(node) <= step:
                    return None
                node = node[step]
            else:
                if not isinstance(node, dict):
                    return None
                node = node.get(step)
            if node is None:
                return None
        return node

    return _get


def property_value(keyword: str) -> Getter:
    """Getter for the first generic product property whose name contains *keyword*."""

    def _get(payload: dict[str, Any]) -> Any:
        props = at("ae_item_properties", "ae_item_property")(payload)
        if isinstance(props, dict):
            props = [props]
        if not isinstance(props, list):
            return None
        for prop in props:
            if not isinstance(prop, dict):
                continue
            name = str(prop.get("attr_name", "")).lower()
            if keyword in name:
                return prop.get("attr_value")
        return None

    return _get


def _usable(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    if isinstance(value, (list, dict)) and not value:
        return False
    return True


def first_match(
    payload: dict[str, Any],
    rules: list[FieldRule],
    accept: Callable[[Any], bool] | None = None,
) -> tuple[str, Any] | None:
    """Return ``(rule name, value)`` for the first rule that yields a value.

    *accept* further restricts what counts as a value (for instance
    "parses as a positive price"); rejected values fall through to the
    next rule.
    """
    for rule in rules:
        value = rule.getter(payload)
        if not _usable(value):
            continue
        if accept is not None and not accept(value):
            continue
        return rule.name, value
    return None


def first_value(
    payload: dict[str, Any],
    rules: list[FieldRule],
    default: Any = None,
    accept: Callable[[Any], bool] | None = None,
) -> Any:
    """Like :func:`first_match` but returns only the value (or *default*)."""
    match = first_match(payload, rules, accept)
    return match[1] if match else default


# ── Single-product response (``...ds.product.get``) ────

_FIRST_SKU = ("ae_item_sku_info_dtos", "ae_item_sku_info_d_t_o", 0)

PRODUCT_SALE_PRICE_RULES: list[FieldRule] = [
    FieldRule("base_min_price", at("ae_item_base_info_dto", "product_min_price")),
    FieldRule("sku_offer_price", at(*_FIRST_SKU, "offer_sale_price")),
    FieldRule("sku_price", at(*_FIRST_SKU, "sku_price")),
    FieldRule("property_price", property_value("price")),
    FieldRule("target_sale_price", at("target_sale_price")),
    FieldRule("sale_price", at("sale_price")),
    FieldRule("discount_price", at("discount_price")),
    FieldRule("original_price", at("original_price")),
]

PRODUCT_ORIGINAL_PRICE_RULES: list[FieldRule] = [
    FieldRule("base_max_price", at("ae_item_base_info_dto", "product_max_price")),
    FieldRule("sku_list_price", at(*_FIRST_SKU, "sku_price")),
    FieldRule("target_original_price", at("target_original_price")),
    FieldRule("original_price", at("original_price")),
]

PRODUCT_TITLE_RULES: list[FieldRule] = [
    FieldRule("subject", at("ae_item_base_info_dto", "subject")),
    FieldRule("product_title", at("product_title")),
]

PRODUCT_IMAGE_RULES: list[FieldRule] = [
    FieldRule("image_urls", at("ae_multimedia_info_dto", "image_urls")),
    FieldRule("main_image", at("product_main_image_url")),
]

PRODUCT_RATING_RULES: list[FieldRule] = [
    FieldRule("avg_evaluation", at("ae_item_base_info_dto", "avg_evaluation_rating")),
    FieldRule("evaluate_rate", at("evaluate_rate")),
]

PRODUCT_SALES_RULES: list[FieldRule] = [
    FieldRule("sales_count", at("ae_item_base_info_dto", "sales_count")),
    FieldRule("lastest_volume", at("lastest_volume")),
]

# ── Feed item (``...ds.recommend.feed.get``) ────────────

FEED_ID_RULES: list[FieldRule] = [
    FieldRule("product_id", at("product_id")),
    FieldRule("productId", at("productId")),
]

FEED_TITLE_RULES: list[FieldRule] = [
    FieldRule("product_title", at("product_title")),
    FieldRule("subject", at("subject")),
]

FEED_MAIN_IMAGE_RULES: list[FieldRule] = [
    FieldRule("product_main_image_url", at("product_main_image_url")),
    FieldRule("productMainImageUrl", at("productMainImageUrl")),
]

FEED_EXTRA_IMAGE_RULES: list[FieldRule] = [
    FieldRule("small_images_wrapped", at("product_small_image_urls", "string")),
    FieldRule("small_images", at("product_small_image_urls")),
]

FEED_SALE_PRICE_RULES: list[FieldRule] = [
    FieldRule("sale_price", at("sale_price")),
    FieldRule("salePrice", at("salePrice")),
    FieldRule("target_sale_price", at("target_sale_price")),
]

FEED_ORIGINAL_PRICE_RULES: list[FieldRule] = [
    FieldRule("original_price", at("original_price")),
    FieldRule("originalPrice", at("originalPrice")),
    FieldRule("target_original_price", at("target_original_price")),
]

FEED_DETAIL_URL_RULES: list[FieldRule] = [
    FieldRule("product_detail_url", at("product_detail_url")),
    FieldRule("productDetailUrl", at("productDetailUrl")),
]

FEED_RATING_RULES: list[FieldRule] = [
    FieldRule("evaluate_rate", at("evaluate_rate")),
    FieldRule("evaluateRate", at("evaluateRate")),
]

FEED_VOLUME_RULES: list[FieldRule] = [
    FieldRule("lastest_volume", at("lastest_volume")),
    FieldRule("volume", at("volume")),
]
