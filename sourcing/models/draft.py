# sourcing/models/draft.py

"""Raw extraction output and the normalised product draft."""

from dataclasses import dataclass, field


@dataclass
class RawExtraction:
    """Fields pulled from a product page before normalisation."""

    name: str = ""
    price_text: str = ""
    images: list[str] = field(
        default_factory=lambda: list[str]()
    )
    description: str = ""
    original_price_text: str = ""


@dataclass
class ProductDraft:
    """Normalised record handed to catalogue creation.

    Prices are in target-currency minor units and always positive.
    """

    name: str
    price_minor_units: int
    image_urls: list[str]
    description: str
    short_description: str
    sku: str
    stock_quantity: int
    source_url: str
    source_platform: str
    original_price_minor_units: int | None = None
    specifications: dict[str, str] = field(
        default_factory=lambda: dict[str, str]()
    )
