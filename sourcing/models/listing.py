# sourcing/models/listing.py

"""Source listing model for inter-module data flow."""

from dataclasses import dataclass, field


@dataclass
class SourceListing:
    """One product as returned by the source platform.

    Prices are in the *source* currency's minor units (US cents).
    """

    external_id: str
    title: str
    sale_price_minor_units: int
    detail_url: str = ""
    main_image_url: str = ""
    extra_image_urls: list[str] = field(
        default_factory=lambda: list[str]()
    )
    original_price_minor_units: int | None = None
    rating: float | None = None
    recent_sales_volume: int | None = None
