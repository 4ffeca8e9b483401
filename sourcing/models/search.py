# sourcing/models/search.py

"""Search request and result containers."""

from dataclasses import dataclass, field

from sourcing.config.settings import Settings
from sourcing.filters.category_keywords import category_keywords_for
from sourcing.models.listing import SourceListing


@dataclass(frozen=True)
class SearchRequest:
    """Caller-built search over the platform's curated feeds.

    ``min_price`` / ``max_price`` are in target-currency minor units.
    """

    free_text_keywords: str | None = None
    category_keywords: tuple[str, ...] = ()
    min_price: int | None = None
    max_price: int | None = None
    min_rating: float | None = None
    min_sales: int | None = None
    page_size: int = Settings.DEFAULT_PAGE_SIZE
    page: int = 1
    feed_set: tuple[str, ...] = tuple(Settings.AVAILABLE_FEEDS)

    @classmethod
    def for_category(
        cls, category: str, **kwargs: object,
    ) -> "SearchRequest":
        """Build a request whose category keywords come from the lookup table."""
        keywords = tuple(category_keywords_for(category))
        return cls(category_keywords=keywords, **kwargs)  # type: ignore[arg-type]

    def keywords(self) -> list[str]:
        """All lower-cased keywords, free text first, duplicates removed."""
        words: list[str] = []
        if self.free_text_keywords:
            words.extend(self.free_text_keywords.lower().split())
        words.extend(
            k.strip().lower() for k in self.category_keywords if k.strip()
        )
        return list(dict.fromkeys(words))


@dataclass
class SearchResult:
    """Ranked listings plus counters describing how they were found."""

    listings: list[SourceListing] = field(
        default_factory=lambda: list[SourceListing]()
    )
    total_retrieved: int = 0
    total_after_filtering: int = 0
    feeds_used: list[str] = field(
        default_factory=lambda: list[str]()
    )
    duplicates_removed: int = 0
    cache_hits: int = 0
    errors: list[str] = field(
        default_factory=lambda: list[str]()
    )
