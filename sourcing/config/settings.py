# sourcing/config/settings.py

"""Central configuration for the product sourcing pipeline."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    """Read a boolean flag such as ``BROWSER_SANDBOX=0`` from the env."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Central configuration for the product sourcing pipeline."""

    # --- Platform API (credentials come from the environment) ---
    APP_KEY: str = os.getenv("ALIEXPRESS_APP_KEY", "")
    APP_SECRET: str = os.getenv("ALIEXPRESS_APP_SECRET", "")
    REDIRECT_URI: str = os.getenv("ALIEXPRESS_REDIRECT_URI", "")
    API_URL: str = os.getenv(
        "ALIEXPRESS_API_URL", "https://api-sg.aliexpress.com/sync"
    )
    AUTHORIZE_URL: str = os.getenv(
        "ALIEXPRESS_AUTHORIZE_URL",
        "https://api-sg.aliexpress.com/oauth/authorize",
    )
    TOKEN_URL: str = os.getenv(
        "ALIEXPRESS_TOKEN_URL", "https://oauth.aliexpress.com/token"
    )
    API_VERSION: str = "2.0"
    SIGN_METHOD: str = "md5"
    PRODUCT_METHOD: str = "aliexpress.ds.product.get"
    FEED_METHOD: str = "aliexpress.ds.recommend.feed.get"
    TARGET_LANGUAGE: str = "EN"
    SHIP_TO_COUNTRY: str = "US"
    DEFAULT_TOKEN_TTL: int = 2_592_000          # 30 days
    DEFAULT_REFRESH_TTL: int = 5_184_000        # 60 days

    # --- Feeds ---
    AVAILABLE_FEEDS: list[str] = [
        "ds-bestselling",
        "ds-new-arrival",
        "ds-promotion",
        "ds-choice",
    ]
    MAX_FEED_PAGE_SIZE: int = 50
    DEFAULT_PAGE_SIZE: int = 50
    FEED_CACHE_TTL: float = 300.0               # Seconds

    # --- Listing defaults ---
    DEFAULT_RATING: float = 4.5
    PLACEHOLDER_TITLE: str = "Untitled product"
    PLACEHOLDER_DESCRIPTION: str = "Description not available"

    # --- Scraping ---
    REQUEST_TIMEOUT: int = 15                   # Seconds per HTTP call
    RENDER_TIMEOUT: int = 60                    # Render proxy calls
    RENDER_WAIT_MS: int = 3000                  # JS settle time
    MAX_RETRIES: int = 3                        # Attempt cap (render stage)
    BACKOFF_BASE_DELAY: float = 1.0             # Seconds, doubles per retry
    IMG_SCAN_LIMIT: int = 10                    # <img> tags scanned
    NAVIGATION_TIMEOUT_MS: int = 30_000
    JITTER_RANGE: tuple[float, float] = (2.0, 5.0)
    BROWSER_SANDBOX: bool = _env_flag("BROWSER_SANDBOX", True)
    USER_AGENTS: list[str] = [
        (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/131.0.0.0 Safari/537.36"
        ),
        (
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/131.0.0.0 Safari/537.36"
        ),
        (
            "Mozilla/5.0 (X11; Linux x86_64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/131.0.0.0 Safari/537.36"
        ),
        (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:133.0) "
            "Gecko/20100101 Firefox/133.0"
        ),
        (
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:133.0) "
            "Gecko/20100101 Firefox/133.0"
        ),
    ]

    # --- Extraction services ---
    SCRAPINGBEE_API_KEY: str = os.getenv("SCRAPINGBEE_API_KEY", "")
    SCRAPINGBEE_URL: str = "https://app.scrapingbee.com/api/v1/"
    SCRAPERAPI_API_KEY: str = os.getenv("SCRAPERAPI_API_KEY", "")
    SCRAPERAPI_URL: str = "https://api.scraperapi.com/"
    PROXY_COUNTRY: str = "fr"

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "en-US,en;q=0.9,fr;q=0.8",
        "Upgrade-Insecure-Requests": "1",
    }

    # --- Pricing ---
    SOURCE_CURRENCY: str = "USD"
    SOURCE_MINOR_PER_UNIT: int = 100
    TARGET_CURRENCY: str = "XOF"
    TARGET_MINOR_PER_UNIT: int = 1              # XOF has no minor unit
    EXCHANGE_RATE: float = 655.0                # Fixed approximation
    ORIGINAL_PRICE_MARKUP: float = 1.3
    DEFAULT_PRICES: dict[str, int] = {          # Target minor units
        "aliexpress": 15000,
        "alibaba": 10000,
    }

    # --- Drafts ---
    MAX_NAME_LENGTH: int = 200
    MAX_SHORT_DESCRIPTION: int = 150
    MAX_IMAGES: int = 5
    DEFAULT_STOCK_QUANTITY: int = 100

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    SELECTORS_PATH: Path = Path(__file__).resolve().parent / "selectors.json"
    RESULTS_DIR: Path = BASE_DIR / "results"
    LOGS_DIR: Path = BASE_DIR / "logs"
    CREDENTIAL_DB_PATH: Path = Path(
        os.getenv(
            "CREDENTIAL_DB_PATH",
            str(BASE_DIR / "data" / "credentials.db"),
        )
    )

    # --- Source platforms ---
    SUPPORTED_PLATFORMS: dict[str, dict[str, str]] = {
        "aliexpress": {
            "domain": "aliexpress.",
            "label": "AliExpress",
            "sku_prefix": "AE",
            "homepage": "https://www.aliexpress.com/",
        },
        "alibaba": {
            "domain": "alibaba.com",
            "label": "Alibaba",
            "sku_prefix": "AB",
            "homepage": "https://www.alibaba.com/",
        },
    }
    API_PLATFORM: str = "aliexpress"
