# wishmatch/config/settings.py

"""Central configuration for the wishmatch pipeline."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the wishmatch pipeline."""

    # --- Networking ---
    REQUEST_DELAY: float = 0.5          # Base backoff unit in seconds
    REQUEST_TIMEOUT: int = 15           # Listing / search page timeout
    PRODUCT_TIMEOUT: int = 10           # Single product page timeout
    MAX_RETRIES: int = 3                # Transient-error retries (resolver)
    FETCH_ATTEMPTS: int = 1             # GETs per fetch before giving up
    MAX_DELAY_MULTIPLIER: int = 8       # Cap for adaptive backoff
    CLOUDSCRAPER_FALLBACK: bool = True  # Second chance for blocked pages
    CAPTCHA_KEYWORDS: list[str] = [
        "captcha",
        "verify you are human",
        "unusual traffic",
        "automated requests",
        "robot check",
    ]

    # --- Link resolution ---
    MAX_HOPS: int = 5
    RESOLVER_BLOCK_DELAY: float = 1.0   # Pause before retrying a 429/403
    SHORTENER_DOMAINS: list[str] = [
        "a.co",
        "amzn.to",
        "amzn.eu",
        "amzn.com",
        "amzn.asia",
    ]

    # --- Batch limits ---
    MAX_INPUT_URLS: int = 10
    MAX_LINKS_PER_PAGE: int = 100
    MAX_ITEMS: int = 100
    WORKER_CONCURRENCY: int = 4
    ITEM_DEADLINE: float = 30.0         # Per unit of work (seconds)
    BATCH_DEADLINE: float = 600.0       # Whole build_catalog call

    # --- Products ---
    TITLE_MAX_LENGTH: int = 120
    MAX_GALLERY_IMAGES: int = 10
    DEFAULT_HOST: str = "www.amazon.ae"
    AFFILIATE_TAG: str = os.getenv(
        "WISHMATCH_AFFILIATE_TAG", "your-affiliate-tag-123"
    )
    # Ordered: first matching host suffix wins
    CURRENCY_BY_DOMAIN: list[tuple[str, str]] = [
        (".ae", "AED"),
        (".sa", "SAR"),
        (".co.uk", "GBP"),
        (".de", "EUR"),
        (".fr", "EUR"),
        (".es", "EUR"),
        (".it", "EUR"),
        (".nl", "EUR"),
        (".in", "INR"),
        (".jp", "JPY"),
        (".com", "USD"),
    ]
    CURRENCY_SYMBOLS: dict[str, str] = {
        "$": "USD",
        "€": "EUR",
        "£": "GBP",
        "¥": "JPY",
        "₹": "INR",
    }

    # --- Matching ---
    MATCH_MIN_SCORE: int = 40
    MATCH_MAX_CANDIDATES: int = 5
    MATCH_DEFAULT_CURRENCY: str = "AED"
    NOON_SEARCH_URL: str = (
        "https://www.noon.com/uae-en/search?q={query}"
    )
    NOON_BASE_URL: str = "https://www.noon.com"
    KNOWN_BRANDS: list[str] = [
        "funko", "pop", "lego", "samsung", "apple", "sony", "lg",
        "philips", "nike", "adidas", "puma", "reebok", "converse",
        "logitech", "razer", "corsair", "hyperx", "national",
        "geographic", "mattel", "hasbro",
    ]

    # --- Parser log ring buffer ---
    LOG_BUFFER_SIZE: int = int(
        os.getenv("WISHMATCH_LOG_BUFFER_SIZE", "100")
    )

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "en-US,en;q=0.9",
        "sec-ch-ua": (
            '"Google Chrome";v="131", '
            '"Chromium";v="131", '
            '"Not_A Brand";v="24"'
        ),
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
        "sec-fetch-dest": "document",
        "sec-fetch-mode": "navigate",
        "sec-fetch-site": "none",
        "sec-fetch-user": "?1",
        "Upgrade-Insecure-Requests": "1",
    }
    # Rotated by the resolver when a shortener answers 429/403
    HEADER_PROFILES: list[dict[str, str]] = [
        {
            "User-Agent": (
                "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
                "AppleWebKit/537.36 (KHTML, like Gecko) "
                "Chrome/131.0.0.0 Safari/537.36"
            ),
        },
        {
            "User-Agent": (
                "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_5) "
                "AppleWebKit/605.1.15 (KHTML, like Gecko) "
                "Version/17.5 Safari/605.1.15"
            ),
            "Accept-Language": "en-GB,en;q=0.8",
        },
        {
            "User-Agent": (
                "Mozilla/5.0 (X11; Linux x86_64; rv:128.0) "
                "Gecko/20100101 Firefox/128.0"
            ),
            "Accept-Language": "en-US,en;q=0.5",
        },
    ]

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    SELECTORS_PATH: Path = (
        Path(__file__).resolve().parent / "selectors.json"
    )
    RESULTS_DIR: Path = BASE_DIR / "results"
    LOGS_DIR: Path = BASE_DIR / "logs"
