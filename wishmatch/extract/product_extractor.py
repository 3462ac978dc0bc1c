# wishmatch/extract/product_extractor.py

"""Extract a single product record from an Amazon product page."""

import json
import logging
import re
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from wishmatch.config.settings import Settings
from wishmatch.extract.cascade import (
    attr_of,
    first_match,
    load_selectors,
    text_of,
)
from wishmatch.extract.price_parser import (
    currency_code,
    currency_for_url,
    normalize_price,
    parse_price_text,
)
from wishmatch.filters.product_validator import ProductValidator
from wishmatch.models.product import ProductRecord

logger = logging.getLogger("wishmatch.extract")

_IDENTIFIER_RE = re.compile(
    r"(?:/dp/|/gp/product/)([A-Z0-9]{10})(?![A-Za-z0-9])"
)
# Everything from the first non-leading bracket on is promotional noise
_BRACKETED_SUFFIX_RE = re.compile(r"(?<=\S)\s*[(\[].*$", re.DOTALL)
# Thumbnail size markers such as "._AC_US40_."
_SIZE_SUFFIX_RE = re.compile(r"\._.*?_\.")


def extract_identifier(url: str) -> str:
    """Return the 10-character product identifier in *url*, or ''."""
    match = _IDENTIFIER_RE.search(url)
    return match.group(1) if match else ""


def retailer_host(url: str) -> str:
    """Retailer host for *url*, defaulting to the primary storefront."""
    host = urlparse(url).hostname or ""
    return host if "amazon." in host else Settings.DEFAULT_HOST


def canonical_product_url(url: str, identifier: str) -> str:
    """Short ``/dp/<identifier>`` URL on the same storefront."""
    return f"https://{retailer_host(url)}/dp/{identifier}"


def affiliate_url(url: str, identifier: str) -> str:
    """Canonical product URL carrying the affiliate tag."""
    return (
        f"{canonical_product_url(url, identifier)}"
        f"?tag={Settings.AFFILIATE_TAG}"
    )


def clean_title(raw: str) -> str:
    """Drop bracketed promo suffixes and cap the length."""
    collapsed = " ".join(raw.split())
    stripped = _BRACKETED_SUFFIX_RE.sub("", collapsed)
    return stripped[: Settings.TITLE_MAX_LENGTH].strip()


def hi_res_image_url(src: str) -> str:
    """Full-size variant of a thumbnail URL."""
    return _SIZE_SUFFIX_RE.sub(".", src, count=1).replace("/thumb/", "/", 1)


class ProductExtractor:
    """Selector cascades for one product page.

    Price tiers, most reliable first:

    1. separate whole / fraction / symbol elements,
    2. one consolidated ``.a-offscreen`` string,
    3. legacy markup (``.price-whole`` and friends).
    """

    def __init__(self) -> None:
        self.selectors = load_selectors("amazon_product")

    def extract_title(self, soup: BeautifulSoup) -> str:
        """Cleaned title, or '' when every strategy comes up empty."""
        raw = first_match(
            [text_of(sel) for sel in self.selectors["title"]], soup
        )
        return clean_title(raw) if raw else ""

    def _split_price(
        self,
        soup: BeautifulSoup,
        whole_key: str,
        fraction_key: str,
        symbol_key: str,
    ) -> tuple[str, str] | None:
        whole = text_of(self.selectors[whole_key])(soup)
        if not whole:
            return None
        fraction = text_of(self.selectors[fraction_key])(soup) or ""
        symbol = text_of(self.selectors[symbol_key])(soup) or ""
        return f"{whole}{fraction}", symbol

    def _consolidated_price(
        self, soup: BeautifulSoup,
    ) -> tuple[str, str] | None:
        full = text_of(self.selectors["price_full"])(soup)
        if not full:
            return None
        amount, currency = parse_price_text(full)
        return (amount, currency) if amount else None

    def extract_price(
        self, soup: BeautifulSoup, url: str,
    ) -> tuple[str, str]:
        """Return ``(price, currency)``; price is ``N/A`` if unknown."""
        tiers = (
            lambda: self._split_price(
                soup, "price_whole", "price_fraction", "price_symbol"
            ),
            lambda: self._consolidated_price(soup),
            lambda: self._split_price(
                soup,
                "legacy_price_whole",
                "legacy_price_fraction",
                "legacy_price_symbol",
            ),
        )
        amount, currency = "", ""
        for tier in tiers:
            found = tier()
            if found:
                amount, currency = found
                break

        price = normalize_price(amount)
        currency = currency_code(currency) if currency else ""
        if not currency and price != "N/A":
            currency = currency_for_url(url)
        return price, currency

    def extract_image(self, soup: BeautifulSoup) -> str:
        """Main product image URL, or ''."""
        attributes = self.selectors.get("image_attributes", ["src"])
        found = first_match(
            [attr_of(sel, *attributes) for sel in self.selectors["image"]],
            soup,
        )
        return found or ""

    def _dynamic_image_urls(self, soup: BeautifulSoup) -> list[str]:
        """Keys of every ``data-a-dynamic-image`` JSON map."""
        urls: list[str] = []
        for el in soup.select(self.selectors["gallery_dynamic"]):
            raw = el.get("data-a-dynamic-image")
            if not raw or isinstance(raw, list):
                continue
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                logger.debug("Skipped malformed dynamic image data")
                continue
            if isinstance(data, dict):
                urls.extend(str(key) for key in data)
        return urls

    def extract_images(
        self, soup: BeautifulSoup, limit: int | None = None,
    ) -> list[str]:
        """Gallery image URLs: main image, thumbnails, dynamic-image data.

        Thumbnails are rewritten to their full-size URL.  Duplicates are
        dropped and at most *limit* URLs (``MAX_GALLERY_IMAGES``) kept.
        """
        cap = limit if limit is not None else Settings.MAX_GALLERY_IMAGES
        found: list[str] = []

        main = attr_of(self.selectors["gallery_main"], "src")(soup)
        if main:
            found.append(main)

        attributes = self.selectors.get("gallery_thumbnail_attributes", ["src"])
        for img in soup.select(self.selectors["gallery_thumbnails"]):
            src = next(
                (str(img.get(name)).strip() for name in attributes if img.get(name)),
                "",
            )
            if src:
                found.append(hi_res_image_url(src))

        found.extend(self._dynamic_image_urls(soup))

        images = list(dict.fromkeys(url for url in found if url))
        logger.debug("Found %d gallery images", len(images))
        return images[:cap]

    def extract(
        self, soup: BeautifulSoup, url: str,
    ) -> ProductRecord | None:
        """Build a :class:`ProductRecord`, or ``None`` if it is invalid.

        A record needs both an identifier (from the URL) and a title;
        everything else is optional.
        """
        identifier = extract_identifier(url)
        price, currency = self.extract_price(soup, url)
        record = ProductRecord(
            identifier=identifier,
            title=self.extract_title(soup),
            price=price,
            currency=currency,
            image_url=self.extract_image(soup),
            source_url=url,
            affiliate_url=(
                affiliate_url(url, identifier) if identifier else ""
            ),
        )
        if not ProductValidator.is_valid(record):
            return None

        logger.info(
            "Extracted %s: %s (%s)",
            identifier,
            record.title[:40],
            record.price_display,
            extra={
                "parser_level": "success",
                "parser_data": {"identifier": identifier, "url": url},
            },
        )
        return record


def extract_product(
    soup: BeautifulSoup, url: str,
) -> ProductRecord | None:
    """Module-level shortcut for :meth:`ProductExtractor.extract`."""
    return ProductExtractor().extract(soup, url)
