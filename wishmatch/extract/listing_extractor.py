# wishmatch/extract/listing_extractor.py

"""Collect product links from wishlist and collection pages."""

import logging
from typing import Any
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from wishmatch.config.settings import Settings
from wishmatch.extract.cascade import load_selectors
from wishmatch.extract.product_extractor import (
    canonical_product_url,
    extract_identifier,
    retailer_host,
)

logger = logging.getLogger("wishmatch.extract")


def _is_excluded(anchor: Tag, excluded_ids: set[int]) -> bool:
    """True when *anchor* sits inside a recommendation widget."""
    return any(id(parent) in excluded_ids for parent in anchor.parents)


def _links_for(
    soup: BeautifulSoup,
    selector: str,
    base: str,
    excluded_ids: set[int],
    selectors: dict[str, Any],
) -> list[str]:
    """Run one link strategy and return filtered absolute URLs."""
    href_markers = list(selectors.get("excluded_href_markers", []))
    path_markers = list(selectors.get("product_path_markers", ["/dp/"]))

    links: list[str] = []
    seen: set[str] = set()
    for anchor in soup.select(selector):
        if _is_excluded(anchor, excluded_ids):
            continue
        href = anchor.get("href") or anchor.get("data-href")
        if not href or isinstance(href, list):
            continue
        href = href.strip()
        if any(marker in href for marker in href_markers):
            continue
        absolute = urljoin(base, href)
        if not any(marker in absolute for marker in path_markers):
            continue
        absolute = absolute.split("#", 1)[0]
        if absolute in seen:
            continue
        seen.add(absolute)
        links.append(absolute)
    return links


def extract_product_links(
    soup: BeautifulSoup,
    page_url: str,
    limit: int | None = None,
) -> list[str]:
    """Return product URLs listed on *page_url*, most specific strategy first.

    If no link strategy finds anything and the page URL itself carries
    a product identifier, the page is treated as a single product.
    """
    cap = limit if limit is not None else Settings.MAX_LINKS_PER_PAGE
    selectors = load_selectors("amazon_listing")
    base = f"https://{retailer_host(page_url)}/"

    excluded_selector = str(selectors.get("excluded_containers", ""))
    excluded_ids: set[int] = (
        {id(el) for el in soup.select(excluded_selector)}
        if excluded_selector
        else set()
    )

    for index, selector in enumerate(selectors.get("link_strategies", [])):
        links = _links_for(
            soup, selector, base, excluded_ids, selectors
        )
        if links:
            logger.debug(
                "Link strategy %d found %d links on %s",
                index,
                len(links),
                page_url,
            )
            if len(links) > cap:
                logger.info(
                    "Capping %d product links to %d", len(links), cap
                )
            return links[:cap]

    identifier = extract_identifier(page_url)
    if identifier:
        logger.debug("No listing links, treating %s as a product", page_url)
        return [canonical_product_url(page_url, identifier)]

    logger.info("No product links found on %s", page_url)
    return []
