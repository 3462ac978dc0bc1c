# wishmatch/matching/noon_matcher.py

"""Find a product on noon.com (UAE) that matches a reference listing."""

import logging
import re
from collections.abc import Callable
from typing import Any
from urllib.parse import quote, urljoin

from bs4 import BeautifulSoup, Tag

from wishmatch.config.settings import Settings
from wishmatch.extract.cascade import (
    attr_of,
    first_match,
    load_selectors,
    text_of,
)
from wishmatch.extract.price_parser import format_price
from wishmatch.fetch.page_fetcher import FetchError, PageFetcher
from wishmatch.matching.scorer import score_match
from wishmatch.models.product import AlternateListing, MatchCandidate

logger = logging.getLogger("wishmatch.matcher")

_SKU_RE = re.compile(r"/([A-Z0-9-]+)/p/?")

NOON_HEADERS: dict[str, str] = {
    "Referer": "https://www.noon.com/uae-en/",
    "Cache-Control": "max-age=0",
}


def clean_url(url: str) -> str:
    """Drop query string and fragment."""
    return url.split("?", 1)[0].split("#", 1)[0]


def extract_sku(url: str) -> str:
    """Noon SKU from a ``/<SKU>/p/`` product URL, or ''."""
    match = _SKU_RE.search(url)
    return match.group(1) if match else ""


def _image_of(container: Tag | None) -> str:
    """First image URL inside *container*, without query string."""
    if container is None:
        return ""
    img = container.find("img")
    if not isinstance(img, Tag):
        return ""
    src = img.get("src") or img.get("data-src") or ""
    return clean_url(str(src)) if src else ""


def alternate_from_candidate(candidate: MatchCandidate) -> AlternateListing:
    """Turn an accepted match into an alternate listing entry."""
    return AlternateListing(
        store="noon",
        url=candidate.url,
        price=candidate.price,
        image=candidate.image or None,
        match_score=candidate.score,
    )


class NoonMatcher:
    """Search noon.com and pick the best-scoring candidate.

    Two extraction strategies run in order and the first one that
    yields anything wins:

    1. ``data-qa="product-name"`` search result markup,
    2. generic ``/p/`` product anchors with nearby title/price text.

    Failing to find a match is a normal outcome and returns ``None``.
    """

    def __init__(self, fetcher: PageFetcher | None = None) -> None:
        self.settings = Settings()
        self.fetcher = fetcher or PageFetcher()
        self.selectors = load_selectors("noon_search")
        self.product_selectors = load_selectors("noon_product")

    def _absolute(self, href: str) -> str:
        return urljoin(self.settings.NOON_BASE_URL, href)

    def _find_card(self, el: Tag) -> Tag | None:
        """Closest ancestor that looks like a product card."""
        card_classes = self.selectors.get("card_classes", [])

        def _is_card(tag: Tag) -> bool:
            if tag.has_attr("data-qa"):
                return True
            classes = tag.get("class") or []
            return any(
                marker in cls
                for cls in classes
                for marker in card_classes
            )

        found = el.find_parent(_is_card)
        return found if isinstance(found, Tag) else None

    def _candidate(
        self,
        title: str,
        href: str,
        price: str,
        container: Tag | None,
    ) -> MatchCandidate:
        url = clean_url(self._absolute(href))
        return MatchCandidate(
            title=title,
            price=format_price(
                price, self.settings.MATCH_DEFAULT_CURRENCY
            ),
            image=_image_of(container),
            url=url,
            store_identifier=extract_sku(url),
        )

    def _from_result_markup(
        self, soup: BeautifulSoup, limit: int,
    ) -> list[tuple[MatchCandidate, str]]:
        """Strategy 1: dedicated search-result attributes."""
        found: list[tuple[MatchCandidate, str]] = []
        for el in soup.select(self.selectors["product_name"]):
            if len(found) >= limit:
                break
            title = el.get_text(strip=True)
            link = el if el.name == "a" else el.find_parent("a")
            href = link.get("href") if isinstance(link, Tag) else None
            if not title or not href or isinstance(href, list):
                continue
            card = self._find_card(el)
            raw_price = ""
            if card is not None:
                raw_price = text_of(self.selectors["price"])(card) or ""
            found.append(
                (self._candidate(title, href, raw_price, card), raw_price)
            )
        return found

    def _from_product_links(
        self, soup: BeautifulSoup, limit: int,
    ) -> list[tuple[MatchCandidate, str]]:
        """Strategy 2: any anchor pointing at a ``/p/`` product page."""
        found: list[tuple[MatchCandidate, str]] = []
        for anchor in soup.select(self.selectors["fallback_link"]):
            if len(found) >= limit:
                break
            href = anchor.get("href")
            if (
                not href
                or isinstance(href, list)
                or "/p/" not in href
                or "/brand/" in href
            ):
                continue
            div = anchor.find_parent("div")
            container = div.parent if isinstance(div, Tag) else None
            if not isinstance(container, Tag):
                container = div if isinstance(div, Tag) else None
            title = ""
            if container is not None:
                title = text_of(self.selectors["fallback_title"])(container) or ""
            title = title or anchor.get_text(strip=True)
            if len(title) < 5:
                continue
            raw_price = ""
            if container is not None:
                raw_price = (
                    text_of(self.selectors["fallback_price"])(container)
                    or ""
                )
            found.append(
                (
                    self._candidate(title, href, raw_price, container),
                    raw_price,
                )
            )
        return found

    def extract_candidates(
        self, soup: BeautifulSoup, limit: int | None = None,
    ) -> list[tuple[MatchCandidate, str]]:
        """Candidates (with their raw price text) from a results page."""
        cap = limit if limit is not None else self.settings.MATCH_MAX_CANDIDATES
        strategies: list[
            Callable[[BeautifulSoup, int], list[tuple[MatchCandidate, str]]]
        ] = [self._from_result_markup, self._from_product_links]
        for strategy in strategies:
            found = strategy(soup, cap)
            if found:
                return found
        return []

    def find_match(
        self,
        title: str,
        reference_price: str | None = None,
        min_score: int | None = None,
    ) -> MatchCandidate | None:
        """Best noon.com listing for *title*, or ``None``.

        The top candidate is returned only when its score reaches
        *min_score* (default ``Settings.MATCH_MIN_SCORE``).
        """
        threshold = (
            min_score if min_score is not None else self.settings.MATCH_MIN_SCORE
        )
        if not title or not title.strip():
            return None
        url = self.settings.NOON_SEARCH_URL.format(query=quote(title))
        logger.info("Searching noon.com for '%s'", title[:60])

        try:
            result = self.fetcher.fetch(url, headers=NOON_HEADERS)
            if isinstance(result, FetchError):
                logger.warning(
                    "noon.com search failed: %s", result.reason
                )
                return None

            soup = BeautifulSoup(result.html, "lxml")
            candidates: list[MatchCandidate] = []
            for candidate, raw_price in self.extract_candidates(soup):
                breakdown = score_match(
                    title, candidate.title, reference_price, raw_price
                )
                candidate.score = breakdown.total
                candidate.breakdown = breakdown
                candidates.append(candidate)
        except Exception as exc:
            logger.error(
                "noon.com match failed: %s", exc, exc_info=True
            )
            return None

        logger.info("Found %d noon.com candidates", len(candidates))
        if not candidates:
            return None

        candidates.sort(key=lambda c: c.score or 0, reverse=True)
        best = candidates[0]
        if (best.score or 0) < threshold:
            logger.info(
                "Best noon.com match scored %d < %d, rejecting",
                best.score or 0,
                threshold,
            )
            return None

        logger.info(
            "noon.com match '%s' scored %d",
            best.title[:60],
            best.score or 0,
            extra={
                "parser_level": "success",
                "parser_data": {"url": best.url, "score": best.score},
            },
        )
        return best

    def parse_product(self, url: str) -> MatchCandidate | None:
        """Read a noon.com product page into a :class:`MatchCandidate`."""
        sel: dict[str, Any] = self.product_selectors
        try:
            result = self.fetcher.fetch(url, headers=NOON_HEADERS)
            if isinstance(result, FetchError):
                return None
            soup = BeautifulSoup(result.html, "lxml")

            title = first_match(
                [
                    *(text_of(s) for s in sel["title"]),
                    attr_of(sel["title_meta"], "content"),
                ],
                soup,
            )
            if not title:
                return None
            raw_price = first_match(
                [
                    *(text_of(s) for s in sel["price"]),
                    attr_of(sel["price_meta"], "content"),
                ],
                soup,
            ) or ""
            image = first_match(
                [
                    attr_of(sel["image"], "src"),
                    attr_of(sel["image_meta"], "content"),
                ],
                soup,
            ) or ""
        except Exception as exc:
            logger.error(
                "noon.com product parse failed for %s: %s",
                url,
                exc,
                exc_info=True,
            )
            return None

        return MatchCandidate(
            title=title,
            price=(
                format_price(raw_price, self.settings.MATCH_DEFAULT_CURRENCY)
                if raw_price
                else "Price not available"
            ),
            image=clean_url(image),
            url=clean_url(url),
            store_identifier=extract_sku(url),
        )
