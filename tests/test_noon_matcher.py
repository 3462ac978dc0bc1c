# tests/test_noon_matcher.py

"""Tests for the noon.com matcher using canned result pages."""

import unittest
from unittest.mock import MagicMock

from bs4 import BeautifulSoup

from wishmatch.fetch.page_fetcher import FetchError, FetchResult
from wishmatch.matching.noon_matcher import (
    NoonMatcher,
    alternate_from_candidate,
    clean_url,
    extract_sku,
)
from wishmatch.models.product import MatchCandidate

TITLE = "Funko Pop Marvel Spider-Man Figure"

RESULT_MARKUP_HTML = """
<html><body>
<div class="productContainer">
  <a href="/uae-en/funko-pop-spider-man/N12345678A/p/?o=abc">
    <div data-qa="product-name">Funko Pop Marvel Spider-Man Figure</div>
    <div data-qa="product-price">AED 59.00</div>
    <img src="https://f.nooncdn.com/p/a.jpg?width=240">
  </a>
</div>
<div class="productContainer">
  <a href="/uae-en/garden-chair/N87654321B/p/">
    <div data-qa="product-name">Wooden Garden Chair</div>
    <div data-qa="product-price">AED 250.00</div>
  </a>
</div>
</body></html>
"""

PRODUCT_LINKS_HTML = """
<html><body>
<div class="grid">
  <div class="tile">
    <div><a href="/uae-en/brand/lego/p/">LEGO store</a></div>
  </div>
  <div class="tile">
    <div><a href="/uae-en/lego-classic-box/N99999999B/p/?o=1">View</a></div>
    <h3>LEGO Classic Creative Box</h3>
    <span class="priceNow">AED 120</span>
  </div>
</div>
</body></html>
"""

PRODUCT_PAGE_HTML = """
<html><head>
<meta property="og:title" content="Meta Title Product">
<meta property="og:image" content="https://f.nooncdn.com/p/main.jpg?width=800">
</head><body>
<h1>Philips Air Fryer XL</h1>
<div data-qa="product-price">AED 399.50</div>
</body></html>
"""


def _result(html: str) -> FetchResult:
    return FetchResult(url="https://www.noon.com/uae-en/search", html=html, status=200)


class TestHelpers(unittest.TestCase):
    """URL helpers."""

    def test_clean_url(self) -> None:
        self.assertEqual(
            clean_url("https://www.noon.com/x/N1/p/?o=1#top"),
            "https://www.noon.com/x/N1/p/",
        )

    def test_extract_sku(self) -> None:
        self.assertEqual(
            extract_sku("https://www.noon.com/uae-en/item/N12345678A/p/"),
            "N12345678A",
        )
        self.assertEqual(extract_sku("https://www.noon.com/uae-en/"), "")

    def test_alternate_from_candidate(self) -> None:
        listing = alternate_from_candidate(
            MatchCandidate(
                title="x", price="10.00 AED", url="https://n/p/", score=77
            )
        )
        self.assertEqual(listing.store, "noon")
        self.assertEqual(listing.match_score, 77)
        self.assertIsNone(listing.image)


class TestNoonMatcher(unittest.TestCase):
    """NoonMatcher search and product parsing."""

    def setUp(self) -> None:
        self.fetcher = MagicMock()
        self.matcher = NoonMatcher(self.fetcher)

    def test_result_markup_candidates(self) -> None:
        soup = BeautifulSoup(RESULT_MARKUP_HTML, "lxml")
        found = self.matcher.extract_candidates(soup)
        self.assertEqual(len(found), 2)
        candidate, raw_price = found[0]
        self.assertEqual(candidate.title, TITLE)
        self.assertEqual(raw_price, "AED 59.00")
        self.assertEqual(candidate.price, "59.00 AED")
        self.assertEqual(
            candidate.url,
            "https://www.noon.com/uae-en/funko-pop-spider-man/N12345678A/p/",
        )
        self.assertEqual(candidate.store_identifier, "N12345678A")
        self.assertEqual(candidate.image, "https://f.nooncdn.com/p/a.jpg")

    def test_product_link_fallback(self) -> None:
        soup = BeautifulSoup(PRODUCT_LINKS_HTML, "lxml")
        found = self.matcher.extract_candidates(soup)
        self.assertEqual(len(found), 1)
        candidate, _ = found[0]
        self.assertEqual(candidate.title, "LEGO Classic Creative Box")
        self.assertEqual(candidate.price, "120.00 AED")
        self.assertEqual(candidate.store_identifier, "N99999999B")

    def test_candidate_limit(self) -> None:
        cards = "".join(
            f'<div class="productContainer"><a href="/uae-en/i/N{n:09d}/p/">'
            f'<div data-qa="product-name">Item number {n}</div></a></div>'
            for n in range(8)
        )
        soup = BeautifulSoup(f"<html><body>{cards}</body></html>", "lxml")
        self.assertEqual(len(self.matcher.extract_candidates(soup)), 5)
        self.assertEqual(len(self.matcher.extract_candidates(soup, limit=3)), 3)

    def test_find_match_picks_best(self) -> None:
        self.fetcher.fetch.return_value = _result(RESULT_MARKUP_HTML)
        best = self.matcher.find_match(TITLE, "59.00 AED")
        assert best is not None
        self.assertEqual(best.store_identifier, "N12345678A")
        self.assertEqual(best.score, 100)
        assert best.breakdown is not None
        self.assertEqual(best.breakdown.total, 100)
        url = self.fetcher.fetch.call_args.args[0]
        self.assertIn("search?q=Funko%20Pop", url)

    def test_find_match_below_threshold(self) -> None:
        self.fetcher.fetch.return_value = _result(RESULT_MARKUP_HTML)
        self.assertIsNone(self.matcher.find_match("Stainless Steel Kettle"))

    def test_find_match_custom_threshold(self) -> None:
        self.fetcher.fetch.return_value = _result(RESULT_MARKUP_HTML)
        self.assertIsNone(self.matcher.find_match(TITLE, min_score=101))

    def test_find_match_no_results(self) -> None:
        self.fetcher.fetch.return_value = _result("<html><body></body></html>")
        self.assertIsNone(self.matcher.find_match(TITLE))

    def test_find_match_fetch_failure(self) -> None:
        self.fetcher.fetch.return_value = FetchError(
            url="https://www.noon.com", reason="blocked"
        )
        self.assertIsNone(self.matcher.find_match(TITLE))

    def test_find_match_swallows_errors(self) -> None:
        self.fetcher.fetch.side_effect = RuntimeError("boom")
        self.assertIsNone(self.matcher.find_match(TITLE))

    def test_blank_title_skips_search(self) -> None:
        self.assertIsNone(self.matcher.find_match("   "))
        self.fetcher.fetch.assert_not_called()

    def test_parse_product(self) -> None:
        self.fetcher.fetch.return_value = _result(PRODUCT_PAGE_HTML)
        product = self.matcher.parse_product(
            "https://www.noon.com/uae-en/air-fryer/N55555555C/p/?o=x"
        )
        assert product is not None
        self.assertEqual(product.title, "Philips Air Fryer XL")
        self.assertEqual(product.price, "399.50 AED")
        self.assertEqual(product.image, "https://f.nooncdn.com/p/main.jpg")
        self.assertEqual(
            product.url, "https://www.noon.com/uae-en/air-fryer/N55555555C/p/"
        )
        self.assertEqual(product.store_identifier, "N55555555C")

    def test_parse_product_meta_fallbacks(self) -> None:
        html = """
        <html><head>
        <meta property="og:title" content="Meta Title Product">
        </head><body></body></html>
        """
        self.fetcher.fetch.return_value = _result(html)
        product = self.matcher.parse_product(
            "https://www.noon.com/uae-en/x/N1/p/"
        )
        assert product is not None
        self.assertEqual(product.title, "Meta Title Product")
        self.assertEqual(product.price, "Price not available")
        self.assertEqual(product.image, "")

    def test_parse_product_without_title(self) -> None:
        self.fetcher.fetch.return_value = _result("<html></html>")
        self.assertIsNone(
            self.matcher.parse_product("https://www.noon.com/uae-en/x/N1/p/")
        )


if __name__ == "__main__":
    unittest.main()
