# tests/test_scorer.py

"""Tests for cross-retailer match scoring."""

import unittest

from wishmatch.matching.scorer import (
    brand_points,
    extract_brand,
    extract_keywords,
    keyword_ratio,
    price_points,
    score_match,
)

TITLE = "Funko Pop Marvel Spider-Man Figure"


class TestExtractKeywords(unittest.TestCase):
    """Keyword cleanup rules."""

    def test_drops_noise_words(self) -> None:
        self.assertEqual(
            extract_keywords("Apple iPhone 15 Pro 256GB Black (Renewed)"),
            ["apple", "iphone", "pro"],
        )

    def test_drops_stop_words_and_short_words(self) -> None:
        self.assertEqual(
            extract_keywords("Set of 4 Mugs for the Kitchen"),
            ["mugs", "kitchen"],
        )

    def test_empty_title(self) -> None:
        self.assertEqual(extract_keywords(""), [])


class TestExtractBrand(unittest.TestCase):
    """Brand detection."""

    def test_known_brand_anywhere(self) -> None:
        self.assertEqual(extract_brand("Wireless Mouse by Logitech"), "logitech")

    def test_known_brand_needs_word_boundary(self) -> None:
        self.assertEqual(extract_brand("Popcorn Maker"), "popcorn")

    def test_first_word_fallback(self) -> None:
        self.assertEqual(extract_brand("Anker PowerCore 10000"), "anker")

    def test_short_first_word(self) -> None:
        self.assertIsNone(extract_brand("Xy charger"))


class TestScoreComponents(unittest.TestCase):
    """Individual score parts."""

    def test_keyword_ratio_substring_either_way(self) -> None:
        self.assertEqual(keyword_ratio("Spiderman Figure", "Spider Figures"), 1.0)

    def test_brand_points(self) -> None:
        self.assertEqual(brand_points("Sony Headphones", "Sony Earbuds"), 20)
        self.assertEqual(
            brand_points("Anker PowerCore", "AnkerDirect Charger"), 10
        )
        self.assertEqual(brand_points("Sony Headphones", "Bose Earbuds"), 0)

    def test_price_points_linear(self) -> None:
        self.assertAlmostEqual(price_points("100 AED", "100 AED"), 30.0)
        self.assertAlmostEqual(price_points("100 AED", "75 AED"), 15.0)
        self.assertAlmostEqual(price_points("100 AED", "150 AED"), 0.0)
        self.assertAlmostEqual(price_points("100 AED", "500 AED"), 0.0)

    def test_price_points_unknown(self) -> None:
        self.assertEqual(price_points(None, "10"), 0.0)
        self.assertEqual(price_points("10", "N/A"), 0.0)


class TestScoreMatch(unittest.TestCase):
    """Combined score."""

    def test_identical_listing_scores_full(self) -> None:
        score = score_match(TITLE, TITLE, "59.00 AED", "59.00 AED")
        self.assertEqual(score.total, 100)
        self.assertEqual(score.keyword_points, 50)
        self.assertEqual(score.brand_points, 20)
        self.assertEqual(score.price_points, 30)

    def test_identical_title_without_prices(self) -> None:
        self.assertEqual(score_match(TITLE, TITLE).total, 70)

    def test_unrelated_listing_scores_zero(self) -> None:
        self.assertEqual(
            score_match("Samsung Galaxy Phone", "Wooden Garden Chair").total, 0
        )

    def test_total_is_bounded(self) -> None:
        for ref, cand in [
            (TITLE, "Funko"),
            ("", ""),
            ("LEGO Classic Box", "LEGO Classic Box Deluxe Edition"),
        ]:
            with self.subTest(ref=ref, cand=cand):
                total = score_match(ref, cand, "10", "10").total
                self.assertGreaterEqual(total, 0)
                self.assertLessEqual(total, 100)


if __name__ == "__main__":
    unittest.main()
