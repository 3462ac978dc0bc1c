# tests/test_price_parser.py

"""Tests for price and currency parsing helpers."""

import unittest

from wishmatch.extract.price_parser import (
    currency_code,
    currency_for_url,
    detect_currency,
    format_price,
    normalize_price,
    parse_price_text,
    parse_price_value,
)


class TestParsePriceText(unittest.TestCase):
    """Splitting consolidated price strings."""

    def test_currency_first(self) -> None:
        self.assertEqual(parse_price_text("AED 299.00"), ("299.00", "AED"))

    def test_currency_last(self) -> None:
        self.assertEqual(parse_price_text("299.00 AED"), ("299.00", "AED"))

    def test_symbol_maps_to_code(self) -> None:
        self.assertEqual(parse_price_text("$19.99"), ("19.99", "USD"))
        self.assertEqual(parse_price_text("£5"), ("5", "GBP"))

    def test_strip_fallback(self) -> None:
        """Unrecognised layouts split digits from the rest."""
        amount, currency = parse_price_text("12.50 dh")
        self.assertEqual(amount, "12.50")
        self.assertEqual(currency, "DH")

    def test_currency_code_passthrough(self) -> None:
        self.assertEqual(currency_code("eur"), "EUR")
        self.assertEqual(currency_code("€"), "EUR")


class TestNormalizePrice(unittest.TestCase):
    """normalize_price behaviour."""

    def test_strips_whitespace_and_uses_dot(self) -> None:
        self.assertEqual(normalize_price(" 1 299,00 "), "1299.00")

    def test_empty_is_not_available(self) -> None:
        self.assertEqual(normalize_price(""), "N/A")
        self.assertEqual(normalize_price("   "), "N/A")

    def test_plain_price_unchanged(self) -> None:
        self.assertEqual(normalize_price("59.00"), "59.00")

    def test_comma_becomes_dot(self) -> None:
        """No thousands heuristic: every comma turns into a dot."""
        self.assertEqual(normalize_price("1,234"), "1.234")


class TestCurrencyForUrl(unittest.TestCase):
    """Currency inference from the storefront domain."""

    def test_known_storefronts(self) -> None:
        cases = {
            "https://www.amazon.ae/dp/B0ABCDEFGH": "AED",
            "https://www.amazon.sa/dp/B0ABCDEFGH": "SAR",
            "https://www.amazon.co.uk/dp/B0ABCDEFGH": "GBP",
            "https://www.amazon.de/dp/B0ABCDEFGH": "EUR",
            "https://www.amazon.com/dp/B0ABCDEFGH": "USD",
        }
        for url, expected in cases.items():
            with self.subTest(url=url):
                self.assertEqual(currency_for_url(url), expected)

    def test_unknown_domain(self) -> None:
        self.assertEqual(currency_for_url("https://example.org/x"), "")


class TestParsePriceValue(unittest.TestCase):
    """Numeric amount extraction."""

    def test_thousands_separator(self) -> None:
        self.assertEqual(parse_price_value("AED 1,299.00"), 1299.0)

    def test_decimal_comma(self) -> None:
        self.assertEqual(parse_price_value("12,5 EUR"), 12.5)
        self.assertEqual(parse_price_value("1.299,50"), 1299.5)

    def test_comma_thousands_only(self) -> None:
        self.assertEqual(parse_price_value("1,299"), 1299.0)

    def test_repeated_dots(self) -> None:
        self.assertEqual(parse_price_value("1.299.00"), 1299.0)

    def test_no_number(self) -> None:
        self.assertIsNone(parse_price_value("Price not available"))
        self.assertIsNone(parse_price_value(None))
        self.assertIsNone(parse_price_value(""))


class TestFormatPrice(unittest.TestCase):
    """Display formatting of scraped prices."""

    def test_code_in_text(self) -> None:
        self.assertEqual(format_price("AED 1,299.00", "AED"), "1299.00 AED")

    def test_default_currency(self) -> None:
        self.assertEqual(format_price("199", "AED"), "199.00 AED")

    def test_discount_noise_removed(self) -> None:
        self.assertEqual(format_price("199 Off 25%", "AED"), "199.00 AED")

    def test_symbol(self) -> None:
        self.assertEqual(format_price("$20", "AED"), "20.00 USD")

    def test_unparseable_returned_as_is(self) -> None:
        self.assertEqual(format_price("Free", "AED"), "Free")

    def test_empty(self) -> None:
        self.assertEqual(format_price("", "AED"), "N/A")

    def test_arabic_text_is_dirham(self) -> None:
        self.assertEqual(detect_currency("د.إ 100", "USD"), "AED")


if __name__ == "__main__":
    unittest.main()
