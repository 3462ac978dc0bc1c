# wishmatch/extract/price_parser.py

"""Price and currency parsing for scraped price strings."""

import re
from urllib.parse import urlparse

from wishmatch.config.settings import Settings

_CURRENCY_TOKEN = r"[A-Z]{3}|[€$£¥₹]"
_CURRENCY_FIRST_RE = re.compile(
    rf"({_CURRENCY_TOKEN})\s*([\d,.]+)"
)
_CURRENCY_LAST_RE = re.compile(
    rf"([\d,.]+)\s*({_CURRENCY_TOKEN})"
)
_CURRENCY_CODE_RE = re.compile(
    r"\b(AED|USD|EUR|GBP|JPY|INR|SAR|KWD|QAR|OMR|BHD)\b",
    re.IGNORECASE,
)
_ARABIC_RE = re.compile(r"[؀-ۿ]")
_NUMBER_RE = re.compile(r"\d[\d.,]*")
_DISCOUNT_RE = re.compile(r"\b(off)\b", re.IGNORECASE)


def currency_code(token: str) -> str:
    """Map a currency symbol to its ISO code; codes pass through."""
    token = token.strip()
    return Settings.CURRENCY_SYMBOLS.get(token, token.upper())


def parse_price_text(text: str) -> tuple[str, str]:
    """Split a consolidated price string into ``(amount, currency)``.

    Handles ``AED 299.00``, ``299.00 AED`` and ``$19.99``; anything
    else falls back to "digits are the amount, the rest is currency".
    The amount is returned raw (see :func:`normalize_price`).
    """
    text = text.strip()
    match = _CURRENCY_FIRST_RE.search(text)
    if match:
        return match.group(2), currency_code(match.group(1))
    match = _CURRENCY_LAST_RE.search(text)
    if match:
        return match.group(1), currency_code(match.group(2))
    amount = re.sub(r"[^\d,.]", "", text)
    currency = re.sub(r"[\d,.\s]", "", text)
    return amount, currency_code(currency) if currency else ""


def normalize_price(raw: str) -> str:
    """Strip whitespace and use ``.`` as separator; ``N/A`` if empty."""
    cleaned = re.sub(r"\s+", "", raw or "").replace(",", ".")
    return cleaned or "N/A"


def currency_for_url(url: str) -> str:
    """Infer a currency from the retailer domain suffix ('' if unknown)."""
    host = (urlparse(url).hostname or "").lower()
    for suffix, code in Settings.CURRENCY_BY_DOMAIN:
        if host.endswith(suffix):
            return code
    return ""


def parse_price_value(text: str | None) -> float | None:
    """Extract the first numeric amount from *text*.

    Thousands separators are dropped; a lone comma followed by one or
    two digits is a decimal comma, and with several dots only the last
    one is decimal (``1.299.00`` is 1299.0).
    """
    if not text:
        return None
    match = _NUMBER_RE.search(text)
    if not match:
        return None
    token = match.group(0).rstrip(".,")
    if "," in token and "." in token:
        if token.rfind(",") > token.rfind("."):
            token = token.replace(".", "").replace(",", ".")
        else:
            token = token.replace(",", "")
    elif "," in token:
        head, _, tail = token.rpartition(",")
        if token.count(",") == 1 and len(tail) in (1, 2):
            token = f"{head}.{tail}"
        else:
            token = token.replace(",", "")
    elif token.count(".") > 1:
        head, _, tail = token.rpartition(".")
        token = f"{head.replace('.', '')}.{tail}"
    try:
        return float(token)
    except ValueError:
        return None


def detect_currency(text: str, default: str) -> str:
    """Currency named in a price string, else *default*."""
    if not text:
        return default
    match = _CURRENCY_CODE_RE.search(text)
    if match:
        return match.group(1).upper()
    for symbol, code in Settings.CURRENCY_SYMBOLS.items():
        if symbol in text:
            return code
    if _ARABIC_RE.search(text):
        return "AED"
    return default


def format_price(text: str, default_currency: str) -> str:
    """Format a scraped price as ``<amount> <CUR>`` with two decimals.

    Discount noise (``Off``, ``25%``) is dropped first.  Unparseable
    input is returned unchanged; empty input becomes ``N/A``.
    """
    if not text:
        return "N/A"
    cleaned = _DISCOUNT_RE.sub("", text)
    cleaned = re.sub(r"\d+\s*%.*$", "", cleaned).strip()
    currency = detect_currency(cleaned, default_currency)
    value = parse_price_value(cleaned)
    if value is None:
        return text
    return f"{value:.2f} {currency}"
