# wishmatch/matching/scorer.py

"""Score how likely two listings are the same physical product.

The score is an integer 0-100 made of three parts:

* keyword overlap, up to 50 points: share of the reference title's
  significant words found (substring match, either direction) among
  the candidate's words;
* brand, 20 points for an exact brand match, 10 when one brand
  contains the other;
* price, up to 30 points, falling linearly to zero at a 50% relative
  difference.  Only scored when both prices parse.
"""

import logging
import re

from wishmatch.config.settings import Settings
from wishmatch.extract.price_parser import parse_price_value
from wishmatch.models.product import MatchScore

logger = logging.getLogger("wishmatch.matcher")

KEYWORD_POINTS = 50
BRAND_POINTS = 20
PRICE_POINTS = 30
MAX_PRICE_GAP = 0.5

_CONDITION_RE = re.compile(
    r"\b(new|used|refurbished|renewed)\b", re.IGNORECASE
)
_SIZE_RE = re.compile(
    r"\b\d+(?:\.\d+)?\s*"
    r"(?:gb|tb|mb|kg|mg|g|ml|oz|lbs?|cm|mm|inch(?:es)?)\b"
    r"|\b\d+(?:\.\d+)?\s*[\"']",
    re.IGNORECASE,
)
_COLOUR_RE = re.compile(
    r"\b(black|white|red|blue|green|yellow|pink|purple|gray|grey"
    r"|silver|gold)\b",
    re.IGNORECASE,
)
_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_BRAND_SPLIT_RE = re.compile(r"[\s:,\-]")

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to",
    "for", "of", "with", "by", "from", "pack", "set", "kit",
})


def extract_keywords(title: str) -> list[str]:
    """Significant lowercase words of *title*.

    Condition words, sizes/weights, colour names and punctuation are
    removed; stop-words and words of two characters or fewer dropped.
    """
    cleaned = title.lower()
    cleaned = _CONDITION_RE.sub(" ", cleaned)
    cleaned = _SIZE_RE.sub(" ", cleaned)
    cleaned = _COLOUR_RE.sub(" ", cleaned)
    cleaned = _PUNCTUATION_RE.sub(" ", cleaned)
    return [
        word
        for word in cleaned.split()
        if len(word) > 2 and word not in STOP_WORDS
    ]


def extract_brand(title: str) -> str | None:
    """Known brand named in *title*, else its first word if long enough."""
    lowered = title.lower()
    for brand in Settings.KNOWN_BRANDS:
        if re.search(rf"\b{re.escape(brand)}\b", lowered):
            return brand
    first = _BRAND_SPLIT_RE.split(title.strip(), maxsplit=1)[0]
    if len(first) > 2:
        return first.lower()
    return None


def keyword_ratio(reference: str, candidate: str) -> float:
    """Fraction of reference keywords present in the candidate."""
    ref_words = extract_keywords(reference)
    cand_words = extract_keywords(candidate)
    matched = [
        word
        for word in ref_words
        if any(word in other or other in word for other in cand_words)
    ]
    return len(matched) / max(len(ref_words), 1)


def brand_points(reference: str, candidate: str) -> float:
    """Full points for the same brand, half when one contains the other."""
    ref_brand = extract_brand(reference)
    cand_brand = extract_brand(candidate)
    if not ref_brand or not cand_brand:
        return 0.0
    if ref_brand == cand_brand:
        return float(BRAND_POINTS)
    if ref_brand in cand_brand or cand_brand in ref_brand:
        return BRAND_POINTS / 2
    return 0.0


def price_points(
    reference_price: str | None, candidate_price: str | None,
) -> float:
    """Points for price proximity (0 when either price is unknown)."""
    ref_value = parse_price_value(reference_price)
    cand_value = parse_price_value(candidate_price)
    if not ref_value or cand_value is None:
        return 0.0
    gap = abs(ref_value - cand_value) / ref_value
    if gap >= MAX_PRICE_GAP:
        return 0.0
    return (1 - gap / MAX_PRICE_GAP) * PRICE_POINTS


def score_match(
    reference_title: str,
    candidate_title: str,
    reference_price: str | None = None,
    candidate_price: str | None = None,
) -> MatchScore:
    """Score a candidate listing against the reference product."""
    keywords = keyword_ratio(reference_title, candidate_title) * KEYWORD_POINTS
    brand = brand_points(reference_title, candidate_title)
    price = price_points(reference_price, candidate_price)
    total = max(0, min(100, round(keywords + brand + price)))

    logger.debug(
        "Match score %d (keywords=%.1f brand=%.1f price=%.1f) "
        "for '%s' vs '%s'",
        total,
        keywords,
        brand,
        price,
        reference_title[:50],
        candidate_title[:50],
    )
    return MatchScore(
        keyword_points=keywords,
        brand_points=brand,
        price_points=price,
        total=total,
    )
