# wishmatch/extract/cascade.py

"""Ordered fallback strategies for pulling values out of a document.

A strategy is a pure function ``(soup) -> str | None``.  A cascade runs
them in order and keeps the first non-empty result, so the most
reliable selector goes first and looser ones follow.
"""

import json
from collections.abc import Callable, Iterable
from functools import lru_cache
from typing import Any

from bs4 import BeautifulSoup, Tag

from wishmatch.config.settings import Settings

Strategy = Callable[[BeautifulSoup | Tag], str | None]


@lru_cache(maxsize=1)
def _all_selectors() -> dict[str, Any]:
    with open(Settings.SELECTORS_PATH, encoding="utf-8") as f:
        data: dict[str, Any] = json.load(f)
    return data


def load_selectors(group: str) -> dict[str, Any]:
    """Selector group from ``selectors.json`` (e.g. ``amazon_product``)."""
    selectors: dict[str, Any] = _all_selectors().get(group, {})
    return selectors


def first_match(
    strategies: Iterable[Strategy],
    soup: BeautifulSoup | Tag,
) -> str | None:
    """Run *strategies* in order and return the first non-empty value."""
    for strategy in strategies:
        value = strategy(soup)
        if value:
            return value
    return None


def text_of(selector: str) -> Strategy:
    """Strategy: stripped text of the first element matching *selector*."""

    def _strategy(soup: BeautifulSoup | Tag) -> str | None:
        if not selector:
            return None
        el = soup.select_one(selector)
        if el is None:
            return None
        return el.get_text(strip=True) or None

    return _strategy


def attr_of(selector: str, *attributes: str) -> Strategy:
    """Strategy: first present attribute of the first matching element."""

    def _strategy(soup: BeautifulSoup | Tag) -> str | None:
        if not selector:
            return None
        el = soup.select_one(selector)
        if el is None:
            return None
        for name in attributes:
            value = el.get(name)
            if isinstance(value, list):
                value = " ".join(value)
            if value and str(value).strip():
                return str(value).strip()
        return None

    return _strategy
