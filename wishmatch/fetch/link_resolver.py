# wishmatch/fetch/link_resolver.py

"""Resolve shortened retailer links (a.co, amzn.to, ...) to canonical URLs."""

import logging
import threading
import time
from typing import Any
from urllib.parse import urljoin, urlparse

from curl_cffi import requests as curl_requests

from wishmatch.config.settings import Settings
from wishmatch.fetch.page_fetcher import is_transient

logger = logging.getLogger("wishmatch.resolver")


def is_shortener_url(url: str) -> bool:
    """True when *url* is hosted on a known link-shortener domain."""
    host = (urlparse(url.strip()).hostname or "").lower()
    if not host:
        return False
    return any(
        host == domain or host.endswith(f".{domain}")
        for domain in Settings.SHORTENER_DOMAINS
    )


class LinkResolver:
    """Follow shortener redirects one hop at a time.

    Redirects are walked in a bounded loop with automatic following
    disabled, so the hop budget is a plain counter.  Resolution never
    raises: on failure the caller gets the best URL known so far.
    Each thread gets its own session, so a resolve abandoned past its
    deadline never shares a connection with the next one.
    """

    def __init__(self) -> None:
        self.settings = Settings()
        self._local = threading.local()

    @property
    def session(self) -> Any:
        """The calling thread's curl_cffi session."""
        session = getattr(self._local, "session", None)
        if session is None:
            session = curl_requests.Session(
                impersonate=self.settings.IMPERSONATE_BROWSER
            )
            self._local.session = session
        return session

    @session.setter
    def session(self, value: Any) -> None:
        self._local.session = value

    def _headers(self, profile: int) -> dict[str, str]:
        """Default headers overlaid with a rotating browser profile."""
        profiles = self.settings.HEADER_PROFILES
        return {
            **self.settings.DEFAULT_HEADERS,
            **profiles[profile % len(profiles)],
        }

    def resolve(self, url: str, max_hops: int | None = None) -> str:
        """Return the canonical URL for *url*.

        URLs outside the shortener list come back unchanged without
        any network traffic.
        """
        if not is_shortener_url(url):
            return url

        hops = max_hops if max_hops is not None else self.settings.MAX_HOPS
        current = url
        profile = 0
        retries = 0

        while hops > 0:
            try:
                resp = self.session.get(
                    current,
                    headers=self._headers(profile),
                    timeout=self.settings.PRODUCT_TIMEOUT,
                    allow_redirects=False,
                )
            except Exception as exc:
                if (
                    is_transient(exc)
                    and retries < self.settings.MAX_RETRIES
                ):
                    retries += 1
                    logger.warning(
                        "Transient error resolving %s (retry %d): %s",
                        current,
                        retries,
                        exc,
                    )
                    time.sleep(self.settings.REQUEST_DELAY * retries)
                    continue
                logger.warning(
                    "Could not resolve %s, keeping original: %s",
                    current,
                    exc,
                )
                return url

            status = int(resp.status_code)
            if 300 <= status < 400:
                location = resp.headers.get(
                    "location"
                ) or resp.headers.get("Location")
                if not location:
                    logger.warning(
                        "HTTP %d without Location for %s",
                        status,
                        current,
                    )
                    return current
                current = urljoin(current, location)
                hops -= 1
                logger.debug("Redirect %d -> %s", status, current)
                if not is_shortener_url(current):
                    logger.info(
                        "Resolved short link %s -> %s",
                        url,
                        current,
                        extra={"parser_level": "success"},
                    )
                    return current
                continue

            if 200 <= status < 300:
                return current

            if status in (429, 403):
                hops -= 1
                profile += 1
                logger.warning(
                    "HTTP %d resolving %s, switching header profile",
                    status,
                    current,
                )
                time.sleep(self.settings.RESOLVER_BLOCK_DELAY)
                continue

            logger.warning(
                "HTTP %d resolving %s, stopping", status, current
            )
            return current

        logger.warning(
            "Hop budget exhausted resolving %s, last URL %s",
            url,
            current,
        )
        return current
