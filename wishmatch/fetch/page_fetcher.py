# wishmatch/fetch/page_fetcher.py

"""Browser-impersonating page fetcher with typed failures."""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any

import cloudscraper  # type: ignore[import-untyped]
from curl_cffi import requests as curl_requests
from curl_cffi.requests import exceptions as curl_exceptions

from wishmatch.config.settings import Settings

logger = logging.getLogger("wishmatch.fetcher")

TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    TimeoutError,
    ConnectionError,
    curl_exceptions.Timeout,
    curl_exceptions.ConnectionError,
)


def is_transient(exc: BaseException) -> bool:
    """True for timeouts and refused/reset connections."""
    return isinstance(exc, TRANSIENT_ERRORS)


@dataclass
class FetchResult:
    """A successfully fetched document."""

    url: str
    html: str
    status: int


@dataclass
class FetchError:
    """Why a fetch failed.

    ``reason`` is one of ``timeout``, ``network``, ``http_status`` or
    ``blocked``; ``transient`` tells the caller a retry may succeed.
    """

    url: str
    reason: str
    status: int | None = None
    transient: bool = False
    message: str = ""


class PageFetcher:
    """Fetch pages with curl_cffi, falling back to cloudscraper.

    Each worker thread gets its own session so a fetcher can be shared
    by a thread pool.  The adaptive delay only grows when the remote
    side rate-limits us and resets after a success.
    """

    # Cloudflare challenge page markers (checked before keyword scan)
    _CF_CHALLENGE_MARKERS: list[str] = [
        "challenges.cloudflare.com",
        "cdn-cgi/challenge-platform",
        "just a moment",
        "cf-turnstile",
        "cf_chl_opt",
    ]

    def __init__(
        self,
        timeout: float | None = None,
        attempts: int | None = None,
    ) -> None:
        self.settings = Settings()
        self.timeout: float = (
            timeout
            if timeout is not None
            else self.settings.REQUEST_TIMEOUT
        )
        self.attempts: int = max(
            1,
            attempts
            if attempts is not None
            else self.settings.FETCH_ATTEMPTS,
        )
        self._local = threading.local()
        self._current_delay: float = self.settings.REQUEST_DELAY

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

    def build_headers(
        self, extra: dict[str, str] | None = None,
    ) -> dict[str, str]:
        """Default browser headers merged with *extra*."""
        return {**self.settings.DEFAULT_HEADERS, **(extra or {})}

    def _validate_response(self, text: str) -> bool:
        """Check for Cloudflare challenge pages and CAPTCHA indicators."""
        lower = text.lower()

        for marker in self._CF_CHALLENGE_MARKERS:
            if marker in lower:
                logger.warning(
                    "Cloudflare challenge detected (marker: '%s')",
                    marker,
                )
                return False

        # Skip the keyword scan on content-rich pages to avoid
        # false positives from product copy
        has_body_content = (
            "<body" in lower and len(text) > 5000
        )
        if not has_body_content:
            for keyword in self.settings.CAPTCHA_KEYWORDS:
                if keyword in lower:
                    logger.warning(
                        "CAPTCHA keyword '%s' detected", keyword
                    )
                    return False
        return True

    def _escalate_delay(self) -> None:
        """Double the current delay up to the configured max."""
        max_delay = (
            self.settings.REQUEST_DELAY
            * self.settings.MAX_DELAY_MULTIPLIER
        )
        self._current_delay = min(
            self._current_delay * 2, max_delay
        )
        logger.warning(
            "Rate-limited, delay escalated to %.1fs",
            self._current_delay,
        )

    def _fetch_primary(
        self,
        url: str,
        headers: dict[str, str],
        timeout: float,
    ) -> FetchResult | FetchError:
        """GET through curl_cffi, up to ``self.attempts`` times."""
        failure = FetchError(url=url, reason="network")
        for attempt in range(self.attempts):
            if attempt:
                time.sleep(self._current_delay * attempt)
            try:
                resp = self.session.get(
                    url,
                    headers=headers,
                    timeout=timeout,
                    allow_redirects=True,
                )
            except Exception as exc:
                transient = is_transient(exc)
                logger.warning(
                    "Request error for %s on attempt %d: %s",
                    url,
                    attempt + 1,
                    exc,
                    exc_info=not transient,
                )
                failure = FetchError(
                    url=url,
                    reason=(
                        "timeout"
                        if isinstance(
                            exc,
                            (TimeoutError, curl_exceptions.Timeout),
                        )
                        else "network"
                    ),
                    transient=transient,
                    message=str(exc),
                )
                continue

            status = int(resp.status_code)
            if 200 <= status < 300:
                text = str(resp.text)
                if not self._validate_response(text):
                    self._escalate_delay()
                    failure = FetchError(
                        url=url,
                        reason="blocked",
                        status=status,
                        transient=True,
                        message="bot challenge page",
                    )
                    continue
                self._current_delay = self.settings.REQUEST_DELAY
                final_url = getattr(resp, "url", None)
                if not isinstance(final_url, str) or not final_url:
                    final_url = url
                return FetchResult(
                    url=final_url, html=text, status=status
                )

            logger.warning(
                "HTTP %d for %s on attempt %d",
                status,
                url,
                attempt + 1,
            )
            if status in (429, 403):
                self._escalate_delay()
            failure = FetchError(
                url=url,
                reason="http_status",
                status=status,
                transient=status in (429, 403) or status >= 500,
                message=f"HTTP {status}",
            )
        return failure

    def _fetch_fallback(
        self,
        url: str,
        headers: dict[str, str],
        timeout: float,
    ) -> FetchResult | None:
        """Single cloudscraper GET (JS challenge solver)."""
        try:
            _cs: Any = cloudscraper
            scraper: Any = _cs.create_scraper()
            resp: Any = scraper.get(
                url, headers=headers, timeout=timeout
            )
            if resp.status_code == 200:
                text = str(resp.text)
                if self._validate_response(text):
                    return FetchResult(
                        url=url, html=text, status=200
                    )
        except Exception as exc:
            logger.error(
                "cloudscraper fallback failed for %s: %s",
                url,
                exc,
                exc_info=True,
            )
        return None

    def fetch(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> FetchResult | FetchError:
        """Fetch *url*, returning the document or a typed failure.

        Never raises: every network or library error is converted to
        a :class:`FetchError`.
        """
        merged = self.build_headers(headers)
        limit = timeout if timeout is not None else self.timeout

        result = self._fetch_primary(url, merged, limit)
        if isinstance(result, FetchResult):
            return result

        if self.settings.CLOUDSCRAPER_FALLBACK and result.reason != "timeout":
            logger.info(
                "curl_cffi failed for %s (%s), falling back to cloudscraper",
                url,
                result.reason,
            )
            fallback = self._fetch_fallback(url, merged, limit)
            if fallback is not None:
                return fallback

        logger.warning(
            "Fetch failed for %s: %s %s",
            url,
            result.reason,
            result.message,
        )
        return result
