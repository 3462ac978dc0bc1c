# wishmatch/services/catalog_builder.py

"""Turn a batch of wishlist/product URLs into a deduplicated catalog."""

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from bs4 import BeautifulSoup

from wishmatch.config.settings import Settings
from wishmatch.extract.listing_extractor import extract_product_links
from wishmatch.extract.product_extractor import (
    ProductExtractor,
    canonical_product_url,
    extract_identifier,
)
from wishmatch.fetch.link_resolver import LinkResolver
from wishmatch.fetch.page_fetcher import FetchError, FetchResult, PageFetcher
from wishmatch.filters.deduplicator import IdentifierDeduplicator
from wishmatch.matching.noon_matcher import (
    NoonMatcher,
    alternate_from_candidate,
)
from wishmatch.models.product import ProductRecord

logger = logging.getLogger("wishmatch.catalog")

T = TypeVar("T")


class ErrorPolicy(Enum):
    """What to do when a whole source URL cannot be read."""

    SKIP = "skip"
    PLACEHOLDER = "placeholder"


@dataclass
class CatalogResult:
    """Outcome of one :meth:`CatalogBuilder.build_catalog` call."""

    items: list[ProductRecord] = field(
        default_factory=lambda: list[ProductRecord]()
    )
    duplicates_skipped: int = 0
    invalid_count: int = 0
    failed_count: int = 0
    truncated_inputs: int = 0
    timed_out: bool = False
    errors: list[str] = field(
        default_factory=lambda: list[str]()
    )

    @property
    def records(self) -> list[ProductRecord]:
        """Real products, without placeholder error items."""
        return [r for r in self.items if not r.is_placeholder]

    def to_dict(self) -> dict[str, Any]:
        """Serialise for the persistence collaborator."""
        return {
            "items": [r.to_dict() for r in self.items],
            "duplicates_skipped": self.duplicates_skipped,
            "invalid_count": self.invalid_count,
            "failed_count": self.failed_count,
            "truncated_inputs": self.truncated_inputs,
            "timed_out": self.timed_out,
            "errors": list(self.errors),
        }


class NoProductsError(Exception):
    """Raised when a whole batch produced no products at all."""

    def __init__(self, result: CatalogResult) -> None:
        super().__init__("no products could be extracted")
        self.result = result


class CatalogBuilder:
    """Resolve, fetch and extract products for up to ten input URLs.

    Product pages of each source are fetched by a bounded worker pool;
    every unit of work runs under ``ITEM_DEADLINE`` and the whole run
    under ``BATCH_DEADLINE``.  Units that overrun count as fetch
    failures.  Per-item failures are always skipped so one bad item
    never aborts the batch; failures of a whole source URL are skipped
    or turned into placeholder items depending on ``error_policy``.
    """

    def __init__(
        self,
        resolver: LinkResolver | None = None,
        fetcher: PageFetcher | None = None,
        extractor: ProductExtractor | None = None,
        matcher: NoonMatcher | None = None,
        error_policy: ErrorPolicy = ErrorPolicy.SKIP,
        match_alternates: bool = False,
        concurrency: int | None = None,
    ) -> None:
        self.settings = Settings()
        self.resolver = resolver or LinkResolver()
        self.fetcher = fetcher or PageFetcher()
        self.extractor = extractor or ProductExtractor()
        self._matcher = matcher
        self.error_policy = error_policy
        self.match_alternates = match_alternates
        self.concurrency = max(
            1, concurrency or self.settings.WORKER_CONCURRENCY
        )

    @property
    def matcher(self) -> NoonMatcher:
        if self._matcher is None:
            self._matcher = NoonMatcher(self.fetcher)
        return self._matcher

    # ── Private helpers ──────────────────────────────────

    async def _bounded(
        self,
        deadline: float,
        func: Callable[..., T],
        *args: Any,
    ) -> T:
        """Run blocking *func* in a thread under the unit/batch deadline.

        Raises ``asyncio.TimeoutError`` when the budget is spent.
        """
        loop = asyncio.get_running_loop()
        remaining = deadline - loop.time()
        if remaining <= 0:
            raise asyncio.TimeoutError
        return await asyncio.wait_for(
            asyncio.to_thread(func, *args),
            timeout=min(self.settings.ITEM_DEADLINE, remaining),
        )

    def _fetch_and_extract(
        self, url: str,
    ) -> ProductRecord | FetchError | None:
        """One product unit: fetch the page and extract the record."""
        page = self.fetcher.fetch(
            url, timeout=self.settings.PRODUCT_TIMEOUT
        )
        if isinstance(page, FetchError):
            return page
        soup = BeautifulSoup(page.html, "lxml")
        return self.extractor.extract(soup, url)

    async def _product_unit(
        self,
        url: str,
        semaphore: asyncio.Semaphore,
        deadline: float,
    ) -> ProductRecord | FetchError | None:
        async with semaphore:
            try:
                return await self._bounded(
                    deadline, self._fetch_and_extract, url
                )
            except asyncio.TimeoutError:
                logger.warning("Deadline exceeded for %s", url)
                return FetchError(
                    url=url,
                    reason="timeout",
                    transient=True,
                    message="deadline exceeded",
                )
            except Exception as exc:
                # Skipped on purpose: one broken page must not sink the batch
                logger.warning(
                    "Product extraction failed for %s: %s",
                    url,
                    exc,
                    exc_info=True,
                )
                return None

    def _source_failed(
        self, url: str, message: str, result: CatalogResult,
    ) -> None:
        """Record a source-level failure according to the error policy."""
        result.failed_count += 1
        result.errors.append(f"{url}: {message}")
        logger.warning(
            "Source %s failed: %s",
            url[:80],
            message,
            extra={"parser_data": {"url": url}},
        )
        if (
            self.error_policy is ErrorPolicy.PLACEHOLDER
            and len(result.items) < self.settings.MAX_ITEMS
        ):
            result.items.append(ProductRecord.placeholder(url, message))

    async def _process_links(
        self,
        links: list[str],
        result: CatalogResult,
        dedup: IdentifierDeduplicator,
        semaphore: asyncio.Semaphore,
        deadline: float,
    ) -> None:
        """Fetch product pages in chunks no larger than the item budget."""
        loop = asyncio.get_running_loop()
        pending = list(links)

        while pending and len(result.items) < self.settings.MAX_ITEMS:
            if loop.time() >= deadline:
                result.timed_out = True
                logger.warning(
                    "Batch deadline reached, %d links left", len(pending)
                )
                return

            room = self.settings.MAX_ITEMS - len(result.items)
            chunk: list[str] = []
            while pending and len(chunk) < room:
                link = pending.pop(0)
                identifier = extract_identifier(link)
                if not identifier:
                    result.invalid_count += 1
                    continue
                if dedup.seen(identifier):
                    dedup.mark_duplicate(identifier)
                    continue
                chunk.append(link)
            if not chunk:
                continue

            outcomes = await asyncio.gather(
                *(
                    self._product_unit(link, semaphore, deadline)
                    for link in chunk
                )
            )
            # Single writer: results are merged here in link order
            for outcome in outcomes:
                if isinstance(outcome, FetchError):
                    result.failed_count += 1
                elif outcome is None:
                    result.invalid_count += 1
                elif len(result.items) >= self.settings.MAX_ITEMS:
                    break
                elif dedup.accept(outcome):
                    result.items.append(outcome)

    async def _process_source(
        self,
        url: str,
        result: CatalogResult,
        dedup: IdentifierDeduplicator,
        semaphore: asyncio.Semaphore,
        deadline: float,
    ) -> None:
        """Resolve and read one input URL, then its products."""
        logger.info("Parsing %s", url[:80])
        try:
            resolved = await self._bounded(
                deadline, self.resolver.resolve, url
            )
        except asyncio.TimeoutError:
            resolved = url

        try:
            page: FetchResult | FetchError = await self._bounded(
                deadline, self.fetcher.fetch, resolved
            )
        except asyncio.TimeoutError:
            page = FetchError(
                url=resolved, reason="timeout", message="deadline exceeded"
            )
        if isinstance(page, FetchError):
            self._source_failed(
                url, page.message or page.reason, result
            )
            return

        try:
            soup = BeautifulSoup(page.html, "lxml")
            links = extract_product_links(soup, resolved)
        except Exception as exc:
            logger.error(
                "Listing extraction failed for %s: %s",
                resolved,
                exc,
                exc_info=True,
            )
            self._source_failed(url, str(exc), result)
            return

        logger.info("Found %d product links on %s", len(links), resolved[:80])
        if not links:
            return

        identifier = extract_identifier(resolved)
        if identifier and links == [canonical_product_url(resolved, identifier)]:
            # The page is the product: reuse the document we already have
            if dedup.seen(identifier):
                dedup.mark_duplicate(identifier)
                return
            record = self.extractor.extract(soup, links[0])
            if record is None:
                result.invalid_count += 1
            elif dedup.accept(record):
                result.items.append(record)
            return

        await self._process_links(
            links, result, dedup, semaphore, deadline
        )

    async def _attach_alternates(
        self,
        result: CatalogResult,
        semaphore: asyncio.Semaphore,
        deadline: float,
    ) -> None:
        """Look up each record on the secondary retailer."""

        async def match_one(record: ProductRecord) -> None:
            async with semaphore:
                try:
                    candidate = await self._bounded(
                        deadline,
                        self.matcher.find_match,
                        record.title,
                        record.price,
                    )
                except asyncio.TimeoutError:
                    logger.warning(
                        "Match lookup timed out for %s", record.identifier
                    )
                    return
            if candidate is not None:
                record.add_alternate(alternate_from_candidate(candidate))

        await asyncio.gather(*(match_one(r) for r in result.records))

    # ── Entry point ──────────────────────────────────────

    async def build_catalog(
        self,
        urls: list[str],
        existing_identifiers: Iterable[str] = (),
    ) -> CatalogResult:
        """Build a catalog from *urls* (wishlist or product pages).

        Raises ``ValueError`` for an empty input list and
        :class:`NoProductsError` when nothing at all could be extracted.
        """
        inputs = [u.strip() for u in urls if u and u.strip()]
        if not inputs:
            msg = "no URLs given"
            raise ValueError(msg)

        result = CatalogResult()
        limit = self.settings.MAX_INPUT_URLS
        if len(inputs) > limit:
            result.truncated_inputs = len(inputs) - limit
            logger.warning(
                "Only the first %d of %d URLs will be processed",
                limit,
                len(inputs),
            )
            inputs = inputs[:limit]

        dedup = IdentifierDeduplicator(existing_identifiers)
        semaphore = asyncio.Semaphore(self.concurrency)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.BATCH_DEADLINE

        for url in inputs:
            if len(result.items) >= self.settings.MAX_ITEMS:
                logger.info("Item limit reached, stopping")
                break
            if loop.time() >= deadline:
                result.timed_out = True
                logger.warning("Batch deadline reached, stopping")
                break
            await self._process_source(
                url, result, dedup, semaphore, deadline
            )

        result.duplicates_skipped = dedup.duplicates

        if self.match_alternates and result.records:
            await self._attach_alternates(result, semaphore, deadline)

        if not result.records and not result.duplicates_skipped:
            logger.error(
                "No products could be extracted from %d URLs",
                len(inputs),
            )
            raise NoProductsError(result)

        logger.info(
            "Catalog built: %d items, %d duplicates skipped",
            len(result.records),
            result.duplicates_skipped,
            extra={"parser_level": "success"},
        )
        return result


def build_catalog(
    urls: list[str],
    existing_identifiers: Iterable[str] = (),
    **options: Any,
) -> CatalogResult:
    """Blocking wrapper around :meth:`CatalogBuilder.build_catalog`."""
    builder = CatalogBuilder(**options)
    return asyncio.run(
        builder.build_catalog(urls, existing_identifiers)
    )
