# wishmatch/filters/deduplicator.py

"""Identifier-based product deduplication for one catalog run."""

import logging
from collections.abc import Iterable

from wishmatch.models.product import ProductRecord

logger = logging.getLogger("wishmatch.filters")


class IdentifierDeduplicator:
    """Track identifiers already emitted and count repeats.

    One instance lives for a single catalog run and is only touched by
    the coordinating coroutine, so no locking is needed.  It can be
    seeded with identifiers the caller already holds (e.g. items
    already in a wishlist) so those count as duplicates too.
    """

    def __init__(self, existing: Iterable[str] = ()) -> None:
        self._seen: set[str] = {i for i in existing if i}
        self.duplicates: int = 0

    def seen(self, identifier: str) -> bool:
        """True when *identifier* has already been accepted."""
        return identifier in self._seen

    def mark_duplicate(self, identifier: str) -> None:
        """Count a repeat that was skipped before extraction."""
        self.duplicates += 1
        logger.debug("Skipped duplicate identifier %s", identifier)

    def accept(self, record: ProductRecord) -> bool:
        """Register *record*; False (and counted) if it is a repeat."""
        if record.identifier in self._seen:
            self.mark_duplicate(record.identifier)
            return False
        self._seen.add(record.identifier)
        return True
