# wishmatch/filters/product_validator.py

"""Product validation: drop records missing essential fields."""

import logging

from wishmatch.models.product import ProductRecord

logger = logging.getLogger("wishmatch.filters")


class ProductValidator:
    """Validate records and drop those with missing essential fields."""

    @staticmethod
    def is_valid(record: ProductRecord) -> bool:
        """A record needs an identifier and a non-blank title."""
        if not record.identifier:
            logger.debug(
                "Dropped record without identifier (url=%s)",
                record.source_url,
            )
            return False
        if not record.title.strip() or record.title == "N/A":
            logger.debug(
                "Dropped record with empty title (identifier=%s)",
                record.identifier,
            )
            return False
        return True
