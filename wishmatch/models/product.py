# wishmatch/models/product.py

"""Product data models for inter-module data flow."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class MatchScore:
    """Weighted components of a cross-retailer match score."""

    keyword_points: float = 0.0
    brand_points: float = 0.0
    price_points: float = 0.0
    total: int = 0


@dataclass
class MatchCandidate:
    """An unconfirmed listing found on a second retailer."""

    title: str
    price: str
    image: str = ""
    url: str = ""
    store_identifier: str = ""
    score: int | None = None
    breakdown: MatchScore | None = None


@dataclass
class AlternateListing:
    """The same product offered by another store."""

    store: str
    url: str
    price: str | None = None
    image: str | None = None
    match_score: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a plain dict, omitting unknown fields."""
        data: dict[str, Any] = {"store": self.store, "url": self.url}
        if self.price is not None:
            data["price"] = self.price
        if self.image is not None:
            data["image"] = self.image
        if self.match_score is not None:
            data["match_score"] = self.match_score
        return data


@dataclass
class ProductRecord:
    """One product discovered on the primary retailer."""

    identifier: str
    title: str
    price: str = "N/A"
    currency: str = ""
    image_url: str = ""
    source_url: str = ""
    affiliate_url: str = ""
    alternate_listings: list[AlternateListing] = field(
        default_factory=lambda: list[AlternateListing]()
    )
    error: str = ""

    @property
    def price_display(self) -> str:
        """Price with its currency code, e.g. ``AED 299.00``."""
        if self.currency and self.price != "N/A":
            return f"{self.currency} {self.price}"
        return self.price

    @property
    def is_placeholder(self) -> bool:
        """True for error items standing in for a failed source URL."""
        return bool(self.error) and not self.identifier

    def add_alternate(self, listing: AlternateListing) -> None:
        """Attach a cross-retailer listing, replacing one for the same store."""
        for idx, existing in enumerate(self.alternate_listings):
            if existing.store == listing.store:
                self.alternate_listings[idx] = listing
                return
        self.alternate_listings.append(listing)

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the shape the persistence layer expects."""
        data: dict[str, Any] = {
            "identifier": self.identifier,
            "title": self.title,
            "price": self.price,
            "currency": self.currency,
            "price_display": self.price_display,
            "image_url": self.image_url,
            "source_url": self.source_url,
            "affiliate_url": self.affiliate_url,
            "alternate_listings": [
                a.to_dict() for a in self.alternate_listings
            ],
        }
        if self.error:
            data["error"] = self.error
        return data

    @classmethod
    def placeholder(cls, url: str, error: str) -> "ProductRecord":
        """Build an error item for a source URL that could not be read."""
        return cls(
            identifier="",
            title=f"Error: {url[-60:]}",
            price="N/A",
            source_url=url,
            error=error,
        )
