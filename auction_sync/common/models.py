"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

# Provider-native payload. Only adapters and the normaliser look inside it.
RawRecord = dict[str, Any]


class DeliveryStatus(str, Enum):
    DELIVERED = "delivered"
    NOT_DELIVERED = "not-delivered"
    UNSPECIFIED = "unspecified"


class ListingKind(str, Enum):
    AUCTION = "auction"
    REAL_ESTATE = "real_estate"


DOCUMENT_FIELD_NAMES = {
    "id": "id",
    "provider": "provider",
    "source_url": "sourceUrl",
    "kind": "kind",
    "address": "address",
    "court": "court",
    "case_number": "caseNumber",
    "auction_date": "auctionDate",
    "auction_round": "auctionRound",
    "base_price_minor_units": "basePriceMinorUnits",
    "area_ping": "areaPing",
    "unit_price": "unitPrice",
    "delivery_status": "deliveryStatus",
    "floor": "floor",
    "purpose": "purpose",
    "image_urls": "imageUrls",
    "updated_at": "updatedAt",
}


@dataclass(frozen=True)
class Listing:
    id: str
    provider: str
    source_url: str
    kind: ListingKind
    address: str
    court: str
    case_number: str
    auction_date: str
    auction_round: int
    base_price_minor_units: int
    area_ping: float
    unit_price: float
    delivery_status: DeliveryStatus
    floor: str
    purpose: str
    updated_at: str
    image_urls: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["kind"] = self.kind.value
        payload["delivery_status"] = self.delivery_status.value
        payload["image_urls"] = list(self.image_urls)
        return payload

    def to_document(self) -> dict[str, Any]:
        """Camel-cased document as read by the presentation layer."""
        return {DOCUMENT_FIELD_NAMES[key]: value for key, value in self.to_dict().items()}
