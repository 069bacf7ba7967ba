"""Raw provider records to canonical listings.

Pure functions only: the same raw record and run date always produce the
same :class:`Listing`. Each provider has a :class:`ProviderMapping` naming
the source field(s) for every canonical field plus its price scale and
area unit; anything missing falls back to a documented default.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Callable

from auction_sync.common.constants import (
    ID_PREFIX_BY_SOURCE,
    PLACEHOLDER_ADDRESS,
    PLACEHOLDER_DATE,
    PLACEHOLDER_FLOOR,
    PLACEHOLDER_PURPOSE,
    PLACEHOLDER_TEXT,
    SQM_TO_PING,
    TEN_THOUSAND,
)
from auction_sync.common.models import DeliveryStatus, Listing, ListingKind, RawRecord
from auction_sync.common.time_utils import to_iso_date
from auction_sync.pipeline.identity import build_listing_id, content_digest

NUMBER_PATTERN = re.compile(r"-?\d+(?:\.\d+)?")
LEADING_ENUMERATOR_PATTERN = re.compile(r"^[(（]?[0-9一二三四五六七八九十]+[)）.、]\s*")
ADDRESS_RANGE_PATTERN = re.compile(r"~.*$")

NEGATIVE_DELIVERY_PHRASES = ("不點交", "不予點交", "無點交", "非點交", "不交屋")
POSITIVE_DELIVERY_PHRASES = ("有點交", "可點交", "點交", "交屋")

AREA_QUANT = Decimal("0.0001")


@dataclass(frozen=True)
class ProviderMapping:
    kind: ListingKind
    address: tuple[str, ...]
    court: tuple[str, ...]
    case_number: tuple[str, ...]
    auction_date: tuple[str, ...]
    auction_round: tuple[str, ...]
    price: tuple[str, ...]
    area: tuple[str, ...]
    delivery: tuple[str, ...]
    floor: tuple[str, ...] = ()
    purpose: tuple[str, ...] = ()
    images: tuple[str, ...] = ()
    url: tuple[str, ...] = ("detail_url", "url", "source_url")
    price_scale: int = 1
    area_in_sqm: bool = False
    default_court: str = PLACEHOLDER_TEXT
    natural_key: Callable[[RawRecord], tuple] | None = None
    case_number_fn: Callable[[RawRecord], str] | None = None
    address_fn: Callable[[str], str] | None = None
    delivery_fn: Callable[[RawRecord], str] | None = None
    purpose_fn: Callable[[RawRecord], str] | None = None
    floor_fn: Callable[[str], str] | None = None


def _first(raw: RawRecord, keys: tuple[str, ...]) -> object | None:
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return None


def _text(raw: RawRecord, keys: tuple[str, ...]) -> str:
    value = _first(raw, keys)
    if value is None:
        return ""
    return str(value).strip()


def parse_decimal(value: object) -> Decimal | None:
    """Read the first number out of ``value``; thousands separators are ignored."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            return None
    else:
        match = NUMBER_PATTERN.search(str(value).replace(",", "").replace("，", ""))
        if not match:
            return None
        amount = Decimal(match.group(0))
    # json.loads accepts NaN and Infinity.
    if not amount.is_finite():
        return None
    return amount


def price_to_minor_units(value: object, scale: int) -> int:
    amount = parse_decimal(value)
    if amount is None or amount < 0:
        return 0
    return int((amount * scale).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def sqm_to_ping(value: Decimal) -> Decimal:
    return (value * Decimal(SQM_TO_PING)).quantize(AREA_QUANT, rounding=ROUND_HALF_UP)


def area_to_ping(value: object, *, in_sqm: bool) -> float:
    area = parse_decimal(value)
    if area is None or area <= 0:
        return 0.0
    if in_sqm:
        return float(sqm_to_ping(area))
    return float(area.quantize(AREA_QUANT, rounding=ROUND_HALF_UP))


def unit_price(base_price: int, area_ping: float) -> float:
    if area_ping <= 0:
        return 0.0
    return round(base_price / area_ping, 2)


def classify_delivery(text: str) -> DeliveryStatus:
    if not text:
        return DeliveryStatus.UNSPECIFIED
    for phrase in NEGATIVE_DELIVERY_PHRASES:
        if phrase in text:
            return DeliveryStatus.NOT_DELIVERED
    for phrase in POSITIVE_DELIVERY_PHRASES:
        if phrase in text:
            return DeliveryStatus.DELIVERED
    return DeliveryStatus.UNSPECIFIED


def parse_round(value: object) -> int:
    number = parse_decimal(value)
    if number is None or number < 1:
        return 1
    return int(number)


def image_urls(raw: RawRecord, keys: tuple[str, ...]) -> tuple[str, ...]:
    urls: list[str] = []
    for key in keys:
        value = raw.get(key)
        if isinstance(value, str):
            value = [value]
        if isinstance(value, (list, tuple)):
            urls.extend(str(item).strip() for item in value if isinstance(item, str) and item.strip())
    return tuple(dict.fromkeys(urls))


def strip_enumerator(address: str) -> str:
    return LEADING_ENUMERATOR_PATTERN.sub("", address).strip()


def strip_range(address: str) -> str:
    return ADDRESS_RANGE_PATTERN.sub("", address).strip()


def _judicial_key(raw: RawRecord) -> tuple:
    return (raw.get("crtnm"), raw.get("crmyy"), raw.get("crmid"), raw.get("crmno"), raw.get("saleno"))


def _judicial_case_number(raw: RawRecord) -> str:
    year, word, number = raw.get("crmyy"), raw.get("crmid"), raw.get("crmno")
    if not (year and word and number):
        return ""
    return f"{year}年度{word}字第{number}號"


def _judicial_delivery(raw: RawRecord) -> str:
    flag = str(raw.get("checkyn") or "").strip().upper()
    if flag == "Y":
        return "點交"
    if flag == "N":
        return "不點交"
    return str(raw.get("checkyn") or "")


def _firstbank_key(raw: RawRecord) -> tuple:
    serial = raw.get("ser")
    if serial:
        return (serial,)
    return (content_digest(raw.get("address"), raw.get("auction_date"), raw.get("auction_org")),)


def _firstbank_case_number(raw: RawRecord) -> str:
    return f"FB-{_firstbank_key(raw)[0]}"


def _open_data_layout(raw: RawRecord) -> str:
    def part(name: str) -> str:
        return str(raw.get(f"建物現況格局-{name}") or raw.get(f"建物現況格局_{name}") or 0)

    return f"{part('房')}房{part('廳')}廳{part('衛')}衛"


def _default_key(raw: RawRecord) -> tuple:
    explicit = _first(raw, ("natural_key", "id", "object_id", "caseNo"))
    if explicit is not None:
        return (explicit,)
    return (content_digest(raw.get("address"), raw.get("date"), raw.get("court"), raw.get("totalPrice")),)


PROVIDER_MAPPINGS: dict[str, ProviderMapping] = {
    "judicial": ProviderMapping(
        kind=ListingKind.AUCTION,
        address=("budadd",),
        court=("crtnm",),
        case_number=(),
        auction_date=("saledate",),
        auction_round=("saleno",),
        price=("minprice",),
        area=("area",),
        delivery=(),
        floor=("layer",),
        area_in_sqm=True,
        natural_key=_judicial_key,
        case_number_fn=_judicial_case_number,
        delivery_fn=_judicial_delivery,
    ),
    "chb": ProviderMapping(
        kind=ListingKind.AUCTION,
        address=("located_address",),
        court=(),
        case_number=("object_id",),
        auction_date=("auction_date",),
        auction_round=(),
        price=("reserve_price",),
        area=("building_area",),
        delivery=("status_delivery",),
        images=("foreclosure_picture_url",),
        price_scale=TEN_THOUSAND,
        default_court="彰化銀行",
        natural_key=lambda raw: (raw.get("object_id"),),
    ),
    "bot": ProviderMapping(
        kind=ListingKind.AUCTION,
        address=("address",),
        court=(),
        case_number=("object_id",),
        auction_date=("auction_date",),
        auction_round=("auction_round",),
        price=("base_price",),
        area=("area_sqm",),
        delivery=("delivery",),
        area_in_sqm=True,
        default_court="臺灣銀行",
        natural_key=lambda raw: (raw.get("object_id"),),
    ),
    "firstbank": ProviderMapping(
        kind=ListingKind.AUCTION,
        address=("address",),
        court=("auction_org",),
        case_number=(),
        auction_date=("auction_date",),
        auction_round=(),
        price=("base_price",),
        area=("building_area", "land_area"),
        delivery=(),
        purpose=("purpose",),
        price_scale=TEN_THOUSAND,
        default_court="第一銀行",
        natural_key=_firstbank_key,
        case_number_fn=_firstbank_case_number,
        address_fn=strip_enumerator,
    ),
    "taipei_open_data": ProviderMapping(
        kind=ListingKind.REAL_ESTATE,
        address=("土地區段位置建物區段門牌",),
        court=(),
        case_number=("編號", "serial"),
        auction_date=("交易年月日",),
        auction_round=(),
        price=("總價元",),
        area=("建物移轉總面積平方公尺",),
        delivery=(),
        floor=("移轉層次",),
        area_in_sqm=True,
        natural_key=lambda raw: (_first(raw, ("編號", "serial")),),
        address_fn=strip_range,
        purpose_fn=_open_data_layout,
        floor_fn=lambda floor: floor.replace("層", "F"),
    ),
}

# Shape used by hand-curated records and intercepted browser payloads:
# totalPrice in units of 10,000 NTD, area already in ping.
DEFAULT_MAPPING = ProviderMapping(
    kind=ListingKind.AUCTION,
    address=("address",),
    court=("court",),
    case_number=("caseNo", "caseNumber"),
    auction_date=("date", "auctionDate"),
    auction_round=("auctionRound",),
    price=("totalPrice",),
    area=("area",),
    delivery=("delivery",),
    floor=("floor",),
    purpose=("layout", "purpose"),
    images=("imageUrls", "imageUrl"),
    url=("url", "source_response_url", "source_url"),
    price_scale=TEN_THOUSAND,
    natural_key=_default_key,
)


def mapping_for(provider: str) -> ProviderMapping:
    return PROVIDER_MAPPINGS.get(provider, DEFAULT_MAPPING)


def normalize(provider: str, raw: RawRecord, *, run_date: str) -> Listing:
    """Build a fully populated :class:`Listing` from one raw record.

    Raises :class:`~auction_sync.common.errors.ValidationError` when the
    record has no usable natural key.
    """
    mapping = mapping_for(provider)
    key_fn = mapping.natural_key or _default_key
    listing_id = build_listing_id(ID_PREFIX_BY_SOURCE.get(provider, provider), *key_fn(raw))

    address = _text(raw, mapping.address)
    if address and mapping.address_fn:
        address = mapping.address_fn(address)

    case_number = mapping.case_number_fn(raw) if mapping.case_number_fn else _text(raw, mapping.case_number)
    delivery_text = mapping.delivery_fn(raw) if mapping.delivery_fn else _text(raw, mapping.delivery)

    floor = _text(raw, mapping.floor)
    if floor and mapping.floor_fn:
        floor = mapping.floor_fn(floor)
    purpose = mapping.purpose_fn(raw) if mapping.purpose_fn else _text(raw, mapping.purpose)

    base_price = price_to_minor_units(_first(raw, mapping.price), mapping.price_scale)
    area_ping = 0.0
    for key in mapping.area:
        area_ping = area_to_ping(raw.get(key), in_sqm=mapping.area_in_sqm)
        if area_ping > 0:
            break

    return Listing(
        id=listing_id,
        provider=provider,
        source_url=_text(raw, mapping.url),
        kind=mapping.kind,
        address=address or PLACEHOLDER_ADDRESS,
        court=_text(raw, mapping.court) or mapping.default_court,
        case_number=case_number or PLACEHOLDER_TEXT,
        auction_date=to_iso_date(_first(raw, mapping.auction_date)) or PLACEHOLDER_DATE,
        auction_round=parse_round(_first(raw, mapping.auction_round)),
        base_price_minor_units=base_price,
        area_ping=area_ping,
        unit_price=unit_price(base_price, area_ping),
        delivery_status=classify_delivery(delivery_text),
        floor=floor or PLACEHOLDER_FLOOR,
        purpose=purpose or PLACEHOLDER_PURPOSE,
        updated_at=run_date,
        image_urls=image_urls(raw, mapping.images),
    )
