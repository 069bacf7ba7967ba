from __future__ import annotations

import pytest

from auction_sync.common.errors import ValidationError
from auction_sync.common.models import DeliveryStatus, ListingKind
from auction_sync.pipeline.normalise import (
    area_to_ping,
    classify_delivery,
    normalize,
    parse_decimal,
    parse_round,
    price_to_minor_units,
    strip_enumerator,
    strip_range,
    unit_price,
)

RUN_DATE = "2026-03-01"


def test_ten_thousand_scaled_price_without_area_has_zero_unit_price():
    listing = normalize("browser", {"address": "台北市中山區", "totalPrice": "1,000", "area": None}, run_date=RUN_DATE)

    assert listing.base_price_minor_units == 10_000_000
    assert listing.area_ping == 0.0
    assert listing.unit_price == 0


def test_judicial_record_maps_case_number_calendar_and_area():
    raw = {
        "crtnm": "臺北地院",
        "crmyy": "114",
        "crmid": "司執",
        "crmno": "12345",
        "saleno": "2",
        "budadd": "台北市中山區松江路1號",
        "saledate": "1150310",
        "minprice": "12000000",
        "area": "100",
        "checkyn": "N",
        "layer": "5層",
        "source_url": "https://aomp109.judicial.gov.tw/judbp/wkw/WHD1A02.htm",
    }

    listing = normalize("judicial", raw, run_date=RUN_DATE)

    assert listing.id == "auc_臺北地院_114_司執_12345_2"
    assert listing.kind is ListingKind.AUCTION
    assert listing.case_number == "114年度司執字第12345號"
    assert listing.court == "臺北地院"
    assert listing.auction_date == "2026-03-10"
    assert listing.auction_round == 2
    assert listing.base_price_minor_units == 12_000_000
    assert listing.area_ping == 30.25
    assert listing.unit_price == 396694.21
    assert listing.delivery_status is DeliveryStatus.NOT_DELIVERED
    assert listing.floor == "5層"
    assert listing.purpose == "待查"
    assert listing.source_url == raw["source_url"]
    assert listing.updated_at == RUN_DATE


def test_chb_record_uses_bank_defaults_and_picture():
    raw = {
        "object_id": "A123",
        "located_address": "彰化縣彰化市中山路二段1號",
        "reserve_price": "850",
        "building_area": "35.5",
        "auction_date": "2026/04/01",
        "status_delivery": "點交",
        "foreclosure_picture_url": "https://example.test/p.jpg",
    }

    listing = normalize("chb", raw, run_date=RUN_DATE)

    assert listing.id == "chb_A123"
    assert listing.court == "彰化銀行"
    assert listing.case_number == "A123"
    assert listing.base_price_minor_units == 8_500_000
    assert listing.area_ping == 35.5
    assert listing.unit_price == 239436.62
    assert listing.delivery_status is DeliveryStatus.DELIVERED
    assert listing.image_urls == ("https://example.test/p.jpg",)


def test_firstbank_record_prefers_serial_and_falls_back_to_land_area():
    raw = {
        "address": "(1)台北市大安區復興南路1號",
        "base_price": "1,234",
        "building_area": "",
        "land_area": "12.3456",
        "auction_org": "臺北地院",
        "auction_date": "115/05/20",
        "purpose": "住家用",
        "ser": "9876",
    }

    listing = normalize("firstbank", raw, run_date=RUN_DATE)

    assert listing.id == "fb_9876"
    assert listing.case_number == "FB-9876"
    assert listing.address == "台北市大安區復興南路1號"
    assert listing.base_price_minor_units == 12_340_000
    assert listing.area_ping == 12.3456
    assert listing.purpose == "住家用"
    assert listing.auction_date == "2026-05-20"


def test_firstbank_without_serial_gets_stable_content_key():
    raw = {"address": "台北市大安區復興南路1號", "base_price": "100", "auction_date": "115/05/20", "auction_org": "臺北地院"}

    first = normalize("firstbank", raw, run_date=RUN_DATE)
    second = normalize("firstbank", dict(raw), run_date="2026-03-02")

    assert first.id == second.id
    assert first.id.startswith("fb_")


def test_open_data_record_is_real_estate_with_layout():
    raw = {
        "編號": "RPQ1",
        "土地區段位置建物區段門牌": "臺北市中正區羅斯福路一段1~30號",
        "交易年月日": "1150105",
        "總價元": "15800000",
        "建物移轉總面積平方公尺": "100",
        "移轉層次": "五層",
        "建物現況格局-房": "3",
        "建物現況格局-廳": "2",
        "建物現況格局-衛": "1",
    }

    listing = normalize("taipei_open_data", raw, run_date=RUN_DATE)

    assert listing.id == "tp_RPQ1"
    assert listing.kind is ListingKind.REAL_ESTATE
    assert listing.address == "臺北市中正區羅斯福路一段1"
    assert listing.auction_date == "2026-01-05"
    assert listing.floor == "五F"
    assert listing.purpose == "3房2廳1衛"
    assert listing.unit_price == 522314.05


def test_sparse_record_is_fully_populated_with_placeholders():
    listing = normalize("bot", {"object_id": "X1"}, run_date=RUN_DATE)

    assert listing.address == "地址未公開"
    assert listing.court == "臺灣銀行"
    assert listing.auction_date == "未知日期"
    assert listing.auction_round == 1
    assert listing.floor == "未知樓層"
    assert listing.purpose == "待查"
    assert listing.delivery_status is DeliveryStatus.UNSPECIFIED
    assert listing.image_urls == ()


def test_record_without_natural_key_is_rejected():
    with pytest.raises(ValidationError):
        normalize("bot", {"address": "台北市"}, run_date=RUN_DATE)


def test_normalize_is_deterministic():
    raw = {"object_id": "B7", "address": "台中市", "base_price": "5000000", "area_sqm": "50"}
    assert normalize("bot", raw, run_date=RUN_DATE) == normalize("bot", dict(raw), run_date=RUN_DATE)


def test_to_document_uses_camel_case_keys():
    document = normalize("bot", {"object_id": "X1"}, run_date=RUN_DATE).to_document()

    assert document["basePriceMinorUnits"] == 0
    assert document["deliveryStatus"] == "unspecified"
    assert document["kind"] == "auction"
    assert document["imageUrls"] == []
    assert "base_price_minor_units" not in document


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("不點交", DeliveryStatus.NOT_DELIVERED),
        ("本件不予點交", DeliveryStatus.NOT_DELIVERED),
        ("點交", DeliveryStatus.DELIVERED),
        ("有點交", DeliveryStatus.DELIVERED),
        ("不交屋", DeliveryStatus.NOT_DELIVERED),
        ("", DeliveryStatus.UNSPECIFIED),
        ("詳見公告", DeliveryStatus.UNSPECIFIED),
    ],
)
def test_classify_delivery_checks_negative_phrases_first(text, expected):
    assert classify_delivery(text) is expected


def test_numeric_helpers():
    assert price_to_minor_units("1,000", 10000) == 10_000_000
    assert price_to_minor_units("底價 850 萬", 10000) == 8_500_000
    assert price_to_minor_units("-5", 1) == 0
    assert price_to_minor_units("n/a", 1) == 0
    assert price_to_minor_units(12.5, 1) == 13
    assert area_to_ping("100", in_sqm=True) == 30.25
    assert area_to_ping("0", in_sqm=True) == 0.0
    assert unit_price(1000, 0.0) == 0.0
    assert parse_round("第3拍") == 3
    assert parse_round(None) == 1


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_numbers_default_the_field(value):
    raw = {"crtnm": "臺北地院", "crmyy": "114", "crmid": "司執", "crmno": "1", "saleno": "1", "area": value, "minprice": value}

    listing = normalize("judicial", raw, run_date=RUN_DATE)

    assert listing.area_ping == 0.0
    assert listing.base_price_minor_units == 0
    assert listing.unit_price == 0
    assert parse_decimal(value) is None



def test_address_cleanups():
    assert strip_enumerator("(2) 台北市") == "台北市"
    assert strip_enumerator("1.台北市") == "台北市"
    assert strip_range("羅斯福路1~30號") == "羅斯福路1"
