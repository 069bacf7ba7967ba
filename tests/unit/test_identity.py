from __future__ import annotations

import pytest

from auction_sync.common.errors import ValidationError
from auction_sync.pipeline.identity import build_listing_id, content_digest


def test_build_listing_id_joins_prefix_and_parts():
    assert build_listing_id("auc", "臺北地院", 114, "司執", "1234", 1) == "auc_臺北地院_114_司執_1234_1"


def test_build_listing_id_escapes_path_separators():
    assert build_listing_id("chb", "A/B\\C") == "chb_A%2FB%5CC"


@pytest.mark.parametrize(
    ("left", "right"),
    [
        (("A/1",), ("A-1",)),
        (("A/1",), ("A%2F1",)),
        (("a_b", "c"), ("a", "b_c")),
    ],
)
def test_distinct_natural_keys_never_share_an_id(left, right):
    assert build_listing_id("chb", *left) != build_listing_id("chb", *right)


@pytest.mark.parametrize("parts", [(), (None,), ("",), ("x", "  ")])
def test_build_listing_id_rejects_incomplete_keys(parts):
    with pytest.raises(ValidationError):
        build_listing_id("bot", *parts)


def test_build_listing_id_rejects_missing_prefix():
    with pytest.raises(ValidationError):
        build_listing_id("", "x")


def test_content_digest_is_stable_and_short():
    first = content_digest("台北市中山區", "2026-03-10", "臺北地院")
    second = content_digest("台北市中山區", "2026-03-10", "臺北地院")
    assert first == second
    assert len(first) == 16
    assert first != content_digest("台北市大安區", "2026-03-10", "臺北地院")
    assert content_digest("a_b", "c") != content_digest("a", "b_c")


def test_content_digest_rejects_all_empty_parts():
    with pytest.raises(ValidationError):
        content_digest(None, "", " ")
