"""First Bank foreclosure listings (Big5 server-rendered table)."""

from __future__ import annotations

import re
from urllib.parse import urljoin

from auction_sync.common.http import HttpClient, decode_text
from auction_sync.common.models import RawRecord
from auction_sync.sources.base import FetchCriteria, SourceAdapter
from auction_sync.sources.html_tables import RowShape, TableRow, map_cells, shaped_rows, tokenize_rows

COLUMNS = {
    "address": 0,
    "land_area": 1,
    "building_area": 2,
    "base_price": 3,
    "deposit": 4,
    "auction_org": 5,
    "auction_date": 6,
    "announce_date": 7,
    "purpose": 8,
    "handler": 9,
    "contact": 10,
}
ROW_SHAPE = RowShape(cell_count=11, skip_labels=frozenset({"不動產座落", "地址", ""}))

SER_PATTERN = re.compile(r"ser=([^&'\"]+)")
WINDOW_OPEN_PATTERN = re.compile(r"window\.open\('([^']+)'")


def _detail_url(row: TableRow, base_url: str, fallback: str) -> str:
    candidates = [row.onclick or "", *row.hrefs]
    for candidate in candidates:
        match = WINDOW_OPEN_PATTERN.search(candidate)
        if match:
            return urljoin(base_url, match.group(1))
        if "ser=" in candidate and not candidate.startswith("javascript"):
            return urljoin(base_url, candidate)
    return fallback


def _serial(row: TableRow) -> str | None:
    for candidate in [*row.hrefs, row.onclick or ""]:
        match = SER_PATTERN.search(candidate)
        if match:
            return match.group(1)
    return None


def parse_listing_rows(html: str, *, base_url: str, fallback_url: str) -> list[RawRecord]:
    records: list[RawRecord] = []
    for row in shaped_rows(tokenize_rows(html), ROW_SHAPE):
        record: RawRecord = dict(map_cells(row, COLUMNS))
        if not record["address"] or not record["base_price"]:
            continue
        record["ser"] = _serial(row)
        record["detail_url"] = _detail_url(row, base_url, fallback_url)
        record["raw_row"] = "|".join(row.cells)
        records.append(record)
    return records


class FirstBankAdapter(SourceAdapter):
    name = "firstbank"
    source_url_key = "search_url"

    def _fetch_records(self, client: HttpClient, criteria: FetchCriteria) -> list[RawRecord]:
        url = self.config["search_url"]
        response = client.post_form(url, data=criteria.options)
        # The page declares no usable charset; requests would guess Latin-1.
        html = decode_text(response.content, self.config["encoding"], url)
        self.run_log.info(f"firstbank response decoded: {len(html)} chars", source=self.name, stage="fetch")
        return parse_listing_rows(html, base_url=self.config["detail_base_url"], fallback_url=url)
