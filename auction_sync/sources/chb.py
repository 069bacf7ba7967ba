"""Chang Hwa Bank foreclosure listings (paged form POST returning JSON)."""

from __future__ import annotations

import time

from auction_sync.common.errors import ProtocolError
from auction_sync.common.http import HttpClient
from auction_sync.common.models import RawRecord
from auction_sync.sources.base import FetchCriteria, SourceAdapter

BLANK_FILTERS = {
    "cityId": "",
    "districtId": "",
    "buildingTypeId": "",
    "constructRegistrate": "",
    "reservePrice": "",
    "landholdingArea": "",
    "subjectProperty": "",
}


def _total_pages(payload: dict) -> int:
    page_info = payload.get("pageInfo") or {}
    try:
        return max(int(page_info.get("totalPage") or 1), 1)
    except (TypeError, ValueError):
        return 1


class ChbAdapter(SourceAdapter):
    name = "chb"
    source_url_key = "listing_url"

    def _fetch_page(self, client: HttpClient, page: int, size: int) -> dict:
        form = dict(BLANK_FILTERS)
        form.update({"page": str(page), "Size": str(size), "v": str(int(time.time() * 1000))})
        payload = client.post_form_json(
            self.config["api_url"],
            data=form,
            headers={"X-Requested-With": "XMLHttpRequest"},
        )
        if not isinstance(payload, dict):
            raise ProtocolError("CHB response is not a JSON object")
        return payload

    def _fetch_records(self, client: HttpClient, criteria: FetchCriteria) -> list[RawRecord]:
        records: list[RawRecord] = []
        first = self._fetch_page(client, 1, criteria.page_size)
        total_pages = min(_total_pages(first), criteria.max_pages)
        pages = [first]

        for page in range(2, total_pages + 1):
            self.run_log.info(f"chb page {page}/{total_pages}", source=self.name, stage="fetch", event="PAGE_START")
            pages.append(self._fetch_page(client, page, criteria.page_size))

        image_base = self.config["image_base_url"]
        for payload in pages:
            rows = payload.get("data")
            if not isinstance(rows, list):
                continue
            for row in rows:
                if not isinstance(row, dict):
                    continue
                if row.get("foreclosure_picture"):
                    row["foreclosure_picture_url"] = f"{image_base}{row['foreclosure_picture']}"
                records.append(row)
        return records
