"""Taipei open-data price registry (single JSON GET)."""

from __future__ import annotations

from auction_sync.common.constants import OPEN_DATA_USER_AGENT
from auction_sync.common.errors import ProtocolError
from auction_sync.common.http import HttpClient
from auction_sync.common.models import RawRecord
from auction_sync.sources.base import FetchCriteria, SourceAdapter

REQUIRED_FIELDS = ("交易年月日", "總價元", "土地區段位置建物區段門牌")


def extract_results(payload: object) -> list[RawRecord]:
    rows = payload
    if isinstance(payload, dict):
        rows = (payload.get("result") or {}).get("results")
    if not isinstance(rows, list):
        raise ProtocolError("Open-data response has no result array")
    return [row for row in rows if isinstance(row, dict)]


class TaipeiOpenDataAdapter(SourceAdapter):
    name = "taipei_open_data"
    source_url_key = "dataset_url"

    def criteria_from_config(self) -> FetchCriteria:
        return FetchCriteria(page_size=int(self.config["limit"]), max_pages=1)

    def _fetch_records(self, client: HttpClient, criteria: FetchCriteria) -> list[RawRecord]:
        # A browser user agent gets the portal's HTML front page instead of JSON.
        payload = client.get_json(
            self.config["dataset_url"],
            params={"scope": "resourceAquire", "limit": criteria.page_size},
            headers={"User-Agent": OPEN_DATA_USER_AGENT},
        )
        rows = extract_results(payload)
        usable = [row for row in rows if all(row.get(key) for key in REQUIRED_FIELDS)]
        skipped = len(rows) - len(usable)
        if skipped:
            self.run_log.warning(
                f"open data: {skipped} rows lack date, price or address",
                source=self.name,
                stage="fetch",
                rows_in=len(rows),
                rows_out=len(usable),
            )
        return usable
