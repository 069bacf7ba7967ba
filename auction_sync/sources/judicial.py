"""Judiciary foreclosure notices (session cookie + form POST returning JSON)."""

from __future__ import annotations

from auction_sync.common.errors import ProtocolError
from auction_sync.common.http import HttpClient
from auction_sync.common.models import RawRecord
from auction_sync.sources.base import FetchCriteria, SourceAdapter

# Every field of the query form must be present, even when blank.
BASE_QUERY_FORM = {
    "gov": "",
    "crtnm": "全部",
    "court": "",
    "county": "",
    "town": "",
    "proptype": "C52",
    "saletype": "1",
    "keyword": "",
    "saledate1": "",
    "saledate2": "",
    "minprice1": "",
    "minprice2": "",
    "saleno": "",
    "crmyy": "",
    "crmid": "",
    "crmno": "",
    "dpt": "",
    "comm_yn": "",
    "stopitem": "",
    "sec": "",
    "rrange": "",
    "area1": "",
    "area2": "",
    "debtor": "",
    "checkyn": "",
    "emptyyn": "",
    "ttitle": "",
    "sorted_column": "A.CRMYY, A.CRMID, A.CRMNO, A.SALENO, A.ROWID",
    "sorted_type": "ASC",
}


def build_query_form(options: dict, page: int, page_size: int) -> dict[str, str]:
    form = dict(BASE_QUERY_FORM)
    form.update({key: str(value) for key, value in options.items()})
    form["pageNum"] = str(page)
    form["pageSize"] = str(page_size)
    return form


def extract_rows(payload: object) -> list[RawRecord]:
    if not isinstance(payload, dict):
        raise ProtocolError("Judicial query response is not a JSON object")
    rows = payload.get("data")
    if rows is None:
        return []
    if not isinstance(rows, list):
        raise ProtocolError("Judicial query response 'data' is not a list")
    return [row for row in rows if isinstance(row, dict)]


class JudicialAdapter(SourceAdapter):
    name = "judicial"
    source_url_key = "init_url"

    def _open_session(self, client: HttpClient) -> None:
        client.get(self.config["init_url"])
        # JSESSIONID plus the load-balancer persistence cookie; the query
        # endpoint rejects requests that do not carry both back.
        if not client.cookie_header():
            raise ProtocolError("Judicial init page set no session cookies")
        self.run_log.info("judicial session established", source=self.name, stage="fetch", event="SESSION_OK")

    def _fetch_records(self, client: HttpClient, criteria: FetchCriteria) -> list[RawRecord]:
        self._open_session(client)
        headers = {
            "X-Requested-With": "XMLHttpRequest",
            "Referer": self.config["init_url"],
        }

        records: list[RawRecord] = []
        # Pages share server-side session state: strictly one at a time.
        for page in range(1, criteria.max_pages + 1):
            payload = client.post_form_json(
                self.config["query_url"],
                data=build_query_form(criteria.options, page, criteria.page_size),
                headers=headers,
            )
            rows = extract_rows(payload)
            records.extend(rows)
            self.run_log.info(
                f"judicial page {page}: {len(rows)} rows",
                source=self.name,
                stage="fetch",
                event="PAGE_OK",
                rows_out=len(rows),
            )
            if len(rows) < criteria.page_size:
                break
        return records
