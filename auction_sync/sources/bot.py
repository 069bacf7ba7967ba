"""Bank of Taiwan listings (legacy ASP.NET form with anti-forgery tokens)."""

from __future__ import annotations

from auction_sync.common.errors import ProtocolError
from auction_sync.common.http import HttpClient
from auction_sync.common.models import RawRecord
from auction_sync.sources.base import FetchCriteria, SourceAdapter
from auction_sync.sources.html_tables import RowShape, extract_hidden_inputs, map_cells, shaped_rows, tokenize_rows

REQUIRED_TOKENS = ("__VIEWSTATE", "__EVENTVALIDATION")
OPTIONAL_TOKENS = ("__VIEWSTATEGENERATOR",)


def extract_form_tokens(html: str) -> dict[str, str]:
    tokens = extract_hidden_inputs(html, REQUIRED_TOKENS + OPTIONAL_TOKENS)
    missing = [name for name in REQUIRED_TOKENS if not tokens.get(name)]
    if missing:
        raise ProtocolError(f"Form tokens missing from page: {', '.join(missing)}")
    for name in OPTIONAL_TOKENS:
        tokens.setdefault(name, "")
    return tokens


def parse_result_rows(html: str, columns: dict[str, int], cell_count: int | None = None) -> list[RawRecord]:
    shape = RowShape(cell_count=cell_count, row_classes=frozenset({"odd", "even"}))
    records: list[RawRecord] = []
    for row in shaped_rows(tokenize_rows(html, compact=False), shape):
        record: RawRecord = dict(map_cells(row, columns))
        record["detail_url"] = row.hrefs[0] if row.hrefs else ""
        records.append(record)
    return records


class BotAdapter(SourceAdapter):
    name = "bot"

    def _fetch_records(self, client: HttpClient, criteria: FetchCriteria) -> list[RawRecord]:
        page_url = self.config["page_url"]
        landing = client.get(page_url)
        tokens = extract_form_tokens(landing.text)

        form = dict(tokens)
        form.update({key: str(value) for key, value in criteria.options.items()})
        form[self.config["submit_field"]] = self.config["submit_value"]
        result = client.post_form(page_url, data=form, headers={"Referer": page_url})
        return parse_result_rows(result.text, self.config["columns"], self.config.get("cell_count"))
