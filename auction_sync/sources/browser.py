"""Headless-browser fallback for listings only materialised by client script.

The page is driven in Chromium and the XHR/fetch responses it triggers are
captured; listing payloads are read from those bodies rather than from the
rendered DOM.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Iterable

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from auction_sync.common.constants import USER_AGENT
from auction_sync.common.errors import TransportError
from auction_sync.common.http import HttpClient, looks_like_html
from auction_sync.common.models import RawRecord
from auction_sync.sources.base import FetchCriteria, SourceAdapter

CAPTURED_RESOURCE_TYPES = {"xhr", "fetch", "document"}
PAYLOAD_LIST_KEYS = ("data", "results", "items", "list")


@dataclass(frozen=True)
class InterceptedResponse:
    url: str
    resource_type: str
    body: str


def url_matches(url: str, keywords: Iterable[str]) -> bool:
    lowered = url.lower()
    return any(keyword.lower() in lowered for keyword in keywords)


def payload_rows(body: str) -> list[RawRecord]:
    """Listing rows found in one intercepted body, or ``[]``."""
    if not body or looks_like_html(body):
        return []
    try:
        payload = json.loads(body)
    except ValueError:
        return []
    if isinstance(payload, dict):
        for key in PAYLOAD_LIST_KEYS:
            if isinstance(payload.get(key), list):
                payload = payload[key]
                break
    if not isinstance(payload, list):
        return []
    return [row for row in payload if isinstance(row, dict)]


def collect_records(responses: Iterable[InterceptedResponse], keywords: Iterable[str], id_field: str) -> list[RawRecord]:
    keywords = list(keywords)
    records: list[RawRecord] = []
    seen: set[str] = set()
    for response in responses:
        if response.resource_type not in CAPTURED_RESOURCE_TYPES or not url_matches(response.url, keywords):
            continue
        for row in payload_rows(response.body):
            key = str(row.get(id_field) or "")
            if key and key in seen:
                continue
            if key:
                seen.add(key)
            records.append({**row, "natural_key": row.get(id_field), "source_response_url": response.url})
    return records


class BrowserAdapter(SourceAdapter):
    name = "browser"

    def criteria_from_config(self) -> FetchCriteria:
        return FetchCriteria(max_pages=1)

    def _capture_responses(self) -> list[InterceptedResponse]:
        keywords = self.config["url_keywords"]
        captured: list[InterceptedResponse] = []

        def on_response(response) -> None:
            resource_type = response.request.resource_type
            if resource_type not in CAPTURED_RESOURCE_TYPES or not url_matches(response.url, keywords):
                return
            try:
                body = response.text()
            except PlaywrightError:
                # Redirects and aborted requests have no body.
                return
            captured.append(InterceptedResponse(url=response.url, resource_type=resource_type, body=body))

        timeout_ms = int(self.timeout.read * 1000)
        with sync_playwright() as p:
            browser = p.chromium.launch(headless=True, args=["--no-sandbox"])
            try:
                page = browser.new_page(user_agent=USER_AGENT)
                page.on("response", on_response)
                page.goto(self.config["page_url"], wait_until="domcontentloaded", timeout=timeout_ms)
                button_text = self.config.get("search_button_text")
                if button_text:
                    button = page.locator(f"input[value='{button_text}'], button:has-text('{button_text}')")
                    if button.count():
                        button.first.click(timeout=timeout_ms)
                page.wait_for_timeout(int(self.config["wait_ms"]))
            finally:
                browser.close()
        return captured

    def _fetch_records(self, client: HttpClient, criteria: FetchCriteria) -> list[RawRecord]:
        try:
            responses = self._capture_responses()
        except PlaywrightError as exc:
            raise TransportError(f"Headless browser run failed: {exc}") from exc
        self.run_log.info(
            f"browser intercepted {len(responses)} matching responses",
            source=self.name,
            stage="fetch",
            event="INTERCEPT",
        )
        return collect_records(responses, self.config["url_keywords"], self.config["id_field"])
