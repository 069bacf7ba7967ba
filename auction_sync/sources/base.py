"""Adapter contract shared by every upstream provider."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from auction_sync.common.errors import PipelineError
from auction_sync.common.http import HttpClient, RetryConfig, TimeoutConfig
from auction_sync.common.logging import RunLogger
from auction_sync.common.models import RawRecord


@dataclass(frozen=True)
class FetchCriteria:
    page_size: int = 100
    max_pages: int = 1
    options: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FetchResult:
    records: list[RawRecord]
    error: PipelineError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SourceAdapter:
    """Base class for one provider.

    Subclasses implement :meth:`_fetch_records` and may raise any
    :class:`PipelineError`; :meth:`fetch` turns those into an empty
    :class:`FetchResult`. Anything else is a bug and propagates.
    """

    name: str = ""
    source_url_key: str = "page_url"

    def __init__(
        self,
        config: dict,
        run_log: RunLogger,
        *,
        http_client: HttpClient | None = None,
        timeout: TimeoutConfig | None = None,
        retry: RetryConfig | None = None,
    ) -> None:
        self.config = config
        self.run_log = run_log
        self.timeout = timeout or TimeoutConfig()
        self.retry = retry or RetryConfig()
        self._http_client = http_client

    def _new_client(self) -> HttpClient:
        return HttpClient(timeout=self.timeout, retry=self.retry)

    def criteria_from_config(self) -> FetchCriteria:
        return FetchCriteria(
            page_size=int(self.config.get("page_size", 100)),
            max_pages=int(self.config.get("max_pages", 1)),
            options=dict(self.config.get("form") or {}),
        )

    def fetch(self, criteria: FetchCriteria | None = None) -> FetchResult:
        criteria = criteria or self.criteria_from_config()
        owns_client = self._http_client is None
        client = self._http_client or self._new_client()
        try:
            records = self._fetch_records(client, criteria)
            source_url = self.config.get(self.source_url_key) or ""
            for record in records:
                record.setdefault("source_url", source_url)
        except PipelineError as exc:
            self.run_log.error(
                f"{self.name} fetch failed: {exc}",
                source=self.name,
                stage="fetch",
                event="FETCH_FAIL",
                error_code=exc.error_code,
            )
            return FetchResult(records=[], error=exc)
        finally:
            if owns_client:
                client.close()

        self.run_log.info(
            f"{self.name} fetched {len(records)} raw records",
            source=self.name,
            stage="fetch",
            event="FETCH_OK",
            status="ok",
            rows_out=len(records),
        )
        return FetchResult(records=records)

    def _fetch_records(self, client: HttpClient, criteria: FetchCriteria) -> list[RawRecord]:
        raise NotImplementedError
