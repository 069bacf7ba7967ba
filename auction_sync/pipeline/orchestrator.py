"""Per-source fetch → normalise → persist → backup with fault isolation.

Each source walks the same fixed sequence of stages. A failure in one
stage is recorded on that source's report and never reaches its siblings:
a failed fetch still produces an (empty) backup, and a failed persist does
not stop the backup either. Whatever happens, the run log is flushed once
at the end of :func:`run_pipeline`.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from auction_sync.common.errors import PipelineError, ValidationError
from auction_sync.common.logging import RunLogger
from auction_sync.common.models import Listing, RawRecord
from auction_sync.pipeline.backup import run_log_name, write_snapshot
from auction_sync.pipeline.normalise import normalize
from auction_sync.pipeline.persist import upsert_listings
from auction_sync.pipeline.reports import write_run_summary
from auction_sync.sources.base import SourceAdapter
from auction_sync.storage.document_store import DocumentStore
from auction_sync.storage.object_store import ObjectStore

UNEXPECTED_ERROR = "UNEXPECTED_ERROR"


class Stage(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    NORMALIZING = "normalizing"
    PERSISTING = "persisting"
    BACKING_UP = "backing_up"
    LOGGING_FLUSH = "logging_flush"
    DONE = "done"


@dataclass(frozen=True)
class RunContext:
    run_id: str
    run_date: str
    document_store: DocumentStore
    object_store: ObjectStore
    run_log: RunLogger
    log_prefix: str = "foreclosure_sync"


@dataclass
class SourceRunReport:
    source: str
    stages: list[Stage] = field(default_factory=lambda: [Stage.IDLE])
    fetched: int = 0
    normalized: int = 0
    dropped: int = 0
    persisted: int = 0
    backed_up: bool = False
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def enter(self, stage: Stage) -> None:
        self.stages.append(stage)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "status": "success" if self.ok else "error",
            "stages": [stage.value for stage in self.stages],
            "fetched": self.fetched,
            "normalized": self.normalized,
            "dropped": self.dropped,
            "persisted": self.persisted,
            "backed_up": self.backed_up,
            "errors": list(self.errors),
        }


@dataclass
class RunReport:
    run_id: str
    run_date: str
    sources: list[SourceRunReport] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    stages: list[Stage] = field(default_factory=lambda: [Stage.IDLE])
    log_flushed: bool = False

    @property
    def status(self) -> str:
        failed = [report for report in self.sources if not report.ok]
        if not failed and not self.errors:
            return "success"
        if self.sources and len(failed) == len(self.sources):
            return "error"
        return "partial"

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "run_date": self.run_date,
            "status": self.status,
            "totals": {
                "fetched": sum(report.fetched for report in self.sources),
                "normalized": sum(report.normalized for report in self.sources),
                "dropped": sum(report.dropped for report in self.sources),
                "persisted": sum(report.persisted for report in self.sources),
            },
            "errors": list(self.errors),
            "sources": [report.to_dict() for report in self.sources],
        }


def normalize_batch(provider: str, records: list[RawRecord], run_date: str, run_log: RunLogger) -> tuple[list[Listing], int]:
    """Normalise every record, dropping (and logging) the ones without a natural key."""
    listings: list[Listing] = []
    dropped = 0
    for index, raw in enumerate(records):
        try:
            listings.append(normalize(provider, raw, run_date=run_date))
        except ValidationError as exc:
            dropped += 1
            run_log.warning(
                f"record {index} dropped: {exc}",
                source=provider,
                stage="normalize",
                event="RECORD_DROP",
                error_code=exc.error_code,
            )
    return listings, dropped


def _backup_payload(adapter: SourceAdapter, records: list[RawRecord], listings: list[Listing]) -> list[dict]:
    if adapter.config.get("backup_mode", "canonical") == "raw":
        return records
    return [listing.to_dict() for listing in listings]


def run_source(adapter: SourceAdapter, context: RunContext) -> SourceRunReport:
    run_log = context.run_log
    report = SourceRunReport(source=adapter.name)
    records: list[RawRecord] = []
    listings: list[Listing] = []

    try:
        report.enter(Stage.FETCHING)
        result = adapter.fetch()
        if result.ok:
            records = result.records
            report.fetched = len(records)

            report.enter(Stage.NORMALIZING)
            listings, report.dropped = normalize_batch(adapter.name, records, context.run_date, run_log)
            report.normalized = len(listings)
            run_log.info(
                f"normalised {len(listings)} of {len(records)} records",
                source=adapter.name,
                stage="normalize",
                event="NORMALIZE_OK",
                rows_in=len(records),
                rows_out=len(listings),
            )

            report.enter(Stage.PERSISTING)
            persist_error = upsert_listings(context.document_store, listings, run_log, source=adapter.name)
            if persist_error is None:
                report.persisted = len({listing.id for listing in listings})
            else:
                report.errors.append(persist_error.error_code)
        else:
            report.errors.append(result.error.error_code)
    except Exception as exc:
        # Adapter or normaliser bug: the source fails, the run and its backup go on.
        run_log.error(
            f"unexpected failure: {exc!r}",
            source=adapter.name,
            stage=report.stages[-1].value,
            event="SOURCE_FAIL",
            error_code=UNEXPECTED_ERROR,
        )
        report.errors.append(UNEXPECTED_ERROR)

    report.enter(Stage.BACKING_UP)
    try:
        backup_error = write_snapshot(
            context.object_store,
            adapter.name,
            _backup_payload(adapter, records, listings),
            context.run_date,
            run_log,
        )
    except Exception as exc:
        run_log.error(
            f"unexpected backup failure: {exc!r}",
            source=adapter.name,
            stage="backup",
            event="BACKUP_FAIL",
            error_code=UNEXPECTED_ERROR,
        )
        report.errors.append(UNEXPECTED_ERROR)
    else:
        if backup_error is None:
            report.backed_up = True
        else:
            report.errors.append(backup_error.error_code)

    report.enter(Stage.DONE)
    return report


def run_pipeline(
    source_names: list[str],
    context: RunContext,
    adapter_factory: Callable[[str, RunLogger], SourceAdapter],
    *,
    max_workers: int = 2,
    sequential: bool = False,
) -> RunReport:
    """Run every named source and always flush the run log afterwards."""
    run_log = context.run_log
    report = RunReport(run_id=context.run_id, run_date=context.run_date)
    try:
        run_log.info(
            f"run start: {', '.join(source_names) or 'no sources'}",
            stage="run",
            event="RUN_START",
            status="ok",
        )
        adapters = [adapter_factory(name, run_log) for name in source_names]
        if sequential or max_workers <= 1 or len(adapters) <= 1:
            report.sources = [run_source(adapter, context) for adapter in adapters]
        else:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                report.sources = list(executor.map(lambda adapter: run_source(adapter, context), adapters))

        try:
            summary_error = write_run_summary(context.object_store, report, run_log)
        except Exception as exc:
            run_log.error(
                f"unexpected run summary failure: {exc!r}",
                stage="report",
                event="SUMMARY_FAIL",
                error_code=UNEXPECTED_ERROR,
            )
            report.errors.append(UNEXPECTED_ERROR)
        else:
            if summary_error is not None:
                report.errors.append(summary_error.error_code)
        run_log.info(f"run end: {report.status}", stage="run", event="RUN_END", status=report.status)
    except PipelineError as exc:
        report.errors.append(exc.error_code)
        run_log.error(f"run aborted: {exc}", stage="run", event="RUN_FAIL", error_code=exc.error_code)
        raise
    except Exception as exc:
        report.errors.append(UNEXPECTED_ERROR)
        run_log.error(f"run aborted: {exc!r}", stage="run", event="RUN_FAIL", error_code=UNEXPECTED_ERROR)
        raise
    finally:
        report.stages.append(Stage.LOGGING_FLUSH)
        report.log_flushed = run_log.flush(context.object_store, run_log_name(context.log_prefix, context.run_date))
        report.stages.append(Stage.DONE)
    return report
