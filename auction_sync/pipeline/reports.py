"""Run report aggregation."""

from __future__ import annotations

from auction_sync.common.errors import BackupError
from auction_sync.common.logging import RunLogger
from auction_sync.storage.object_store import ObjectStore, put_json


def run_summary_name(run_date: str) -> str:
    return f"run_summary_{run_date}.json"


def write_run_summary(store: ObjectStore, report, run_log: RunLogger) -> BackupError | None:
    payload = report.to_dict()
    name = run_summary_name(payload["run_date"])
    try:
        put_json(store, name, payload)
    except BackupError as exc:
        run_log.error(f"run summary {name} failed: {exc}", stage="report", event="SUMMARY_FAIL", error_code=exc.error_code)
        return exc
    run_log.info(f"run summary {name} written", stage="report", event="SUMMARY_OK", status=payload["status"])
    return None
