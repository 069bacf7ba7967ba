"""Dated JSON snapshots of each source batch."""

from __future__ import annotations

from typing import Any

from auction_sync.common.errors import BackupError
from auction_sync.common.logging import RunLogger
from auction_sync.storage.object_store import ObjectStore, put_json


def snapshot_name(source_label: str, run_date: str) -> str:
    return f"{source_label}_backup_{run_date}.json"


def run_log_name(log_prefix: str, run_date: str) -> str:
    return f"{log_prefix}_run_log_{run_date}.txt"


def write_snapshot(
    store: ObjectStore,
    source_label: str,
    payload: list[dict[str, Any]],
    run_date: str,
    run_log: RunLogger,
) -> BackupError | None:
    """Write ``payload`` as one JSON array; an empty batch still produces a file."""
    name = snapshot_name(source_label, run_date)
    try:
        put_json(store, name, list(payload))
    except BackupError as exc:
        run_log.error(
            f"backup {name} failed: {exc}",
            source=source_label,
            stage="backup",
            event="BACKUP_FAIL",
            error_code=exc.error_code,
        )
        return exc

    run_log.info(
        f"backup {name} written",
        source=source_label,
        stage="backup",
        event="BACKUP_OK",
        status="ok",
        rows_out=len(payload),
    )
    return None
