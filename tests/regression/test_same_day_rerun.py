from __future__ import annotations

import json
from pathlib import Path

from auction_sync.common.logging import RunLogger
from auction_sync.pipeline.orchestrator import RunContext, run_pipeline
from auction_sync.sources.base import SourceAdapter
from auction_sync.storage.document_store import LocalDocumentStore
from auction_sync.storage.object_store import LocalObjectStore

RUN_DATE = "2026-03-01"


class ListAdapter(SourceAdapter):
    name = "chb"
    source_url_key = "listing_url"

    def __init__(self, run_log, rows):
        super().__init__({"listing_url": "https://chb.example.test/list"}, run_log)
        self.rows = rows

    def _fetch_records(self, client, criteria):
        return [dict(row) for row in self.rows]


def _run(tmp_path: Path, run_id: str, rows: list[dict]):
    run_log = RunLogger(run_id, stream=False)
    context = RunContext(
        run_id=run_id,
        run_date=RUN_DATE,
        document_store=LocalDocumentStore(tmp_path / "store.json"),
        object_store=LocalObjectStore(tmp_path / "backup"),
        run_log=run_log,
    )
    return run_pipeline(["chb"], context, lambda _name, log: ListAdapter(log, rows), sequential=True)


def test_two_runs_on_one_day_leave_the_deduplicated_union(tmp_path: Path):
    first = [{"object_id": "A1", "reserve_price": "800"}, {"object_id": "A2", "reserve_price": "900"}]
    second = [{"object_id": "A2", "reserve_price": "880"}, {"object_id": "A3", "reserve_price": "700"}]

    assert _run(tmp_path, "run-1", first).status == "success"
    assert _run(tmp_path, "run-2", second).status == "success"

    documents = LocalDocumentStore(tmp_path / "store.json").read_all()
    assert sorted(documents) == ["chb_A1", "chb_A2", "chb_A3"]
    assert documents["chb_A2"]["basePriceMinorUnits"] == 8_800_000
    assert documents["chb_A1"]["sourceUrl"] == "https://chb.example.test/list"

    snapshot = json.loads((tmp_path / "backup" / f"chb_backup_{RUN_DATE}.json").read_text(encoding="utf-8"))
    assert sorted(row["id"] for row in snapshot) == ["chb_A2", "chb_A3"]


def test_rerun_with_identical_input_changes_nothing(tmp_path: Path):
    rows = [{"object_id": "A1", "reserve_price": "800", "located_address": "彰化市"}]

    _run(tmp_path, "run-a", rows)
    before = (tmp_path / "store.json").read_text(encoding="utf-8")
    _run(tmp_path, "run-b", rows)

    assert (tmp_path / "store.json").read_text(encoding="utf-8") == before
