from __future__ import annotations

import json
from pathlib import Path

import pytest

from auction_sync.common.errors import PersistenceError, TransportError
from auction_sync.common.logging import RunLogger
from auction_sync.pipeline.orchestrator import RunContext, Stage, run_pipeline, run_source
from auction_sync.sources.base import SourceAdapter
from auction_sync.storage.document_store import LocalDocumentStore
from auction_sync.storage.object_store import LocalObjectStore

RUN_DATE = "2026-03-01"


class StaticAdapter(SourceAdapter):
    def __init__(self, name, run_log, records=None, exc=None, backup_mode="canonical"):
        super().__init__({"page_url": f"https://{name}.example.test/", "backup_mode": backup_mode}, run_log)
        self.name = name
        self.records = records or []
        self.exc = exc

    def _fetch_records(self, client, criteria):
        if self.exc is not None:
            raise self.exc
        return [dict(record) for record in self.records]


class FailingDocumentStore:
    def write_many(self, documents):
        raise PersistenceError("quota exceeded")


def _context(tmp_path: Path, run_log: RunLogger, document_store=None) -> RunContext:
    return RunContext(
        run_id="run-orch",
        run_date=RUN_DATE,
        document_store=document_store or LocalDocumentStore(tmp_path / "store.json"),
        object_store=LocalObjectStore(tmp_path / "backup"),
        run_log=run_log,
        log_prefix="sync",
    )


@pytest.mark.integration
def test_one_failing_source_never_stops_the_others(tmp_path: Path):
    run_log = RunLogger("run-orch", stream=False)
    context = _context(tmp_path, run_log)
    adapters = {
        "bot": StaticAdapter("bot", run_log, records=[{"object_id": "1", "base_price": "100"}, {"address": "no key"}]),
        "chb": StaticAdapter("chb", run_log, exc=TransportError("connection reset")),
        "judicial": StaticAdapter("judicial", run_log, exc=RuntimeError("parser bug")),
    }

    report = run_pipeline(list(adapters), context, lambda name, _log: adapters[name], max_workers=2)

    by_source = {source.source: source for source in report.sources}
    assert [source.source for source in report.sources] == ["bot", "chb", "judicial"]
    assert report.status == "partial"

    bot = by_source["bot"]
    assert bot.ok
    assert (bot.fetched, bot.normalized, bot.dropped, bot.persisted) == (2, 1, 1, 1)
    assert bot.stages == [Stage.IDLE, Stage.FETCHING, Stage.NORMALIZING, Stage.PERSISTING, Stage.BACKING_UP, Stage.DONE]

    chb = by_source["chb"]
    assert chb.errors == ["TRANSPORT_ERROR"]
    assert chb.stages == [Stage.IDLE, Stage.FETCHING, Stage.BACKING_UP, Stage.DONE]
    assert chb.backed_up

    assert by_source["judicial"].errors == ["UNEXPECTED_ERROR"]
    assert by_source["judicial"].backed_up

    backup_dir = tmp_path / "backup"
    for name in ("bot", "chb", "judicial"):
        assert (backup_dir / f"{name}_backup_{RUN_DATE}.json").exists()
    assert json.loads((backup_dir / f"chb_backup_{RUN_DATE}.json").read_text(encoding="utf-8")) == []

    summary = json.loads((backup_dir / f"run_summary_{RUN_DATE}.json").read_text(encoding="utf-8"))
    assert summary["status"] == "partial"
    assert summary["totals"]["persisted"] == 1

    log_text = (backup_dir / f"sync_run_log_{RUN_DATE}.txt").read_text(encoding="utf-8")
    assert "ERROR [chb]" in log_text
    assert "ERROR [judicial]" in log_text
    assert report.log_flushed
    assert report.stages[-2:] == [Stage.LOGGING_FLUSH, Stage.DONE]

    assert set(LocalDocumentStore(tmp_path / "store.json").read_all()) == {"bot_1"}


@pytest.mark.integration
def test_persist_failure_still_writes_backup(tmp_path: Path):
    run_log = RunLogger("run-orch-persist", stream=False)
    context = _context(tmp_path, run_log, document_store=FailingDocumentStore())
    adapter = StaticAdapter("bot", run_log, records=[{"object_id": "1"}], backup_mode="raw")

    report = run_source(adapter, context)

    assert report.errors == ["PERSISTENCE_ERROR"]
    assert report.backed_up
    payload = json.loads((tmp_path / "backup" / f"bot_backup_{RUN_DATE}.json").read_text(encoding="utf-8"))
    assert payload == [{"object_id": "1", "source_url": "https://bot.example.test/"}]


@pytest.mark.integration
def test_log_is_flushed_even_when_adapter_construction_fails(tmp_path: Path):
    run_log = RunLogger("run-orch-config", stream=False)
    context = _context(tmp_path, run_log)

    def factory(name, _log):
        raise TransportError(f"cannot build {name}")

    with pytest.raises(TransportError):
        run_pipeline(["bot"], context, factory, sequential=True)

    assert run_log.flushed
    assert (tmp_path / "backup" / f"sync_run_log_{RUN_DATE}.txt").exists()


@pytest.mark.integration
def test_all_sources_failing_reports_error(tmp_path: Path):
    run_log = RunLogger("run-orch-all-fail", stream=False)
    context = _context(tmp_path, run_log)
    adapter = StaticAdapter("chb", run_log, exc=TransportError("down"))

    report = run_pipeline(["chb"], context, lambda _name, _log: adapter)

    assert report.status == "error"
