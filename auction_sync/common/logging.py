"""JSON logging with stable schema and the in-memory run log."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from auction_sync.common.constants import JSON_LOG_FIELDS
from auction_sync.common.time_utils import utc_timestamp_iso


class JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": utc_timestamp_iso(),
            "run_id": getattr(record, "run_id", None),
            "stage": getattr(record, "stage", None),
            "source": getattr(record, "source", None),
            "event": getattr(record, "event", None),
            "status": getattr(record, "status", None),
            "rows_in": getattr(record, "rows_in", None),
            "rows_out": getattr(record, "rows_out", None),
            "error_code": getattr(record, "error_code", None),
            "message": record.getMessage(),
        }
        for field in JSON_LOG_FIELDS:
            payload.setdefault(field, None)
        return json.dumps(payload, ensure_ascii=False)


@dataclass(frozen=True)
class RunLogEntry:
    timestamp: str
    message: str
    is_error: bool

    def render(self) -> str:
        prefix = "ERROR " if self.is_error else ""
        return f"[{self.timestamp}] {prefix}{self.message}"


class RunLogBuffer(logging.Handler):
    """Keeps every record of one run in memory.

    ``logging.Handler.handle`` serialises ``emit`` behind the handler lock,
    so sources running on worker threads can append concurrently.
    """

    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.entries: list[RunLogEntry] = []

    def emit(self, record: logging.LogRecord) -> None:
        message = record.getMessage()
        source = getattr(record, "source", None)
        if source:
            message = f"[{source}] {message}"
        self.entries.append(
            RunLogEntry(
                timestamp=utc_timestamp_iso(),
                message=message,
                is_error=record.levelno >= logging.ERROR,
            )
        )

    def snapshot(self) -> list[RunLogEntry]:
        self.acquire()
        try:
            return list(self.entries)
        finally:
            self.release()


class RunLogger:
    """Run-scoped logger handed to every component.

    Lines go to stderr as JSON and into an in-memory buffer that is written
    to the backup store exactly once by :meth:`flush`.
    """

    def __init__(self, run_id: str, level: str = "INFO", *, stream: bool = True) -> None:
        self.run_id = run_id
        self.logger = logging.getLogger(f"auction_sync.{run_id}")
        self.logger.setLevel(level.upper())
        self.logger.propagate = False
        self.logger.handlers.clear()

        if stream:
            stream_handler = logging.StreamHandler()
            stream_handler.setFormatter(JsonLineFormatter())
            self.logger.addHandler(stream_handler)

        self.buffer = RunLogBuffer()
        self.logger.addHandler(self.buffer)
        self._flushed = False

    def info(self, message: str, **event_fields: Any) -> None:
        self.logger.info(message, extra={"run_id": self.run_id, **event_fields})

    def warning(self, message: str, **event_fields: Any) -> None:
        self.logger.warning(message, extra={"run_id": self.run_id, **event_fields})

    def error(self, message: str, **event_fields: Any) -> None:
        event_fields.setdefault("status", "error")
        self.logger.error(message, extra={"run_id": self.run_id, **event_fields})

    @property
    def entries(self) -> list[RunLogEntry]:
        return self.buffer.snapshot()

    def render(self) -> str:
        return "".join(entry.render() + "\n" for entry in self.entries)

    @property
    def flushed(self) -> bool:
        return self._flushed

    def flush(self, object_store, name: str) -> bool:
        """Upload the accumulated log as one text artifact.

        Only the first call uploads. Upload failures are reported on the
        stream handler and swallowed: there is nowhere left to record them.
        """
        if self._flushed:
            return False
        self._flushed = True
        self.info(f"uploading run log {name}", event="LOG_FLUSH")
        try:
            object_store.put_text(name, self.render())
        except Exception as exc:
            self.logger.error(
                f"run log upload failed: {exc}",
                extra={"run_id": self.run_id, "event": "LOG_FLUSH", "status": "error", "error_code": "BACKUP_ERROR"},
            )
            return False
        return True


def log_event(run_log: RunLogger, message: str, **event_fields: Any) -> None:
    run_log.info(message, **event_fields)
