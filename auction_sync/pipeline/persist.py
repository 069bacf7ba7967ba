"""Idempotent upsert of canonical listings."""

from __future__ import annotations

from typing import Iterable

from auction_sync.common.errors import PersistenceError
from auction_sync.common.logging import RunLogger
from auction_sync.common.models import Listing
from auction_sync.storage.document_store import DocumentStore


def dedupe_by_id(listings: Iterable[Listing]) -> dict[str, Listing]:
    """Collapse duplicate ids; the last occurrence wins."""
    unique: dict[str, Listing] = {}
    for listing in listings:
        unique[listing.id] = listing
    return unique


def upsert_listings(
    store: DocumentStore,
    listings: Iterable[Listing],
    run_log: RunLogger,
    *,
    source: str | None = None,
) -> PersistenceError | None:
    listings = list(listings)
    unique = dedupe_by_id(listings)
    if not unique:
        run_log.info("nothing to persist", source=source, stage="persist", event="PERSIST_SKIP", rows_in=0)
        return None

    documents = {doc_id: listing.to_document() for doc_id, listing in unique.items()}
    try:
        store.write_many(documents)
    except PersistenceError as exc:
        run_log.error(
            f"persist failed: {exc}",
            source=source,
            stage="persist",
            event="PERSIST_FAIL",
            error_code=exc.error_code,
            rows_in=len(listings),
        )
        return exc

    run_log.info(
        f"persisted {len(documents)} listings",
        source=source,
        stage="persist",
        event="PERSIST_OK",
        status="ok",
        rows_in=len(listings),
        rows_out=len(documents),
    )
    return None
