"""Keyed document stores for canonical listings."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Protocol

from auction_sync.common.errors import ConfigError, PersistenceError
from auction_sync.common.fs import read_json, write_json

# Firestore rejects batches with more than 500 writes.
FIRESTORE_BATCH_LIMIT = 500
FIRESTORE_TIMEOUT_SECONDS = 60.0


class DocumentStore(Protocol):
    def write_many(self, documents: dict[str, dict]) -> None: ...

    def read_all(self) -> dict[str, dict]: ...

    def read(self, doc_id: str) -> dict | None: ...


class LocalDocumentStore:
    """One JSON object keyed by document id, rewritten atomically on every write."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def read_all(self) -> dict[str, dict]:
        if not self.path.exists():
            return {}
        try:
            payload = read_json(self.path)
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Cannot read document store {self.path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise PersistenceError(f"Document store {self.path} is not a JSON object")
        return payload

    def read(self, doc_id: str) -> dict | None:
        return self.read_all().get(doc_id)

    def write_many(self, documents: dict[str, dict]) -> None:
        merged = self.read_all()
        merged.update(documents)
        try:
            write_json(self.path, merged)
        except OSError as exc:
            raise PersistenceError(f"Cannot write document store {self.path}: {exc}") from exc


def _chunks(items: list, size: int) -> Iterable[list]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class FirestoreDocumentStore:
    """Listings collection in Firestore.

    The client is created on first use, so missing credentials fail the
    persist stage of each source instead of the whole run.
    """

    def __init__(
        self,
        collection: str,
        project: str | None = None,
        client=None,
        *,
        timeout: float = FIRESTORE_TIMEOUT_SECONDS,
    ) -> None:
        self.collection_name = collection
        self.project = project
        self.timeout = timeout
        self._client = client

    @property
    def client(self):
        if self._client is None:
            from google.auth.exceptions import GoogleAuthError
            from google.cloud import firestore

            try:
                self._client = firestore.Client(project=self.project)
            except GoogleAuthError as exc:
                raise PersistenceError(f"Cannot open Firestore client: {exc}") from exc
        return self._client

    @property
    def collection(self):
        return self.client.collection(self.collection_name)

    def write_many(self, documents: dict[str, dict]) -> None:
        from google.api_core.exceptions import GoogleAPIError
        from google.auth.exceptions import GoogleAuthError

        items = list(documents.items())
        try:
            collection = self.collection
            for chunk in _chunks(items, FIRESTORE_BATCH_LIMIT):
                batch = self.client.batch()
                for doc_id, document in chunk:
                    batch.set(collection.document(doc_id), document)
                batch.commit(timeout=self.timeout)
        except (GoogleAPIError, GoogleAuthError) as exc:
            raise PersistenceError(f"Firestore batch write failed: {exc!r}") from exc

    def read_all(self) -> dict[str, dict]:
        return {snapshot.id: snapshot.to_dict() for snapshot in self.collection.stream(timeout=self.timeout)}

    def read(self, doc_id: str) -> dict | None:
        snapshot = self.collection.document(doc_id).get(timeout=self.timeout)
        if not snapshot.exists:
            return None
        return snapshot.to_dict()


def build_document_store(cfg: dict) -> DocumentStore:
    backend = cfg.get("backend")
    if backend == "local":
        return LocalDocumentStore(Path(cfg["path"]))
    if backend == "firestore":
        return FirestoreDocumentStore(
            cfg["collection"],
            project=cfg.get("project"),
            timeout=float(cfg.get("timeout", FIRESTORE_TIMEOUT_SECONDS)),
        )
    raise ConfigError(f"Unknown document store backend: {backend}")
