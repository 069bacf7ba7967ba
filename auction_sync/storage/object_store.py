"""Write-only named blob storage for backup snapshots, run logs and summaries."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from auction_sync.common.errors import BackupError, ConfigError
from auction_sync.common.fs import dumps_json, write_text_atomic

DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive.file"]
DRIVE_TIMEOUT_SECONDS = 60.0


class ObjectStore(Protocol):
    def put_text(self, name: str, text: str, content_type: str = "text/plain") -> None: ...


def put_json(store: ObjectStore, name: str, payload) -> None:
    store.put_text(name, dumps_json(payload), content_type="application/json")


class LocalObjectStore:
    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def put_text(self, name: str, text: str, content_type: str = "text/plain") -> None:
        try:
            write_text_atomic(self.root / name, text)
        except OSError as exc:
            raise BackupError(f"Cannot write {name} under {self.root}: {exc}") from exc


class GoogleDriveObjectStore:
    """Uploads each blob as a new file in one Drive folder.

    Credentials come from an authorized-user token file produced by an
    interactive OAuth consent done once outside the pipeline. The Drive
    service is built on first upload, so a bad token fails the backups
    of this run rather than the whole run.
    """

    def __init__(
        self,
        folder_id: str,
        token_path: Path | None = None,
        service=None,
        *,
        timeout: float = DRIVE_TIMEOUT_SECONDS,
    ) -> None:
        self.folder_id = folder_id
        self.token_path = Path(token_path) if token_path is not None else None
        self.timeout = timeout
        if service is None and (self.token_path is None or not self.token_path.exists()):
            raise ConfigError(f"Drive token file not found: {self.token_path}")
        self._service = service

    def _build_service(self):
        import google_auth_httplib2
        import httplib2
        from google.oauth2.credentials import Credentials
        from googleapiclient.discovery import build

        credentials = Credentials.from_authorized_user_file(str(self.token_path), DRIVE_SCOPES)
        http = google_auth_httplib2.AuthorizedHttp(credentials, http=httplib2.Http(timeout=self.timeout))
        return build("drive", "v3", http=http, cache_discovery=False)

    def put_text(self, name: str, text: str, content_type: str = "text/plain") -> None:
        from google.auth.exceptions import GoogleAuthError
        from googleapiclient.errors import Error as GoogleApiClientError
        from googleapiclient.http import MediaInMemoryUpload
        from httplib2 import HttpLib2Error

        media = MediaInMemoryUpload(text.encode("utf-8"), mimetype=content_type, resumable=False)
        metadata = {"name": name, "parents": [self.folder_id]}
        try:
            if self._service is None:
                self._service = self._build_service()
            self._service.files().create(body=metadata, media_body=media, fields="id").execute()
        # OSError covers socket timeouts and connection resets below httplib2.
        except (GoogleApiClientError, HttpLib2Error, GoogleAuthError, OSError, ValueError) as exc:
            raise BackupError(f"Drive upload of {name} failed: {exc!r}") from exc


def build_object_store(cfg: dict) -> ObjectStore:
    backend = cfg.get("backend")
    if backend == "local":
        return LocalObjectStore(Path(cfg["path"]))
    if backend == "gdrive":
        return GoogleDriveObjectStore(
            cfg["folder_id"],
            token_path=Path(cfg["token_path"]),
            timeout=float(cfg.get("timeout", DRIVE_TIMEOUT_SECONDS)),
        )
    raise ConfigError(f"Unknown backup backend: {backend}")
