"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from auction_sync.common.constants import SUPPORTED_SOURCES
from auction_sync.common.errors import ConfigError

SOURCE_REQUIRED_KEYS = {
    "judicial": {"init_url", "query_url", "page_size", "max_pages"},
    "chb": {"api_url", "image_base_url", "listing_url", "page_size", "max_pages"},
    "bot": {"page_url", "submit_field", "submit_value", "columns"},
    "firstbank": {"search_url", "detail_base_url", "encoding", "form"},
    "taipei_open_data": {"dataset_url", "limit"},
    "browser": {"page_url", "url_keywords", "id_field", "wait_ms"},
}
BOT_COLUMN_KEYS = {"object_id", "address", "area_sqm", "base_price", "auction_date", "delivery"}


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_choice(value: object, choices: set[str], ctx: str) -> None:
    if value not in choices:
        raise ConfigError(f"{ctx} must be one of {', '.join(sorted(choices))}, got {value!r}")


def validate_source_config(name: str, cfg: dict) -> dict:
    _assert_required_keys(cfg, {"enabled"} | SOURCE_REQUIRED_KEYS[name], f"sources.{name}")
    if "backup_mode" in cfg:
        _assert_choice(cfg["backup_mode"], {"canonical", "raw"}, f"sources.{name}.backup_mode")
    for key in ("page_size", "max_pages", "limit"):
        if key in cfg and (not isinstance(cfg[key], int) or cfg[key] < 1):
            raise ConfigError(f"sources.{name}.{key} must be a positive integer")
    if name == "bot":
        _assert_required_keys(cfg["columns"], BOT_COLUMN_KEYS, "sources.bot.columns")
    if name == "browser" and not cfg["url_keywords"]:
        raise ConfigError("sources.browser.url_keywords must be a non-empty list")
    return cfg


def validate_pipeline_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    top_required = {"run", "http", "document_store", "backup", "sources"}
    _assert_required_keys(cfg, top_required, "pipeline config")
    _assert_no_unknown_keys(cfg, top_required, "pipeline config", allow_unknown)

    _assert_required_keys(cfg["run"], {"max_workers", "log_prefix"}, "run")
    if not isinstance(cfg["run"]["max_workers"], int) or cfg["run"]["max_workers"] < 1:
        raise ConfigError("run.max_workers must be a positive integer")

    _assert_required_keys(cfg["http"], {"timeout", "retry"}, "http")
    _assert_no_unknown_keys(cfg["http"]["timeout"], {"connect", "read"}, "http.timeout", allow_unknown=False)
    _assert_no_unknown_keys(
        cfg["http"]["retry"], {"max_attempts", "multiplier", "max_wait"}, "http.retry", allow_unknown=False
    )

    store = cfg["document_store"]
    _assert_required_keys(store, {"backend", "collection"}, "document_store")
    _assert_choice(store["backend"], {"local", "firestore"}, "document_store.backend")
    if store["backend"] == "local":
        _assert_required_keys(store, {"path"}, "document_store")

    backup = cfg["backup"]
    _assert_required_keys(backup, {"backend"}, "backup")
    _assert_choice(backup["backend"], {"local", "gdrive"}, "backup.backend")
    if backup["backend"] == "local":
        _assert_required_keys(backup, {"path"}, "backup")
    else:
        _assert_required_keys(backup, {"folder_id", "token_path"}, "backup")

    sources = cfg["sources"]
    if not isinstance(sources, dict):
        raise ConfigError("sources must be a mapping")
    _assert_no_unknown_keys(sources, set(SUPPORTED_SOURCES), "sources", allow_unknown)
    for name in SUPPORTED_SOURCES:
        if name in sources:
            validate_source_config(name, sources[name])

    return cfg
