"""Configuration loading and validation."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from auction_sync.common.constants import SUPPORTED_SOURCES
from auction_sync.common.errors import ConfigError
from auction_sync.common.fs import read_yaml
from auction_sync.common.http import RetryConfig, TimeoutConfig
from auction_sync.common.schema import validate_pipeline_config

CONFIG_FILENAME = "pipeline.yml"


@dataclass(frozen=True)
class ConfigBundle:
    run: dict
    http: dict
    document_store: dict
    backup: dict
    sources: dict[str, dict]

    def timeout_config(self, source_cfg: dict | None = None) -> TimeoutConfig:
        timeout = dict(self.http.get("timeout") or {})
        timeout.update((source_cfg or {}).get("timeout") or {})
        return TimeoutConfig(**timeout)

    def retry_config(self) -> RetryConfig:
        return RetryConfig(**(self.http.get("retry") or {}))

    def enabled_sources(self) -> list[str]:
        return [name for name in SUPPORTED_SOURCES if self.sources.get(name, {}).get("enabled")]


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    base = read_yaml(path) or {}
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path) or {}
    return _deep_merge(base, overlay)


def load_config(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
) -> ConfigBundle:
    overlay_path = overlay_config_dir / CONFIG_FILENAME if overlay_config_dir is not None else None
    cfg = _load_yaml_with_overlay(config_dir / CONFIG_FILENAME, overlay_path)
    cfg = validate_pipeline_config(cfg, allow_unknown=allow_unknown)
    return ConfigBundle(
        run=cfg["run"],
        http=cfg["http"],
        document_store=cfg["document_store"],
        backup=cfg["backup"],
        sources=cfg["sources"],
    )


def resolve_sources(target: str, bundle: ConfigBundle) -> list[str]:
    if target == "all":
        return bundle.enabled_sources()
    if target not in SUPPORTED_SOURCES:
        raise ConfigError(f"Unknown source: {target}")
    return [target]
