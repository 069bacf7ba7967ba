"""CLI entrypoint for the foreclosure listing sync."""

from __future__ import annotations

import argparse
import dataclasses
import sys
from pathlib import Path

import yaml

from auction_sync.common.config_loader import ConfigBundle, load_config, resolve_sources
from auction_sync.common.constants import EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS, SUPPORTED_SOURCES
from auction_sync.common.errors import ConfigError, PipelineError
from auction_sync.common.logging import RunLogger, log_event
from auction_sync.common.time_utils import generate_run_id, parse_run_date
from auction_sync.pipeline.orchestrator import RunContext, run_pipeline
from auction_sync.sources.registry import build_adapter
from auction_sync.storage.document_store import build_document_store
from auction_sync.storage.object_store import build_object_store


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=["run", "show-config"])
    parser.add_argument("--source", default="all", choices=[*SUPPORTED_SOURCES, "all"])
    parser.add_argument("--run-date", default=None)
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARN", "ERROR"])
    parser.add_argument("--sequential", action="store_true")
    return parser.parse_args(argv)


def load_bundle(args: argparse.Namespace) -> ConfigBundle:
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None
    return load_config(Path(args.config_dir), overlay_config_dir=overlay_config_dir)


def show_config_command(args: argparse.Namespace) -> int:
    bundle = load_bundle(args)
    sys.stdout.write(yaml.safe_dump(dataclasses.asdict(bundle), allow_unicode=True, sort_keys=False))
    return EXIT_SUCCESS


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    try:
        run_date = parse_run_date(args.run_date)
    except ValueError as exc:
        raise ConfigError(f"Invalid --run-date {args.run_date!r}: {exc}") from exc

    bundle = load_bundle(args)
    sources = resolve_sources(args.source, bundle)
    run_log = RunLogger(run_id, level=args.log_level)
    context = RunContext(
        run_id=run_id,
        run_date=run_date,
        document_store=build_document_store(bundle.document_store),
        object_store=build_object_store(bundle.backup),
        run_log=run_log,
        log_prefix=bundle.run["log_prefix"],
    )
    log_event(run_log, "sync start", stage="run", event="CLI_START", status="ok", rows_in=len(sources))

    report = run_pipeline(
        sources,
        context,
        lambda name, log: build_adapter(name, bundle, log),
        max_workers=int(bundle.run["max_workers"]),
        sequential=args.sequential,
    )
    if report.status != "success":
        return EXIT_PARTIAL
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    try:
        if args.command == "show-config":
            return show_config_command(args)
        return run_command(args)
    except PipelineError as exc:
        sys.stderr.write(f"{exc.error_code}: {exc}\n")
        return EXIT_HARD_FAIL
    except Exception as exc:
        sys.stderr.write(f"UNEXPECTED_ERROR: {exc!r}\n")
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
