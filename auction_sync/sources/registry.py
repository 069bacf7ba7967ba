"""Adapter lookup by source name."""

from __future__ import annotations

from auction_sync.common.config_loader import ConfigBundle
from auction_sync.common.errors import ConfigError
from auction_sync.common.logging import RunLogger
from auction_sync.sources.base import SourceAdapter
from auction_sync.sources.bot import BotAdapter
from auction_sync.sources.browser import BrowserAdapter
from auction_sync.sources.chb import ChbAdapter
from auction_sync.sources.firstbank import FirstBankAdapter
from auction_sync.sources.judicial import JudicialAdapter
from auction_sync.sources.taipei_open_data import TaipeiOpenDataAdapter

ADAPTERS: dict[str, type[SourceAdapter]] = {
    JudicialAdapter.name: JudicialAdapter,
    ChbAdapter.name: ChbAdapter,
    BotAdapter.name: BotAdapter,
    FirstBankAdapter.name: FirstBankAdapter,
    TaipeiOpenDataAdapter.name: TaipeiOpenDataAdapter,
    BrowserAdapter.name: BrowserAdapter,
}


def build_adapter(name: str, bundle: ConfigBundle, run_log: RunLogger) -> SourceAdapter:
    adapter_cls = ADAPTERS.get(name)
    source_cfg = bundle.sources.get(name)
    if adapter_cls is None or source_cfg is None:
        raise ConfigError(f"No adapter configured for source {name}")
    return adapter_cls(
        source_cfg,
        run_log,
        timeout=bundle.timeout_config(source_cfg),
        retry=bundle.retry_config(),
    )
