from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator

from llm_limits.core.clients.http import close_http_client, init_http_client
from llm_limits.core.config.store import ConfigStore, build_config_store
from llm_limits.core.usage.refresh_scheduler import UsageRefreshScheduler, build_usage_refresh_scheduler
from llm_limits.modules.settings.service import SettingsService
from llm_limits.modules.usage.adapters import build_adapters
from llm_limits.modules.usage.service import SnapshotConsumer, UsageAggregator


@dataclass(frozen=True, slots=True)
class UsageMonitor:
    store: ConfigStore
    aggregator: UsageAggregator
    scheduler: UsageRefreshScheduler
    settings: SettingsService

    def refresh_now(self) -> None:
        self.scheduler.request_refresh()


@asynccontextmanager
async def lifespan(
    *,
    store_path: Path | None = None,
    consumer: SnapshotConsumer | None = None,
    start_polling: bool = True,
) -> AsyncIterator[UsageMonitor]:
    http_client = await init_http_client()
    store = build_config_store(store_path)
    aggregator = UsageAggregator(
        store,
        adapters=build_adapters(http_client.session),
        consumer=consumer,
    )
    scheduler = build_usage_refresh_scheduler(aggregator, store)
    monitor = UsageMonitor(
        store=store,
        aggregator=aggregator,
        scheduler=scheduler,
        settings=SettingsService(store, scheduler, session=http_client.session),
    )
    if start_polling:
        await scheduler.start()

    try:
        yield monitor
    finally:
        await scheduler.stop()
        await close_http_client()
