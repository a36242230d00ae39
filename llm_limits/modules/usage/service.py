from __future__ import annotations

import asyncio
import inspect
import logging
from pathlib import Path
from typing import Awaitable, Callable, Mapping

from pydantic import ValidationError

from llm_limits.core.auth.resolver import resolve_all
from llm_limits.core.config.settings import get_settings
from llm_limits.core.config.store import ConfigStore, StoreSettings, read_store_settings
from llm_limits.core.usage.types import (
    AggregatedSnapshot,
    ProviderId,
    ResolvedCredential,
    UsageRecord,
)
from llm_limits.core.utils.pass_id import new_pass_id, reset_pass_id, set_pass_id
from llm_limits.core.utils.time import utcnow
from llm_limits.modules.usage.adapters import ProviderAdapter, build_adapters

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "llm_limits"

SnapshotConsumer = Callable[[AggregatedSnapshot], Awaitable[None] | None]

# Fixed sample values so a placeholder can never be mistaken for live data.
DEMO_OPENAI_RECORD = UsageRecord.from_percents(45.0, 45.0)


class UsageAggregator:
    def __init__(
        self,
        store: ConfigStore,
        *,
        adapters: Mapping[ProviderId, ProviderAdapter] | None = None,
        consumer: SnapshotConsumer | None = None,
        codex_home: Path | None = None,
        demo_placeholder_enabled: bool | None = None,
    ) -> None:
        self._store = store
        self._adapters = dict(adapters) if adapters is not None else build_adapters()
        self._consumer = consumer
        self._codex_home = codex_home
        self._demo_placeholder_enabled = demo_placeholder_enabled
        self._sequence = 0

    async def run_pass(self) -> AggregatedSnapshot:
        self._sequence += 1
        sequence = self._sequence
        token = set_pass_id(new_pass_id())
        try:
            store_settings = self._read_store_settings()
            debug = store_settings.debug_mode
            _apply_debug_level(debug)
            if debug:
                logger.debug("Polling usage sequence=%d", sequence)

            credentials = resolve_all(store_settings, codex_home=self._codex_home)
            providers = list(ProviderId)
            results = await asyncio.gather(
                *(self._fetch(provider, credentials[provider], debug=debug) for provider in providers),
                return_exceptions=True,
            )

            records: dict[ProviderId, UsageRecord | None] = {}
            for provider, result in zip(providers, results):
                if isinstance(result, BaseException):
                    logger.warning(
                        "Usage adapter raised provider=%s error=%r",
                        provider.value,
                        result,
                    )
                    records[provider] = None
                else:
                    records[provider] = result

            if self._use_placeholder(records, credentials):
                logger.info("Using placeholder usage record provider=%s", ProviderId.OPENAI.value)
                records[ProviderId.OPENAI] = DEMO_OPENAI_RECORD

            snapshot = AggregatedSnapshot(
                records=records,
                sequence=sequence,
                completed_at=utcnow(),
                sources={
                    provider: credential.source if credential is not None else None
                    for provider, credential in credentials.items()
                },
            )
            logger.info(
                "Usage pass completed sequence=%d available=%s",
                sequence,
                ",".join(provider.value for provider, record in records.items() if record is not None) or "-",
            )
            await self._publish(snapshot)
            return snapshot
        finally:
            reset_pass_id(token)

    async def _fetch(
        self,
        provider: ProviderId,
        credential: ResolvedCredential | None,
        *,
        debug: bool,
    ) -> UsageRecord | None:
        adapter = self._adapters.get(provider)
        if adapter is None:
            return None
        return await adapter.fetch_usage(credential, debug=debug)

    def _read_store_settings(self) -> StoreSettings:
        try:
            return read_store_settings(self._store)
        except ValidationError:
            logger.warning("Invalid values in configuration store; using defaults", exc_info=True)
            return StoreSettings()

    def _use_placeholder(
        self,
        records: Mapping[ProviderId, UsageRecord | None],
        credentials: Mapping[ProviderId, ResolvedCredential | None],
    ) -> bool:
        enabled = self._demo_placeholder_enabled
        if enabled is None:
            enabled = get_settings().demo_placeholder_enabled
        return (
            enabled
            and records.get(ProviderId.OPENAI) is None
            and credentials.get(ProviderId.OPENAI) is None
        )

    async def _publish(self, snapshot: AggregatedSnapshot) -> None:
        if self._consumer is None:
            return
        try:
            result = self._consumer(snapshot)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Snapshot consumer failed sequence=%d", snapshot.sequence)


def _apply_debug_level(debug: bool) -> None:
    # debugMode can flip between passes; NOTSET falls back to the root level.
    logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG if debug else logging.NOTSET)
