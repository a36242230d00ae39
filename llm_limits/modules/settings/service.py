from __future__ import annotations

import logging
from typing import Any, Mapping

import aiohttp

from llm_limits.core.auth.resolver import has_any_configured_provider
from llm_limits.core.clients.claude_usage import fetch_claude_org_id
from llm_limits.core.config.store import ConfigStore, StoreSettings, read_store_settings, resolve_update_frequency
from llm_limits.core.usage.refresh_scheduler import UsageRefreshScheduler

logger = logging.getLogger(__name__)

SESSION_COOKIE_KEY = "anthropicWebCookie"
SESSION_ORG_KEY = "anthropicOrgId"


class SettingsService:
    def __init__(
        self,
        store: ConfigStore,
        scheduler: UsageRefreshScheduler | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._store = store
        self._scheduler = scheduler
        self._session = session

    def get_settings(self) -> StoreSettings:
        return read_store_settings(self._store)

    def needs_setup(self) -> bool:
        settings = self.get_settings()
        return not settings.has_completed_setup or not has_any_configured_provider(settings)

    def save(self, values: Mapping[str, Any]) -> StoreSettings:
        normalized = dict(values)
        normalized["updateFrequency"] = resolve_update_frequency(values.get("updateFrequency"))
        normalized["hasCompletedSetup"] = True
        self._store.update(normalized)
        saved = read_store_settings(self._store)
        logger.info("Settings saved update_frequency=%d", saved.update_frequency)
        if self._scheduler is not None:
            self._scheduler.reconfigure(saved.update_frequency)
        return saved

    async def save_claude_session(self, cookie: str, org_id: str | None = None) -> bool:
        cookie = cookie.strip()
        if not cookie:
            return False
        resolved_org = (org_id or "").strip() or await fetch_claude_org_id(cookie, session=self._session)
        if not resolved_org:
            logger.warning("Claude session not saved: organization lookup failed")
            return False
        self._store.update(
            {
                SESSION_COOKIE_KEY: cookie,
                SESSION_ORG_KEY: resolved_org,
                "anthropicMode": "web",
            }
        )
        logger.info("Claude session saved org_id=%s", resolved_org)
        if self._scheduler is not None:
            self._scheduler.request_refresh()
        return True
