from __future__ import annotations

import logging
from urllib.parse import quote

import aiohttp
from pydantic import ValidationError

from llm_limits.core.clients.http import get_json
from llm_limits.core.config.settings import get_settings
from llm_limits.core.exceptions import UsageError
from llm_limits.core.types import JsonValue
from llm_limits.core.usage.models import ClaudeOrganization

logger = logging.getLogger(__name__)


async def fetch_claude_web_usage(
    *,
    cookie: str,
    org_id: str,
    session: aiohttp.ClientSession | None = None,
) -> JsonValue:
    base = get_settings().claude_base_url.rstrip("/")
    url = f"{base}/api/organizations/{quote(org_id, safe='')}/usage"
    return await get_json(url, headers=_web_headers(cookie), session=session)


async def fetch_claude_org_id(
    cookie: str,
    *,
    session: aiohttp.ClientSession | None = None,
) -> str | None:
    base = get_settings().claude_base_url.rstrip("/")
    try:
        payload = await get_json(f"{base}/api/organizations", headers=_web_headers(cookie), session=session)
    except UsageError as exc:
        logger.warning("claude_org_lookup_failed kind=%s message=%s", exc.kind, exc.message)
        return None

    # Most accounts have a single personal organization; take the first.
    if not isinstance(payload, list) or not payload:
        logger.warning("claude_org_lookup_empty")
        return None
    try:
        organization = ClaudeOrganization.model_validate(payload[0])
    except ValidationError:
        logger.warning("claude_org_lookup_invalid_payload")
        return None
    return organization.uuid.strip() or None


def _web_headers(cookie: str) -> dict[str, str]:
    return {
        "Cookie": cookie,
        "User-Agent": get_settings().browser_user_agent,
        "Accept": "application/json",
    }
