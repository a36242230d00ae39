from __future__ import annotations

from urllib.parse import urlencode

import aiohttp

from llm_limits.core.clients.http import get_json
from llm_limits.core.config.settings import get_settings
from llm_limits.core.types import JsonValue
from llm_limits.core.utils.time import utcnow

API_KEY_PREFIX = "sk-"


def is_api_key(token: str) -> bool:
    return token.startswith(API_KEY_PREFIX)


async def fetch_codex_usage(
    *,
    token: str,
    session: aiohttp.ClientSession | None = None,
) -> JsonValue:
    url, headers = build_usage_request(token)
    return await get_json(url, headers=headers, session=session)


def build_usage_request(token: str) -> tuple[str, dict[str, str]]:
    settings = get_settings()
    headers = {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
    }
    if is_api_key(token):
        query = urlencode({"date": utcnow().date().isoformat()})
        url = f"{settings.openai_api_base_url.rstrip('/')}/v1/organization/usage?{query}"
        return url, headers

    # ChatGPT OAuth tokens only work against the internal backend, which
    # refuses requests without a browser user agent.
    headers["User-Agent"] = settings.browser_user_agent
    url = f"{_backend_base(settings.chatgpt_base_url)}/codex/usage"
    return url, headers


def _backend_base(base_url: str) -> str:
    normalized = base_url.rstrip("/")
    if "/backend-api" not in normalized:
        normalized = f"{normalized}/backend-api"
    return normalized
