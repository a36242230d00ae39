from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Mapping

import aiohttp

from llm_limits.core.config.settings import get_settings
from llm_limits.core.exceptions import AuthRejected, NetworkFailure, ParseFailure
from llm_limits.core.types import JsonValue

logger = logging.getLogger(__name__)

_BODY_LOG_LIMIT = 500


@dataclass(slots=True)
class HttpClient:
    session: aiohttp.ClientSession


_http_client: HttpClient | None = None


async def init_http_client() -> HttpClient:
    global _http_client
    if _http_client is not None and not _http_client.session.closed:
        return _http_client
    timeout = aiohttp.ClientTimeout(total=get_settings().usage_fetch_timeout_seconds)
    _http_client = HttpClient(session=aiohttp.ClientSession(timeout=timeout))
    return _http_client


async def close_http_client() -> None:
    global _http_client
    if _http_client is None:
        return
    await _http_client.session.close()
    _http_client = None


def get_http_client() -> HttpClient:
    if _http_client is None:
        raise RuntimeError("HTTP client is not initialized")
    return _http_client


async def get_json(
    url: str,
    *,
    headers: Mapping[str, str],
    session: aiohttp.ClientSession | None = None,
    timeout_seconds: float | None = None,
) -> JsonValue:
    """GET ``url`` once and decode the JSON body.

    Raises ``AuthRejected`` on non-2xx, ``NetworkFailure`` on transport errors
    and ``ParseFailure`` when the body is not JSON. There is no retry.
    """
    client = session or get_http_client().session
    timeout = aiohttp.ClientTimeout(total=timeout_seconds or get_settings().usage_fetch_timeout_seconds)
    try:
        async with client.get(url, headers=dict(headers), timeout=timeout) as resp:
            status = resp.status
            body = await resp.text()
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        raise NetworkFailure(f"Request to {url} failed: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise ParseFailure(f"Undecodable body from {url} status={status}") from exc

    if status < 200 or status >= 300:
        raise AuthRejected(status, _truncate(body))
    try:
        return json.loads(body)
    except json.JSONDecodeError as exc:
        raise ParseFailure(f"Invalid JSON from {url}") from exc


def _truncate(body: str) -> str:
    stripped = body.strip()
    if len(stripped) <= _BODY_LOG_LIMIT:
        return stripped
    return f"{stripped[:_BODY_LOG_LIMIT]}..."
