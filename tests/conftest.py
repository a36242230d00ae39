from __future__ import annotations

import json
import os
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

os.environ["LLM_LIMITS_OPENAI_API_BASE_URL"] = "https://api.example.invalid"
os.environ["LLM_LIMITS_CHATGPT_BASE_URL"] = "https://chatgpt.example.invalid"
os.environ["LLM_LIMITS_CLAUDE_BASE_URL"] = "https://claude.example.invalid"

from llm_limits.core.config.settings import get_settings  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    codex_home = tmp_path / "codex-home"
    codex_home.mkdir()
    monkeypatch.setenv("LLM_LIMITS_STORE_PATH", str(tmp_path / "config.json"))
    monkeypatch.setenv("LLM_LIMITS_CODEX_HOME", str(codex_home))
    monkeypatch.setenv("LLM_LIMITS_DEMO_PLACEHOLDER_ENABLED", "false")
    get_settings.cache_clear()
    yield codex_home
    get_settings.cache_clear()


@pytest.fixture
def codex_home(isolated_settings):
    return isolated_settings


def _mock_response(*, status: int = 200, body: Any = None) -> MagicMock:
    resp = MagicMock()
    resp.status = status
    text = body if isinstance(body, str) else json.dumps(body)
    resp.text = AsyncMock(return_value=text)
    resp.__aenter__ = AsyncMock(return_value=resp)
    resp.__aexit__ = AsyncMock(return_value=False)
    return resp


def _mock_session(*responses: MagicMock | BaseException) -> MagicMock:
    session = MagicMock()
    session.get = MagicMock(side_effect=list(responses))
    return session


@pytest.fixture
def mock_response() -> Callable[..., MagicMock]:
    return _mock_response


@pytest.fixture
def mock_session() -> Callable[..., MagicMock]:
    return _mock_session
