from __future__ import annotations

import json

import pytest

from llm_limits import cli
from llm_limits.core.clients.http import get_http_client
from llm_limits.core.usage.refresh_scheduler import SchedulerState
from llm_limits.core.usage.types import ProviderId
from llm_limits.main import lifespan

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def no_gcloud(tmp_path, monkeypatch):
    monkeypatch.setenv("LLM_LIMITS_GCLOUD_COMMAND", str(tmp_path / "missing-gcloud"))
    from llm_limits.core.config.settings import get_settings

    get_settings.cache_clear()


@pytest.mark.asyncio
async def test_lifespan_wires_store_and_closes_http_client(tmp_path) -> None:
    store_path = tmp_path / "monitor.json"
    store_path.write_text(json.dumps({"updateFrequency": 7}), encoding="utf-8")

    async with lifespan(store_path=store_path, start_polling=False) as monitor:
        assert monitor.scheduler.interval_minutes == 7
        assert monitor.scheduler.state is SchedulerState.IDLE
        snapshot = await monitor.aggregator.run_pass()

    assert all(snapshot.get(provider) is None for provider in ProviderId)
    with pytest.raises(RuntimeError):
        get_http_client()


def test_cli_once_prints_snapshot(tmp_path, capsys) -> None:
    store_path = tmp_path / "cli.json"
    store_path.write_text(json.dumps({"geminiKey": "AIza"}), encoding="utf-8")

    with pytest.raises(SystemExit) as exit_info:
        cli.main(["--store", str(store_path), "once"])

    assert exit_info.value.code == 0
    payload = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert payload["openai"] is None
    assert payload["gemini"]["sessionPercent"] == 0
    assert payload["gemini"]["limit"] == 100


def test_cli_set_claude_session_with_org_id(tmp_path) -> None:
    store_path = tmp_path / "cli.json"

    with pytest.raises(SystemExit) as exit_info:
        cli.main(["--store", str(store_path), "set-claude-session", "--cookie", "sessionKey=abc", "--org-id", "org-9"])

    assert exit_info.value.code == 0
    stored = json.loads(store_path.read_text(encoding="utf-8"))
    assert stored["anthropicOrgId"] == "org-9"
    assert stored["anthropicMode"] == "web"
