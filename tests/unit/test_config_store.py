from __future__ import annotations

import json

import pytest

from llm_limits.core.config.store import (
    JsonConfigStore,
    MemoryConfigStore,
    StoreSettings,
    build_config_store,
    read_store_settings,
    resolve_update_frequency,
)

pytestmark = pytest.mark.unit


def test_json_store_missing_file_reads_as_empty(tmp_path) -> None:
    store = JsonConfigStore(tmp_path / "missing.json")

    assert store.as_dict() == {}
    assert store.get("openaiKey", "fallback") == "fallback"


def test_json_store_invalid_file_reads_as_empty(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{broken", encoding="utf-8")

    assert JsonConfigStore(path).as_dict() == {}


def test_json_store_sees_external_edits(tmp_path) -> None:
    path = tmp_path / "config.json"
    store = JsonConfigStore(path)
    store.set("updateFrequency", 3)

    path.write_text(json.dumps({"updateFrequency": 9, "monitorX": 10}), encoding="utf-8")

    assert store.get("updateFrequency") == 9


def test_json_store_update_preserves_unrelated_keys(tmp_path) -> None:
    path = tmp_path / "nested" / "config.json"
    store = JsonConfigStore(path)
    store.update({"monitorWidth": 300, "timeFormat": "24h"})

    store.update({"openaiKey": "sk-x"})

    assert json.loads(path.read_text(encoding="utf-8")) == {
        "monitorWidth": 300,
        "timeFormat": "24h",
        "openaiKey": "sk-x",
    }
    assert list(path.parent.glob(".config-*")) == []


def test_build_config_store_uses_settings_path(tmp_path) -> None:
    store = build_config_store()

    assert store.path == tmp_path / "config.json"


def test_store_settings_defaults() -> None:
    settings = read_store_settings(MemoryConfigStore())

    assert settings == StoreSettings()
    assert settings.update_frequency == 5
    assert settings.anthropic_mode == "api"
    assert settings.debug_mode is False


def test_store_settings_normalizes_messy_values() -> None:
    settings = read_store_settings(
        MemoryConfigStore(
            {
                "openaiKey": "  sk-x \n",
                "geminiKey": None,
                "anthropicMode": "WEB",
                "anthropicOrgId": 42,
                "updateFrequency": "10",
                "debugMode": "true",
                "monitorX": -1,
            }
        )
    )

    assert settings.openai_key == "sk-x"
    assert settings.gemini_key == ""
    assert settings.anthropic_mode == "web"
    assert settings.anthropic_org_id == ""
    assert settings.update_frequency == 10
    assert settings.debug_mode is True


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (1, 1),
        (15, 15),
        ("2", 2),
        (2.9, 2),
        (0, 5),
        (-1, 5),
        ("", 5),
        ("abc", 5),
        (None, 5),
        (float("nan"), 5),
        (True, 5),
    ],
)
def test_resolve_update_frequency(value, expected) -> None:
    assert resolve_update_frequency(value) == expected
