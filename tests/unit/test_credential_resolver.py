from __future__ import annotations

import json

import pytest

from llm_limits.core.auth.resolver import (
    has_any_configured_provider,
    resolve_all,
    resolve_credential,
)
from llm_limits.core.config.store import StoreSettings
from llm_limits.core.usage.types import CredentialKind, ProviderId

pytestmark = pytest.mark.unit


def _settings(**values) -> StoreSettings:
    return StoreSettings.model_validate(values)


def test_openai_direct_secret_beats_local_cli_token(codex_home) -> None:
    (codex_home / "auth.json").write_text(json.dumps({"access_token": "cli-token"}), encoding="utf-8")

    credential = resolve_credential(ProviderId.OPENAI, _settings(openaiKey="  sk-direct  "))

    assert credential is not None
    assert credential.kind is CredentialKind.API_KEY
    assert credential.secret == "sk-direct"
    assert credential.source == "store:openaiKey"


def test_openai_falls_back_to_local_cli_token(codex_home) -> None:
    (codex_home / "auth.json").write_text(json.dumps({"tokens": {"access_token": "cli-token"}}), encoding="utf-8")

    credential = resolve_credential(ProviderId.OPENAI, _settings(openaiKey="   "))

    assert credential is not None
    assert credential.kind is CredentialKind.CLI_TOKEN
    assert credential.secret == "cli-token"
    assert credential.source.startswith("file:")


def test_openai_without_any_source_is_absent(codex_home) -> None:
    assert resolve_credential(ProviderId.OPENAI, _settings()) is None


def test_openai_unreadable_codex_home_is_absent(tmp_path) -> None:
    not_a_dir = tmp_path / "codex-file"
    not_a_dir.write_text("x", encoding="utf-8")

    assert resolve_credential(ProviderId.OPENAI, _settings(), codex_home=not_a_dir) is None


def test_anthropic_web_mode_requires_cookie_and_org() -> None:
    assert resolve_credential(ProviderId.ANTHROPIC, _settings(anthropicMode="web", anthropicWebCookie="c")) is None
    assert resolve_credential(ProviderId.ANTHROPIC, _settings(anthropicMode="web", anthropicOrgId="o")) is None

    credential = resolve_credential(
        ProviderId.ANTHROPIC,
        _settings(anthropicMode="web", anthropicWebCookie="sessionKey=abc", anthropicOrgId="org-1"),
    )

    assert credential is not None
    assert credential.kind is CredentialKind.WEB_SESSION
    assert credential.secret == "sessionKey=abc"
    assert credential.org_id == "org-1"


def test_anthropic_api_mode_uses_direct_secret() -> None:
    credential = resolve_credential(
        ProviderId.ANTHROPIC,
        _settings(anthropicKey="sk-ant-key", anthropicWebCookie="c", anthropicOrgId="o"),
    )

    assert credential is not None
    assert credential.kind is CredentialKind.API_KEY
    assert credential.secret == "sk-ant-key"


def test_anthropic_api_mode_without_key_is_absent() -> None:
    assert resolve_credential(ProviderId.ANTHROPIC, _settings(anthropicMode="api")) is None


def test_gemini_prefers_key_then_gcloud_tool() -> None:
    keyed = resolve_credential(ProviderId.GEMINI, _settings(geminiKey="AIza-key"))
    tool = resolve_credential(ProviderId.GEMINI, _settings())

    assert keyed is not None
    assert keyed.kind is CredentialKind.API_KEY
    assert tool is not None
    assert tool.kind is CredentialKind.CLI_TOOL
    assert tool.secret is None


def test_resolve_all_covers_every_provider() -> None:
    resolved = resolve_all(_settings(openaiKey="sk-x"))

    assert set(resolved) == set(ProviderId)
    assert resolved[ProviderId.ANTHROPIC] is None


def test_credential_repr_hides_secret() -> None:
    credential = resolve_credential(ProviderId.OPENAI, _settings(openaiKey="sk-very-secret"))

    assert "sk-very-secret" not in repr(credential)


@pytest.mark.parametrize(
    ("values", "expected"),
    [
        ({}, False),
        ({"openaiKey": "sk"}, True),
        ({"geminiKey": "g"}, True),
        ({"anthropicKey": "a"}, True),
        ({"anthropicWebCookie": "c"}, False),
        ({"anthropicWebCookie": "c", "anthropicOrgId": "o"}, True),
    ],
)
def test_has_any_configured_provider(values, expected) -> None:
    assert has_any_configured_provider(_settings(**values)) is expected
