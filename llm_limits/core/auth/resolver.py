from __future__ import annotations

import logging
from pathlib import Path

from llm_limits.core.auth.codex_credentials import CodexCliToken, read_codex_token
from llm_limits.core.config.store import StoreSettings
from llm_limits.core.usage.types import CredentialKind, ProviderId, ResolvedCredential

logger = logging.getLogger(__name__)

GCLOUD_SOURCE = "cli:gcloud"


def resolve_credential(
    provider: ProviderId,
    store_settings: StoreSettings,
    *,
    codex_home: Path | None = None,
) -> ResolvedCredential | None:
    """Pick the single credential source to use for ``provider`` this pass.

    Sources are tried in a fixed priority order and the first usable one
    wins. Failures while probing a source count as that source being absent.
    """
    if provider is ProviderId.OPENAI:
        return _resolve_openai(store_settings, codex_home)
    if provider is ProviderId.ANTHROPIC:
        return _resolve_anthropic(store_settings)
    if provider is ProviderId.GEMINI:
        return _resolve_gemini(store_settings)
    raise ValueError(f"Unknown provider: {provider}")


def resolve_all(
    store_settings: StoreSettings,
    *,
    codex_home: Path | None = None,
) -> dict[ProviderId, ResolvedCredential | None]:
    return {
        provider: resolve_credential(provider, store_settings, codex_home=codex_home)
        for provider in ProviderId
    }


def has_any_configured_provider(store_settings: StoreSettings) -> bool:
    return bool(
        store_settings.openai_key
        or store_settings.gemini_key
        or store_settings.anthropic_key
        or (store_settings.anthropic_web_cookie and store_settings.anthropic_org_id)
    )


def _resolve_openai(store_settings: StoreSettings, codex_home: Path | None) -> ResolvedCredential | None:
    if store_settings.openai_key:
        return ResolvedCredential(
            provider=ProviderId.OPENAI,
            kind=CredentialKind.API_KEY,
            secret=store_settings.openai_key,
            source="store:openaiKey",
        )

    cli_token = _read_codex_token(codex_home)
    if cli_token is None:
        logger.debug("credential_absent provider=openai")
        return None
    logger.debug("credential_resolved provider=openai source=%s", cli_token.source_path)
    return ResolvedCredential(
        provider=ProviderId.OPENAI,
        kind=CredentialKind.CLI_TOKEN,
        secret=cli_token.token,
        source=f"file:{cli_token.source_path}",
    )


def _resolve_anthropic(store_settings: StoreSettings) -> ResolvedCredential | None:
    # The mode flag decides which of the two stored credentials is eligible.
    if store_settings.anthropic_mode == "api":
        if not store_settings.anthropic_key:
            logger.debug("credential_absent provider=anthropic mode=api")
            return None
        return ResolvedCredential(
            provider=ProviderId.ANTHROPIC,
            kind=CredentialKind.API_KEY,
            secret=store_settings.anthropic_key,
            source="store:anthropicKey",
        )

    if not (store_settings.anthropic_web_cookie and store_settings.anthropic_org_id):
        logger.debug("credential_absent provider=anthropic mode=web")
        return None
    return ResolvedCredential(
        provider=ProviderId.ANTHROPIC,
        kind=CredentialKind.WEB_SESSION,
        secret=store_settings.anthropic_web_cookie,
        source="store:anthropicWebCookie",
        org_id=store_settings.anthropic_org_id,
    )


def _resolve_gemini(store_settings: StoreSettings) -> ResolvedCredential:
    if store_settings.gemini_key:
        return ResolvedCredential(
            provider=ProviderId.GEMINI,
            kind=CredentialKind.API_KEY,
            secret=store_settings.gemini_key,
            source="store:geminiKey",
        )
    return ResolvedCredential(
        provider=ProviderId.GEMINI,
        kind=CredentialKind.CLI_TOOL,
        secret=None,
        source=GCLOUD_SOURCE,
    )


def _read_codex_token(codex_home: Path | None) -> CodexCliToken | None:
    try:
        return read_codex_token(codex_home)
    except (OSError, ValueError):
        logger.debug("credential_probe_failed provider=openai", exc_info=True)
        return None
