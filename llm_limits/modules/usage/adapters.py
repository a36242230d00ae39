from __future__ import annotations

import logging
from typing import Protocol

import aiohttp

from llm_limits.core.clients.claude_usage import fetch_claude_web_usage
from llm_limits.core.clients.codex_usage import fetch_codex_usage, is_api_key
from llm_limits.core.clients.gcloud import list_enabled_gemini_services
from llm_limits.core.exceptions import AuthRejected, CredentialAbsent, UsageError
from llm_limits.core.types import JsonValue
from llm_limits.core.usage.parsing import CLAUDE_SHAPES, CODEX_SHAPES, ShapeMatcher, match_usage
from llm_limits.core.usage.types import CredentialKind, ProviderId, ResolvedCredential, UsageRecord
from llm_limits.core.utils.pass_id import get_pass_id

logger = logging.getLogger(__name__)


class ProviderAdapter(Protocol):
    provider: ProviderId

    async def fetch_usage(
        self,
        credential: ResolvedCredential | None,
        *,
        debug: bool = False,
    ) -> UsageRecord | None: ...


class BaseAdapter:
    """Shared failure boundary: every error ends up as ``None`` for this provider."""

    provider: ProviderId

    def __init__(self, *, session: aiohttp.ClientSession | None = None) -> None:
        self._session = session

    async def fetch_usage(
        self,
        credential: ResolvedCredential | None,
        *,
        debug: bool = False,
    ) -> UsageRecord | None:
        try:
            if credential is None:
                raise CredentialAbsent()
            return await self._fetch(credential, debug=debug)
        except AuthRejected as exc:
            logger.warning(
                "Usage fetch rejected pass_id=%s provider=%s status=%s body=%s",
                get_pass_id(),
                self.provider.value,
                exc.status_code,
                exc.body,
            )
            return None
        except CredentialAbsent:
            logger.debug("Usage fetch skipped pass_id=%s provider=%s", get_pass_id(), self.provider.value)
            return None
        except UsageError as exc:
            logger.log(
                logging.WARNING if debug else logging.DEBUG,
                "Usage fetch failed pass_id=%s provider=%s kind=%s message=%s",
                get_pass_id(),
                self.provider.value,
                exc.kind,
                exc.message,
            )
            return None
        except Exception:
            logger.warning(
                "Unexpected usage fetch error pass_id=%s provider=%s",
                get_pass_id(),
                self.provider.value,
                exc_info=True,
            )
            return None

    async def _fetch(self, credential: ResolvedCredential, *, debug: bool) -> UsageRecord | None:
        raise NotImplementedError

    def _record_from_payload(
        self,
        payload: JsonValue,
        shapes: tuple[ShapeMatcher, ...],
        *,
        debug: bool,
    ) -> UsageRecord:
        if debug:
            logger.debug(
                "Usage response pass_id=%s provider=%s payload=%s",
                get_pass_id(),
                self.provider.value,
                payload,
            )
        record = match_usage(payload, shapes) if isinstance(payload, dict) else None
        if record is None:
            # Reachable but in a shape we do not know: report connected, not missing.
            logger.info("Usage response unrecognized provider=%s", self.provider.value)
            return UsageRecord.connected()
        return record


class CodexUsageAdapter(BaseAdapter):
    provider = ProviderId.OPENAI

    async def _fetch(self, credential: ResolvedCredential, *, debug: bool) -> UsageRecord | None:
        token = credential.secret
        if not token:
            raise CredentialAbsent()
        if debug:
            logger.debug(
                "Fetching codex usage source=%s endpoint=%s",
                credential.source,
                "organization" if is_api_key(token) else "internal",
            )
        payload = await fetch_codex_usage(token=token, session=self._session)
        return self._record_from_payload(payload, CODEX_SHAPES, debug=debug)


class ClaudeUsageAdapter(BaseAdapter):
    provider = ProviderId.ANTHROPIC

    async def _fetch(self, credential: ResolvedCredential, *, debug: bool) -> UsageRecord | None:
        if credential.kind is CredentialKind.API_KEY:
            # No public usage endpoint for API keys; report the account as connected.
            return UsageRecord.connected()
        if credential.kind is not CredentialKind.WEB_SESSION or not credential.secret or not credential.org_id:
            raise CredentialAbsent()
        if debug:
            logger.debug("Fetching claude web usage org_id=%s", credential.org_id)
        payload = await fetch_claude_web_usage(
            cookie=credential.secret,
            org_id=credential.org_id,
            session=self._session,
        )
        return self._record_from_payload(payload, CLAUDE_SHAPES, debug=debug)


class GeminiUsageAdapter(BaseAdapter):
    provider = ProviderId.GEMINI

    async def _fetch(self, credential: ResolvedCredential, *, debug: bool) -> UsageRecord | None:
        if credential.kind is CredentialKind.API_KEY:
            return UsageRecord.connected()
        if credential.kind is not CredentialKind.CLI_TOOL:
            raise CredentialAbsent()

        # gcloud can only tell us the service is enabled, never how much is used.
        services = await list_enabled_gemini_services()
        if not services:
            if debug:
                logger.debug("Gemini services not enabled in the active gcloud project")
            return None
        if debug:
            logger.debug("Gemini services enabled count=%d", len(services))
        return UsageRecord.connected()


def build_adapters(
    session: aiohttp.ClientSession | None = None,
) -> dict[ProviderId, ProviderAdapter]:
    return {
        ProviderId.OPENAI: CodexUsageAdapter(session=session),
        ProviderId.ANTHROPIC: ClaudeUsageAdapter(session=session),
        ProviderId.GEMINI: GeminiUsageAdapter(session=session),
    }
