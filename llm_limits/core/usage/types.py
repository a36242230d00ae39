from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Mapping

PERCENT_LIMIT = 100.0


class ProviderId(StrEnum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"


class CredentialKind(StrEnum):
    API_KEY = "api_key"
    WEB_SESSION = "web_session"
    CLI_TOKEN = "cli_token"
    CLI_TOOL = "cli_tool"


@dataclass(frozen=True, slots=True)
class ResolvedCredential:
    provider: ProviderId
    kind: CredentialKind
    secret: str | None
    source: str
    org_id: str | None = None

    def __repr__(self) -> str:
        return (
            f"ResolvedCredential(provider={self.provider.value!r}, kind={self.kind.value!r}, "
            f"source={self.source!r}, org_id={self.org_id!r})"
        )


@dataclass(frozen=True, slots=True)
class UsageRecord:
    session_percent: float
    period_percent: float
    session_reset_at: datetime | None = None
    period_reset_at: datetime | None = None

    @property
    def percent(self) -> float:
        return self.session_percent

    @property
    def used(self) -> float:
        return self.session_percent

    @property
    def limit(self) -> float:
        return PERCENT_LIMIT

    @classmethod
    def from_percents(
        cls,
        session_percent: float,
        period_percent: float | None = None,
        *,
        session_reset_at: datetime | None = None,
        period_reset_at: datetime | None = None,
    ) -> UsageRecord:
        session = clamp_percent(session_percent)
        period = clamp_percent(period_percent) if period_percent is not None else session
        return cls(
            session_percent=session,
            period_percent=period,
            session_reset_at=session_reset_at,
            period_reset_at=period_reset_at,
        )

    @classmethod
    def connected(cls) -> UsageRecord:
        return cls(session_percent=0.0, period_percent=0.0)


@dataclass(frozen=True, slots=True)
class AggregatedSnapshot:
    records: Mapping[ProviderId, UsageRecord | None]
    sequence: int
    completed_at: datetime
    sources: Mapping[ProviderId, str | None] = field(default_factory=dict)

    def get(self, provider: ProviderId) -> UsageRecord | None:
        return self.records.get(provider)


def clamp_percent(value: float) -> float:
    return max(0.0, min(PERCENT_LIMIT, float(value)))
