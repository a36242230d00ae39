from __future__ import annotations

from datetime import datetime

from llm_limits.core.usage.types import AggregatedSnapshot, ProviderId, UsageRecord
from llm_limits.modules.shared.schemas import CamelModel


class UsageRecordResponse(CamelModel):
    percent: float
    used: float
    limit: float
    session_percent: float
    period_percent: float
    session_reset_at: datetime | None = None
    period_reset_at: datetime | None = None

    @classmethod
    def from_record(cls, record: UsageRecord) -> UsageRecordResponse:
        return cls(
            percent=record.percent,
            used=record.used,
            limit=record.limit,
            session_percent=record.session_percent,
            period_percent=record.period_percent,
            session_reset_at=record.session_reset_at,
            period_reset_at=record.period_reset_at,
        )


class SnapshotResponse(CamelModel):
    sequence: int
    completed_at: datetime
    openai: UsageRecordResponse | None = None
    anthropic: UsageRecordResponse | None = None
    gemini: UsageRecordResponse | None = None

    @classmethod
    def from_snapshot(cls, snapshot: AggregatedSnapshot) -> SnapshotResponse:
        records: dict[str, UsageRecordResponse | None] = {}
        for provider in ProviderId:
            record = snapshot.get(provider)
            records[provider.value] = UsageRecordResponse.from_record(record) if record is not None else None
        return cls(sequence=snapshot.sequence, completed_at=snapshot.completed_at, **records)


def snapshot_to_payload(snapshot: AggregatedSnapshot) -> dict[str, object]:
    return SnapshotResponse.from_snapshot(snapshot).model_dump(mode="json", by_alias=True)
