"""Priority-ordered matching of provider payloads onto ``UsageRecord``.

Each matcher validates one known response shape and either returns a record
or declines with ``None``. Callers walk a matcher list from most to least
specific and stop at the first hit.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Sequence, TypeVar

from pydantic import BaseModel, ValidationError

from llm_limits.core.types import JsonObject
from llm_limits.core.usage.models import (
    ClaudeWebUsagePayload,
    ClaudeWindow,
    CodexRateLimitPayload,
    CodexWindow,
    GenericUsagePayload,
    LegacyFiveHourPayload,
)
from llm_limits.core.usage.types import PERCENT_LIMIT, UsageRecord
from llm_limits.core.utils.time import first_reset_at

logger = logging.getLogger(__name__)

ShapeMatcher = Callable[[JsonObject], UsageRecord | None]

CLAUDE_PERIOD_KEYS = ("month", "monthly", "seven_day", "week", "daily")

_ModelT = TypeVar("_ModelT", bound=BaseModel)


def match_usage(payload: JsonObject, matchers: Sequence[ShapeMatcher]) -> UsageRecord | None:
    for matcher in matchers:
        record = matcher(payload)
        if record is not None:
            logger.debug("usage_shape_matched shape=%s", matcher.__name__)
            return record
    return None


def match_codex_rate_limit(payload: JsonObject) -> UsageRecord | None:
    shape = _validate(CodexRateLimitPayload, payload)
    if shape is None:
        return None
    primary = shape.rate_limit.primary_window
    session_reset_at = first_reset_at(primary.reset_at, primary.resets_at)
    raw_secondary = shape.rate_limit.secondary_window
    period_reset_at = session_reset_at
    if isinstance(raw_secondary, dict):
        # The reset is read even when the window carries no usable percent.
        period_reset_at = (
            first_reset_at(raw_secondary.get("reset_at"), raw_secondary.get("resets_at")) or session_reset_at
        )
    secondary = _validate(CodexWindow, raw_secondary)
    return UsageRecord.from_percents(
        primary.used_percent,
        secondary.used_percent if secondary is not None else None,
        session_reset_at=session_reset_at,
        period_reset_at=period_reset_at,
    )


def match_legacy_five_hour(payload: JsonObject) -> UsageRecord | None:
    shape = _validate(LegacyFiveHourPayload, payload)
    if shape is None:
        return None
    return UsageRecord.from_percents(PERCENT_LIMIT - shape.five_hour_limit.remaining_percent)


def match_generic_usage(payload: JsonObject) -> UsageRecord | None:
    shape = _validate(GenericUsagePayload, payload)
    if shape is None:
        return None
    return UsageRecord.from_percents(shape.usage.percent)


def match_claude_web(payload: JsonObject) -> UsageRecord | None:
    shape = _validate(ClaudeWebUsagePayload, payload)
    if shape is None:
        return None
    five_hour = shape.five_hour
    session_reset_at = first_reset_at(five_hour.resets_at, five_hour.reset_at)
    for key in CLAUDE_PERIOD_KEYS:
        period = _validate(ClaudeWindow, payload.get(key))
        if period is None:
            continue
        return UsageRecord.from_percents(
            five_hour.utilization,
            period.utilization,
            session_reset_at=session_reset_at,
            period_reset_at=first_reset_at(period.resets_at, period.reset_at),
        )
    return UsageRecord.from_percents(
        five_hour.utilization,
        session_reset_at=session_reset_at,
        period_reset_at=session_reset_at,
    )


CODEX_SHAPES: tuple[ShapeMatcher, ...] = (
    match_codex_rate_limit,
    match_legacy_five_hour,
    match_generic_usage,
)

CLAUDE_SHAPES: tuple[ShapeMatcher, ...] = (
    match_claude_web,
    match_generic_usage,
)


def _validate(model: type[_ModelT], raw: Any) -> _ModelT | None:
    if not isinstance(raw, dict):
        return None
    try:
        return model.model_validate(raw)
    except ValidationError:
        return None
