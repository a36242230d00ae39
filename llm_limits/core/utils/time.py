from __future__ import annotations

import math
from datetime import datetime, timezone

# Epoch values below this are seconds, anything at or above is milliseconds.
EPOCH_MILLIS_THRESHOLD = 1_000_000_000_000


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def from_epoch(value: int | float) -> datetime | None:
    if isinstance(value, bool) or not math.isfinite(value):
        return None
    seconds = value / 1000 if abs(value) >= EPOCH_MILLIS_THRESHOLD else value
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def parse_iso8601(value: str) -> datetime | None:
    stripped = value.strip()
    if not stripped:
        return None
    try:
        normalized = stripped.replace("Z", "+00:00")
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def normalize_reset_at(value: object) -> datetime | None:
    """Convert a provider-native reset value into an aware UTC instant.

    Strings are read as ISO-8601. Numbers are epoch timestamps; the unit is
    picked by magnitude so ``1700000000`` and ``1700000000000`` resolve to the
    same instant. Anything else yields ``None``.
    """
    if isinstance(value, str):
        return parse_iso8601(value)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return from_epoch(value)
    return None


def first_reset_at(*values: object) -> datetime | None:
    for value in values:
        parsed = normalize_reset_at(value)
        if parsed is not None:
            return parsed
    return None
