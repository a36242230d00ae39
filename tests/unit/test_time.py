from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from llm_limits.core.utils.time import first_reset_at, normalize_reset_at

pytestmark = pytest.mark.unit


def test_epoch_seconds_and_milliseconds_resolve_to_same_instant() -> None:
    seconds = normalize_reset_at(1700000000)
    millis = normalize_reset_at(1700000000000)

    assert seconds is not None
    assert seconds == millis
    assert seconds == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)


def test_threshold_value_is_read_as_milliseconds() -> None:
    assert normalize_reset_at(1_000_000_000_000) == datetime(2001, 9, 9, 1, 46, 40, tzinfo=timezone.utc)


def test_out_of_range_seconds_become_none() -> None:
    # Just below the threshold is read as seconds, which lands past year 9999.
    assert normalize_reset_at(999_999_999_999) is None


def test_float_epoch_is_accepted() -> None:
    assert normalize_reset_at(1735689600.0) == datetime(2025, 1, 1, tzinfo=timezone.utc)


def test_iso_string_is_normalized_to_utc() -> None:
    parsed = normalize_reset_at("2025-01-01T02:00:00+02:00")

    assert parsed == datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert parsed.utcoffset() == timedelta(0)


def test_iso_string_with_z_suffix() -> None:
    assert normalize_reset_at("2025-01-08T00:00:00Z") == datetime(2025, 1, 8, tzinfo=timezone.utc)


def test_naive_iso_string_is_treated_as_utc() -> None:
    assert normalize_reset_at("2025-01-08T00:00:00") == datetime(2025, 1, 8, tzinfo=timezone.utc)


@pytest.mark.parametrize("value", [None, "", "   ", "next tuesday", True, False, {"at": 1}, [1], float("nan")])
def test_unusable_values_become_none(value: object) -> None:
    assert normalize_reset_at(value) is None


def test_first_reset_at_prefers_primary_field() -> None:
    primary = first_reset_at(1735689600, "2030-01-01T00:00:00Z")

    assert primary == datetime(2025, 1, 1, tzinfo=timezone.utc)


def test_first_reset_at_falls_back_to_alias() -> None:
    assert first_reset_at(None, 1735689600) == datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert first_reset_at(None, None) is None
