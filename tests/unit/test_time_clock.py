from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from team_tracker.common.time import (
    FixedClock,
    ensure_aware,
    get_clock,
    local_date_iso,
    now_utc,
    parse_date_iso,
    today_iso,
)


def test_fixed_clock_stands_still_until_advanced() -> None:
    c = FixedClock(datetime(2026, 3, 2, 23, 59, tzinfo=UTC))
    assert c.now() == c.now()

    c.advance(timedelta(minutes=2))
    assert c.now() == datetime(2026, 3, 3, 0, 1, tzinfo=UTC)


def test_fixed_clock_step_moves_each_call() -> None:
    c = FixedClock(datetime(2026, 3, 2, 9, 0, tzinfo=UTC), step=timedelta(seconds=1))
    first = c.now()
    second = c.now()
    assert second - first == timedelta(seconds=1)


def test_today_uses_configured_timezone(tracker_settings) -> None:
    c = FixedClock(datetime(2026, 3, 2, 22, 30, tzinfo=UTC))

    tracker_settings.minutes_timezone = "UTC"
    assert today_iso(c) == "2026-03-02"

    tracker_settings.minutes_timezone = "Europe/Moscow"
    assert today_iso(c) == "2026-03-03"


def test_unknown_timezone_fails_loudly(tracker_settings) -> None:
    tracker_settings.minutes_timezone = "Mars/Olympus"
    with pytest.raises(RuntimeError):
        local_date_iso(datetime(2026, 3, 2, tzinfo=UTC))


def test_naive_datetime_is_treated_as_utc() -> None:
    naive = datetime(2026, 3, 2, 9, 0)
    assert ensure_aware(naive).tzinfo is UTC


def test_parse_date_normalizes_and_rejects_garbage() -> None:
    assert parse_date_iso(" 2026-03-02 ") == "2026-03-02"
    with pytest.raises(ValueError):
        parse_date_iso("02.03.2026")
    with pytest.raises(ValueError):
        parse_date_iso("2026-02-30")


def test_system_clock_is_aware() -> None:
    assert get_clock().now().tzinfo is not None


def test_now_utc_converts_offset_clock_to_utc() -> None:
    c = FixedClock(datetime(2026, 3, 2, 10, 0, tzinfo=timezone(timedelta(hours=3))))
    value = now_utc(c)
    assert value == datetime(2026, 3, 2, 7, 0, tzinfo=UTC)
    assert value.utcoffset() == timedelta(0)
