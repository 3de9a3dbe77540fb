from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from team_tracker.domain.notes import collapse_latest_per_task

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


@dataclass
class Snap:
    id: int
    task_id: str
    recorded_at: datetime


def test_keeps_latest_snapshot_per_task() -> None:
    snaps = [
        Snap(1, "a", T0),
        Snap(2, "b", T0 + timedelta(minutes=1)),
        Snap(3, "a", T0 + timedelta(minutes=2)),
    ]
    out = collapse_latest_per_task(snaps)

    assert {k: v.id for k, v in out.items()} == {"a": 3, "b": 2}


def test_result_is_ordered_newest_first() -> None:
    snaps = [
        Snap(1, "a", T0),
        Snap(2, "b", T0 + timedelta(minutes=5)),
        Snap(3, "c", T0 + timedelta(minutes=1)),
    ]
    out = collapse_latest_per_task(snaps)
    assert list(out) == ["b", "c", "a"]


def test_equal_recorded_at_prefers_later_insert() -> None:
    snaps = [Snap(7, "a", T0), Snap(8, "a", T0)]
    assert collapse_latest_per_task(snaps)["a"].id == 8

    # порядок входа не важен
    assert collapse_latest_per_task(list(reversed(snaps)))["a"].id == 8


def test_naive_and_aware_timestamps_compare_as_utc() -> None:
    snaps = [
        Snap(1, "a", T0.replace(tzinfo=None) + timedelta(minutes=1)),
        Snap(2, "a", T0),
    ]
    assert collapse_latest_per_task(snaps)["a"].id == 1


def test_collapse_is_idempotent() -> None:
    snaps = [
        Snap(1, "a", T0),
        Snap(2, "a", T0 + timedelta(seconds=1)),
        Snap(3, "b", T0),
    ]
    once = collapse_latest_per_task(snaps)
    twice = collapse_latest_per_task(once.values())
    assert once == twice


def test_empty_input() -> None:
    assert collapse_latest_per_task([]) == {}
