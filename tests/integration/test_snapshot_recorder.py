from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from team_tracker.common.errors import ConflictError
from team_tracker.common.time import FixedClock, ensure_aware
from team_tracker.contracts.snapshot_payload import load_snapshot_payload
from team_tracker.domain.enums import ChangeType, TaskPriority, TaskStatus
from team_tracker.domain.notes import collapse_latest_per_task
from team_tracker.services.snapshot_service import record_change
from team_tracker.storage.db import db_session
from team_tracker.storage.models import Minutes, Snapshot, Task
from team_tracker.storage.repositories import SnapshotRepository, TaskRepository


def _insert_task(seed, clock, **fields) -> str:
    now = clock.now()
    with db_session() as s:
        task = TaskRepository(s).insert(
            Task(
                team_id=seed.team_id,
                title=fields.get("title", "Настроить алерты"),
                status=TaskStatus.open,
                priority=TaskPriority.medium,
                responsible_member_id=fields.get("responsible_member_id"),
                created_at=now,
                updated_at=now,
            )
        )
        return task.id


def _record(task_id: str, change_type: ChangeType, clock, actor: str | None = None) -> int:
    with db_session() as s:
        task = TaskRepository(s).get(task_id)
        return record_change(s, task, change_type, actor, clock=clock).id


def test_snapshot_lands_in_todays_minutes(seed, clock) -> None:
    task_id = _insert_task(seed, clock, responsible_member_id=seed.masha_member_id)
    snap_id = _record(task_id, ChangeType.added, clock, seed.coordinator_id)

    with db_session() as s:
        snap = s.get(Snapshot, snap_id)
        minutes = s.get(Minutes, snap.minutes_id)

        assert minutes.team_id == seed.team_id
        assert minutes.date == "2026-03-02"
        assert snap.change_type == ChangeType.added
        assert snap.actor_user_id == seed.coordinator_id
        assert snap.payload_version == 1

        payload = load_snapshot_payload(snap.payload)
        assert payload.team_name == "Platform"
        assert payload.title == "Настроить алерты"
        assert payload.responsible_name == "Маша"
        assert payload.responsible_email == "masha@example.com"


def test_recorded_at_never_goes_backwards(seed, clock) -> None:
    task_id = _insert_task(seed, clock)
    first = _record(task_id, ChangeType.added, clock)

    # часы отстали, но дата та же
    clock.current = datetime(2026, 3, 2, 8, 0, tzinfo=UTC)
    second = _record(task_id, ChangeType.edited, clock)

    with db_session() as s:
        a = s.get(Snapshot, first)
        b = s.get(Snapshot, second)
        assert b.id > a.id
        assert ensure_aware(b.recorded_at) >= ensure_aware(a.recorded_at)
        assert ensure_aware(b.recorded_at) == datetime(2026, 3, 2, 9, 0, tzinfo=UTC)

        latest = collapse_latest_per_task(SnapshotRepository(s).list_by_minutes(a.minutes_id))
        assert latest[task_id].id == second


def test_offset_clock_is_stored_as_utc(seed) -> None:
    moscow = FixedClock(datetime(2026, 3, 2, 10, 0, tzinfo=timezone(timedelta(hours=3))))
    task_id = _insert_task(seed, moscow)
    first = _record(task_id, ChangeType.added, moscow)
    moscow.advance(timedelta(minutes=1))
    second = _record(task_id, ChangeType.edited, moscow)

    with db_session() as s:
        a = s.get(Snapshot, first)
        b = s.get(Snapshot, second)
        assert ensure_aware(a.recorded_at) == datetime(2026, 3, 2, 7, 0, tzinfo=UTC)
        assert ensure_aware(b.recorded_at) == datetime(2026, 3, 2, 7, 1, tzinfo=UTC)
        assert s.get(Minutes, a.minutes_id).date == "2026-03-02"


def test_same_instant_edits_resolve_by_insert_order(seed, clock) -> None:
    task_id = _insert_task(seed, clock)
    _record(task_id, ChangeType.added, clock)
    _record(task_id, ChangeType.edited, clock)
    last = _record(task_id, ChangeType.edited, clock)

    with db_session() as s:
        snaps = SnapshotRepository(s).list_by_task(task_id)
        assert [x.change_type for x in snaps] == [
            ChangeType.added,
            ChangeType.edited,
            ChangeType.edited,
        ]
        assert snaps[-1].id == last
        assert collapse_latest_per_task(snaps)[task_id].id == last


def test_snapshot_follows_clock_into_next_day(seed, clock) -> None:
    clock.current = datetime(2026, 3, 2, 23, 59, 30, tzinfo=UTC)
    task_id = _insert_task(seed, clock)
    first = _record(task_id, ChangeType.added, clock)

    clock.advance(timedelta(minutes=1))
    second = _record(task_id, ChangeType.edited, clock)

    with db_session() as s:
        a = s.get(Snapshot, first)
        b = s.get(Snapshot, second)
        assert a.minutes_id != b.minutes_id
        assert s.get(Minutes, b.minutes_id).date == "2026-03-03"


def test_snapshots_are_append_only(seed, clock) -> None:
    task_id = _insert_task(seed, clock)
    snap_id = _record(task_id, ChangeType.added, clock)

    with pytest.raises(ConflictError):
        with db_session() as s:
            snap = s.get(Snapshot, snap_id)
            snap.change_type = ChangeType.deleted
            s.flush()

    with pytest.raises(ConflictError):
        with db_session() as s:
            s.delete(s.get(Snapshot, snap_id))
            s.flush()

    with db_session() as s:
        assert s.get(Snapshot, snap_id).change_type == ChangeType.added


def test_failed_task_write_rolls_back_snapshot(seed, clock) -> None:
    task_id = _insert_task(seed, clock)

    with pytest.raises(RuntimeError):
        with db_session() as s:
            task = TaskRepository(s).get(task_id)
            record_change(s, task, ChangeType.edited, None, clock=clock)
            raise RuntimeError("boom")

    with db_session() as s:
        assert list(s.scalars(select(Snapshot))) == []
        assert list(s.scalars(select(Minutes))) == []


def test_snapshot_is_audited(seed, clock, caplog) -> None:
    caplog.set_level(logging.INFO, logger="team-tracker.audit")
    task_id = _insert_task(seed, clock)
    snap_id = _record(task_id, ChangeType.added, clock, seed.admin_id)

    rec = next(r for r in caplog.records if r.msg == "snapshot_recorded")
    assert rec.payload["snapshot_id"] == snap_id
    assert rec.payload["task_id"] == task_id
    assert rec.payload["change_type"] == "Added"
    assert rec.payload["minutes_date"] == "2026-03-02"
