"""
Сервисный слой: журнал изменений задач (снимки).

Назначение:
- на каждое создание/изменение/удаление задачи дописать снимок в протокол
  команды за "сегодня"
- payload снимка самодостаточен (имена команды и ответственного внутри)

Вызывается в той же сессии/транзакции, что и запись задачи: если снимок не
записался, изменение задачи тоже откатывается.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from team_tracker.common.logging import get_audit_logger
from team_tracker.common.metrics import record_snapshot
from team_tracker.common.time import Clock, ensure_aware, get_clock, now_utc
from team_tracker.contracts.snapshot_payload import TaskSnapshotPayload
from team_tracker.domain.enums import ChangeType, TaskPriority, TaskStatus
from team_tracker.storage.models import Snapshot, Task
from team_tracker.storage.repositories import (
    SnapshotRepository,
    TeamMemberRepository,
    TeamRepository,
)

from .minutes_service import resolve_today_minutes

audit_log = get_audit_logger()


def build_task_payload(session: Session, task: Task) -> TaskSnapshotPayload:
    """
    Денормализованное состояние задачи для снимка.
    Связи читаются по id, а не через relationship: FK мог смениться в этой же сессии.
    """
    team = TeamRepository(session).get(task.team_id)

    member_id = task.responsible_member_id
    member = TeamMemberRepository(session).get(member_id) if member_id else None
    user = member.user if member is not None else None

    return TaskSnapshotPayload(
        task_id=task.id,
        team_id=task.team_id,
        team_name=team.name if team is not None else None,
        title=task.title,
        notes=task.notes,
        status=TaskStatus(task.status),
        priority=TaskPriority(task.priority),
        due_date=ensure_aware(task.due_date) if task.due_date else None,
        created_at=ensure_aware(task.created_at) if task.created_at else None,
        updated_at=ensure_aware(task.updated_at),
        responsible_member_id=member.id if member is not None else None,
        responsible_user_id=user.id if user is not None else None,
        responsible_name=(user.display_name or user.email) if user is not None else None,
        responsible_email=user.email if user is not None else None,
    )


def record_change(
    session: Session,
    task: Task,
    change_type: ChangeType,
    acting_user_id: str | None,
    *,
    clock: Clock | None = None,
) -> Snapshot:
    """
    Дописывает неизменяемый снимок задачи в сегодняшний протокол её команды.

    - task: состояние после изменения (Added/Edited) или перед удалением (Deleted)
    - recorded_at не убывает в пределах протокола: если часы отстали от
      последнего снимка, берём время последнего снимка (порядок по id)
    """
    clock = clock or get_clock()
    change_type = ChangeType(change_type)

    payload = build_task_payload(session, task)
    minutes = resolve_today_minutes(session, task.team_id, clock=clock)

    repo = SnapshotRepository(session)
    recorded_at = now_utc(clock)
    latest = repo.latest_recorded_at(minutes.id)
    if latest is not None and ensure_aware(latest) > recorded_at:
        recorded_at = ensure_aware(latest)

    snapshot = repo.append(
        Snapshot(
            minutes_id=minutes.id,
            task_id=task.id,
            change_type=change_type,
            recorded_at=recorded_at,
            task_updated_at=task.updated_at,
            payload=payload.to_json(),
            payload_version=payload.schema_version,
            actor_user_id=acting_user_id,
        )
    )

    record_snapshot(change_type.value)
    audit_log.info(
        "snapshot_recorded",
        extra={
            "payload": {
                "snapshot_id": snapshot.id,
                "minutes_id": minutes.id,
                "minutes_date": minutes.date,
                "task_id": task.id,
                "change_type": change_type.value,
                "actor_user_id": acting_user_id,
            }
        },
    )
    return snapshot
