"""
Сервисный слой: задачи.

Назначение:
- единая точка записи задач: права -> фильтр полей -> запись -> снимок
- все шаги в одной сессии вызывающего (одна транзакция), поэтому изменение
  задачи без снимка в журнале невозможно
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.orm import Session

from team_tracker.common.config import get_settings
from team_tracker.common.errors import ForbiddenError, NotFoundError, ValidationError
from team_tracker.common.logging import get_project_logger
from team_tracker.common.security import Actor
from team_tracker.common.time import Clock, ensure_aware, get_clock, now_utc
from team_tracker.domain.access_policy import filter_mutable_fields, validate_field_value
from team_tracker.domain.enums import ChangeType, TaskPriority, TaskStatus, UserRole
from team_tracker.storage.models import Task
from team_tracker.storage.repositories import (
    TaskRepository,
    TeamMemberRepository,
    TeamRepository,
)

from .role_service import can_manage_team, is_member_of_team
from .snapshot_service import record_change

log = get_project_logger()


# =============================================================================
# ПРАВА
# =============================================================================
def _effective_edit_role(session: Session, actor: Actor, team_id: str) -> UserRole:
    """
    С какими правами actor редактирует задачу этой команды.
    Координатор чужой команды, состоящий в ней участником, получает права участника.
    """
    if can_manage_team(session, actor, team_id):
        return actor.role
    if is_member_of_team(session, actor.user_id, team_id):
        return UserRole.member
    log.warning(
        "access_denied",
        extra={"payload": {"user_id": actor.user_id, "role": actor.role.value, "team_id": team_id}},
    )
    raise ForbiddenError("Нет прав на изменение задач этой команды", {"team_id": team_id})


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================
def _validate_title(title: Any) -> str:
    value = title.strip() if isinstance(title, str) else ""
    if not value:
        raise ValidationError("Название задачи обязательно")
    max_len = get_settings().task_title_max_len
    if len(value) > max_len:
        raise ValidationError(
            "Название задачи слишком длинное",
            {"max_len": max_len, "len": len(value)},
        )
    return value


def _default_if_none(value: Any, default: Any) -> Any:
    return default if value is None else value


def _validate_fields(session: Session, team_id: str, fields: Mapping[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for name, value in fields.items():
        if name == "title":
            out[name] = _validate_title(value)
        elif name in {"status", "priority"}:
            out[name] = validate_field_value(name, value)
        elif name == "responsible_member_id":
            if value:
                member = TeamMemberRepository(session).get(str(value))
                if member is None or member.team_id != team_id:
                    raise ValidationError(
                        "Ответственный должен состоять в команде задачи",
                        {"team_id": team_id, "member_id": value},
                    )
            out[name] = value or None
        elif name == "due_date":
            if value is not None and not isinstance(value, datetime):
                raise ValidationError("Срок задачи должен быть датой и временем", {"due_date": value})
            out[name] = ensure_aware(value).astimezone(UTC) if value is not None else None
        elif name == "notes":
            out[name] = value if value else None
        else:
            out[name] = value
    return out


# =============================================================================
# ЧТЕНИЕ
# =============================================================================
def get_task(session: Session, task_id: str) -> Task:
    task = TaskRepository(session).get(task_id)
    if task is None:
        raise NotFoundError("Задача не найдена", {"task_id": task_id})
    return task


def list_tasks(
    session: Session,
    *,
    team_id: str | None = None,
    member_id: str | None = None,
    include_completed: bool = False,
) -> list[Task]:
    """
    По умолчанию Done/Canceled скрыты; include_completed=True возвращает все задачи.
    """
    repo = TaskRepository(session)
    if member_id:
        return repo.list_by_responsible_member(member_id, include_completed=include_completed)
    if team_id:
        return repo.list_by_team(team_id, include_completed=include_completed)
    raise ValidationError("Нужен team_id или member_id")


# =============================================================================
# ЗАПИСЬ
# =============================================================================
def create_task(
    session: Session,
    actor: Actor,
    data: Mapping[str, Any],
    *,
    clock: Clock | None = None,
) -> Task:
    clock = clock or get_clock()
    team_id = str(data.get("team_id") or "")
    if TeamRepository(session).get(team_id) is None:
        raise NotFoundError("Команда не найдена", {"team_id": team_id})

    if not can_manage_team(session, actor, team_id):
        log.warning(
            "access_denied",
            extra={"payload": {"user_id": actor.user_id, "role": actor.role.value, "team_id": team_id}},
        )
        raise ForbiddenError("Нет прав на создание задач в этой команде", {"team_id": team_id})

    fields = _validate_fields(
        session,
        team_id,
        {
            "title": data.get("title"),
            "notes": data.get("notes"),
            "status": _default_if_none(data.get("status"), TaskStatus.open),
            "priority": _default_if_none(data.get("priority"), TaskPriority.medium),
            "due_date": data.get("due_date"),
            "responsible_member_id": data.get("responsible_member_id"),
        },
    )

    now = now_utc(clock)
    task = TaskRepository(session).insert(
        Task(team_id=team_id, created_at=now, updated_at=now, **fields)
    )
    record_change(session, task, ChangeType.added, actor.user_id, clock=clock)

    log.info(
        "task_created",
        extra={"payload": {"task_id": task.id, "team_id": team_id, "user_id": actor.user_id}},
    )
    return task


def update_task(
    session: Session,
    actor: Actor,
    task_id: str,
    updates: Mapping[str, Any],
    *,
    clock: Clock | None = None,
) -> Task:
    clock = clock or get_clock()
    if not updates:
        raise ValidationError("Нет полей для обновления")
    task = get_task(session, task_id)

    role = _effective_edit_role(session, actor, task.team_id)
    allowed = filter_mutable_fields(role, task, updates)
    if allowed.dropped:
        log.info(
            "task_update_fields_dropped",
            extra={"payload": {"task_id": task_id, "role": role.value, "dropped": allowed.dropped}},
        )

    fields = _validate_fields(session, task.team_id, allowed.fields)
    fields["updated_at"] = now_utc(clock)

    TaskRepository(session).update(task, fields)
    record_change(session, task, ChangeType.edited, actor.user_id, clock=clock)

    log.info(
        "task_updated",
        extra={
            "payload": {
                "task_id": task_id,
                "user_id": actor.user_id,
                "fields": sorted(k for k in fields if k != "updated_at"),
            }
        },
    )
    return task


def delete_task(
    session: Session,
    actor: Actor,
    task_id: str,
    *,
    clock: Clock | None = None,
) -> None:
    """
    Снимок Deleted пишется до физического удаления, с последним состоянием задачи.
    """
    clock = clock or get_clock()
    task = get_task(session, task_id)

    if not can_manage_team(session, actor, task.team_id):
        log.warning(
            "access_denied",
            extra={"payload": {"user_id": actor.user_id, "role": actor.role.value, "task_id": task_id}},
        )
        raise ForbiddenError("Нет прав на удаление задачи", {"task_id": task_id})

    record_change(session, task, ChangeType.deleted, actor.user_id, clock=clock)
    TaskRepository(session).delete(task)

    log.info("task_deleted", extra={"payload": {"task_id": task_id, "user_id": actor.user_id}})
