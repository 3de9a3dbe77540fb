"""
Политика доступа к полям задачи.

Назначение:
- одна декларативная таблица "роль -> какие поля можно менять"
- одна функция фильтрации поверх таблицы
- проверка значений статуса/приоритета на канонические

Проверка "координатор именно этой команды" делается вызывающим кодом
(services/task_service.py) до вызова фильтра.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from team_tracker.common.config import get_settings
from team_tracker.common.errors import ForbiddenError, ValidationError

from .enums import TaskPriority, TaskStatus, UserRole

# =============================================================================
# ТАБЛИЦА ПРАВ
# =============================================================================
TASK_MUTABLE_FIELDS: frozenset[str] = frozenset(
    {
        "title",
        "notes",
        "status",
        "priority",
        "due_date",
        "responsible_member_id",
    }
)

MEMBER_FIELDS: frozenset[str] = frozenset({"status", "notes"})

ROLE_MUTABLE_FIELDS: dict[UserRole, frozenset[str]] = {
    UserRole.superadmin: TASK_MUTABLE_FIELDS,
    UserRole.admin: TASK_MUTABLE_FIELDS,
    UserRole.coordinator: TASK_MUTABLE_FIELDS,
    UserRole.member: MEMBER_FIELDS | {"priority"},
}


def allowed_fields_for(role: UserRole) -> frozenset[str]:
    allowed = ROLE_MUTABLE_FIELDS.get(role, frozenset())
    if role == UserRole.member and not get_settings().member_can_edit_priority:
        allowed = allowed - {"priority"}
    return allowed


# =============================================================================
# РЕЗУЛЬТАТ ФИЛЬТРАЦИИ
# =============================================================================
@dataclass
class AllowedUpdates:
    fields: dict[str, Any]
    dropped: list[str] = field(default_factory=list)


def validate_field_value(name: str, value: Any) -> Any:
    if name == "status":
        try:
            return TaskStatus(value)
        except ValueError as e:
            raise ValidationError("Недопустимый статус задачи", {"status": value}) from e
    if name == "priority":
        try:
            return TaskPriority(value)
        except ValueError as e:
            raise ValidationError("Недопустимый приоритет задачи", {"priority": value}) from e
    return value


def filter_mutable_fields(
    role: UserRole,
    task: Any,
    requested_updates: Mapping[str, Any],
) -> AllowedUpdates:
    """
    Оставляет только поля, которые роль может менять.

    - лишние поля отбрасываются молча (UI остаётся "прощающим")
    - если после фильтрации ничего не осталось -> ForbiddenError
    - статус/приоритет вне канонического набора -> ValidationError
    """
    allowed = allowed_fields_for(role)

    fields: dict[str, Any] = {}
    dropped: list[str] = []
    for name, value in requested_updates.items():
        if name not in allowed:
            dropped.append(name)
            continue
        fields[name] = validate_field_value(name, value)

    if not fields:
        raise ForbiddenError(
            "Нет полей, которые роль может изменить",
            {
                "role": role.value,
                "task_id": getattr(task, "id", None),
                "allowed": sorted(allowed),
            },
        )
    return AllowedUpdates(fields=fields, dropped=sorted(dropped))
