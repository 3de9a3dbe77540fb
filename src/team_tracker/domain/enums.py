"""
Доменные перечисления (enum).

Используются во всей системе:
- статус и приоритет задачи
- тип изменения в журнале (снимке)
- роли пользователей
"""

from __future__ import annotations

import enum


class TaskStatus(str, enum.Enum):
    """
    Канонические статусы задачи. Других значений система не принимает.
    """

    open = "Open"
    in_progress = "In-Progress"
    blocked = "Blocked"
    done = "Done"
    canceled = "Canceled"


# Статусы, которые скрываются из списка задач по умолчанию
COMPLETED_STATUSES = frozenset({TaskStatus.done, TaskStatus.canceled})


class TaskPriority(str, enum.Enum):
    low = "Low"
    medium = "Medium"
    high = "High"


class ChangeType(str, enum.Enum):
    """
    Тип изменения задачи, зафиксированного снимком.
    """

    added = "Added"
    edited = "Edited"
    deleted = "Deleted"


class UserRole(str, enum.Enum):
    member = "Member"
    coordinator = "Coordinator"
    admin = "Admin"
    superadmin = "Superadmin"


def enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """
    Значения enum для SQLAlchemy (храним "In-Progress", а не "in_progress").
    """
    return [str(m.value) for m in enum_cls]
