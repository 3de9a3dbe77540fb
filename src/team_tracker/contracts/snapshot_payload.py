"""
Контракт payload снимка задачи.

Payload — замороженный JSON с полным отображаемым состоянием задачи на
момент изменения (включая имя ответственного), чтобы запись оставалась
осмысленной после удаления задачи или участника.

Схема версионируется: при изменении формы задачи заводится новая модель
TaskSnapshotPayloadV<N>, старые снимки продолжают читаться своей моделью.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

import pydantic
from pydantic import BaseModel, ConfigDict

from team_tracker.common.errors import ValidationError
from team_tracker.domain.enums import TaskPriority, TaskStatus

from .versions import SNAPSHOT_PAYLOAD_VERSION


class TaskSnapshotPayloadV1(BaseModel):
    model_config = ConfigDict(frozen=True)

    schema_version: Literal[1] = 1

    task_id: str
    team_id: str
    team_name: str | None = None

    title: str
    notes: str | None = None
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime | None = None

    created_at: datetime | None = None
    updated_at: datetime

    # Ответственный (денормализовано)
    responsible_member_id: str | None = None
    responsible_user_id: str | None = None
    responsible_name: str | None = None
    responsible_email: str | None = None

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


TaskSnapshotPayload = TaskSnapshotPayloadV1

_PAYLOAD_MODELS: dict[int, type[BaseModel]] = {
    SNAPSHOT_PAYLOAD_VERSION: TaskSnapshotPayloadV1,
}


def payload_version(raw: dict[str, Any] | None) -> int | None:
    if not isinstance(raw, dict):
        return None
    value = raw.get("schema_version")
    return value if isinstance(value, int) else None


def load_snapshot_payload(raw: dict[str, Any]) -> BaseModel:
    """
    Читает payload снимка моделью его версии.
    Неизвестная версия -> ValidationError (не пытаемся угадать форму).
    """
    version = payload_version(raw)
    model = _PAYLOAD_MODELS.get(version) if version is not None else None
    if model is None:
        raise ValidationError(
            "Неизвестная версия payload снимка",
            {"schema_version": version},
        )
    try:
        return model.model_validate(raw)
    except pydantic.ValidationError as e:
        raise ValidationError(
            "Payload снимка не соответствует своей версии",
            {"schema_version": version, "errors": e.error_count()},
        ) from e
