"""
HTTP API контракты (Pydantic-модели).

Назначение:
- валидация входа/выхода на уровне FastAPI
- стабильные структуры для клиентов

Статус/приоритет во входящих моделях — строки: канонические значения
проверяет политика доступа (ValidationError -> 400), а не FastAPI (422).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .versions import HTTP_API_VERSION


class _OrmModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# ЗАПРОСЫ
# =============================================================================
class UserUpsertRequest(BaseModel):
    email: str
    display_name: str | None = None
    photo_url: str | None = None


class UserAdminRequest(BaseModel):
    is_admin: bool


class TeamCreateRequest(BaseModel):
    name: str
    default_venue: str | None = None


class TeamUpdateRequest(BaseModel):
    name: str | None = None
    default_venue: str | None = None


class TeamMemberCreateRequest(BaseModel):
    team_id: str
    user_id: str
    is_coordinator: bool = False


class TeamMemberUpdateRequest(BaseModel):
    is_coordinator: bool


class TaskCreateRequest(BaseModel):
    team_id: str
    title: str
    notes: str | None = None
    status: str | None = None
    priority: str | None = None
    due_date: datetime | None = None
    responsible_member_id: str | None = None


class TaskUpdateRequest(BaseModel):
    """
    Частичное обновление: учитываются только переданные поля (exclude_unset).
    """

    title: str | None = None
    notes: str | None = None
    status: str | None = None
    priority: str | None = None
    due_date: datetime | None = None
    responsible_member_id: str | None = None


class MinutesDetailsRequest(BaseModel):
    team_id: str
    date: str = Field(description="YYYY-MM-DD")
    venue: str | None = None
    attendance: list[str] | None = None


class MinutesUpdateRequest(BaseModel):
    venue: str | None = None
    attendance: list[str] | None = None


# =============================================================================
# ОТВЕТЫ
# =============================================================================
class UserResponse(_OrmModel):
    id: str
    email: str
    display_name: str | None = None
    photo_url: str | None = None
    is_admin: bool = False
    role: str | None = None


class TeamMemberResponse(_OrmModel):
    id: str
    team_id: str
    user_id: str
    is_coordinator: bool
    user: UserResponse | None = None


class TeamResponse(_OrmModel):
    id: str
    name: str
    default_venue: str | None = None
    members: list[TeamMemberResponse] = Field(default_factory=list)
    coordinators: list[TeamMemberResponse] = Field(default_factory=list)


class TaskResponse(_OrmModel):
    api_version: str = Field(default=HTTP_API_VERSION)
    id: str
    team_id: str
    team_name: str | None = None
    responsible_member_id: str | None = None
    responsible_name: str | None = None
    title: str
    notes: str | None = None
    status: str
    priority: str
    due_date: datetime | None = None
    created_at: datetime
    updated_at: datetime


class SnapshotResponse(_OrmModel):
    id: int
    minutes_id: str
    task_id: str
    change_type: str
    recorded_at: datetime
    task_updated_at: datetime
    payload_version: int
    payload: dict[str, Any]
    actor_user_id: str | None = None


class MinutesResponse(_OrmModel):
    id: str
    team_id: str
    date: str
    venue: str | None = None
    attendance: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class MinutesWithSnapshotsResponse(MinutesResponse):
    team_name: str
    snapshots: list[SnapshotResponse] = Field(default_factory=list)


class NotesResponse(BaseModel):
    api_version: str = Field(default=HTTP_API_VERSION)
    team_id: str
    minutes: list[MinutesWithSnapshotsResponse] = Field(default_factory=list)


class OkResponse(BaseModel):
    ok: bool = True
