"""
HTTP роуты для задач.

- GET    /v1/tasks?team_id=|member_id=&include_completed=
- GET    /v1/tasks/{task_id}
- POST   /v1/tasks
- PATCH  /v1/tasks/{task_id}
- DELETE /v1/tasks/{task_id}

Каждая запись задачи и её снимок в журнале пишутся одной транзакцией (db_session).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from apps.api_gateway.deps import actor_dep, auth_dep, clock_dep
from team_tracker.common.security import Actor
from team_tracker.common.time import Clock
from team_tracker.contracts.http_api import (
    OkResponse,
    TaskCreateRequest,
    TaskResponse,
    TaskUpdateRequest,
)
from team_tracker.domain.enums import TaskPriority, TaskStatus
from team_tracker.services import task_service
from team_tracker.services.snapshot_service import build_task_payload
from team_tracker.storage.db import db_session
from team_tracker.storage.models import Task

router = APIRouter()
AUTH_DEP = Depends(auth_dep)
ACTOR_DEP = Depends(actor_dep)
CLOCK_DEP = Depends(clock_dep)


def task_to_response(session: Session, task: Task) -> TaskResponse:
    view = build_task_payload(session, task)
    return TaskResponse(
        id=task.id,
        team_id=task.team_id,
        team_name=view.team_name,
        responsible_member_id=task.responsible_member_id,
        responsible_name=view.responsible_name,
        title=task.title,
        notes=task.notes,
        status=TaskStatus(task.status).value,
        priority=TaskPriority(task.priority).value,
        due_date=view.due_date,
        created_at=view.created_at or view.updated_at,
        updated_at=view.updated_at,
    )


@router.get("/tasks", response_model=list[TaskResponse])
def list_tasks(
    team_id: str | None = Query(default=None),
    member_id: str | None = Query(default=None),
    include_completed: bool = Query(default=False),
    _ctx=AUTH_DEP,
) -> list[TaskResponse]:
    with db_session() as s:
        tasks = task_service.list_tasks(
            s,
            team_id=team_id,
            member_id=member_id,
            include_completed=include_completed,
        )
        return [task_to_response(s, t) for t in tasks]


@router.get("/tasks/{task_id}", response_model=TaskResponse)
def get_task(task_id: str, _ctx=AUTH_DEP) -> TaskResponse:
    with db_session() as s:
        return task_to_response(s, task_service.get_task(s, task_id))


@router.post("/tasks", response_model=TaskResponse)
def create_task(
    req: TaskCreateRequest,
    actor: Actor = ACTOR_DEP,
    clock: Clock = CLOCK_DEP,
) -> TaskResponse:
    with db_session() as s:
        task = task_service.create_task(s, actor, req.model_dump(), clock=clock)
        return task_to_response(s, task)


@router.patch("/tasks/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: str,
    req: TaskUpdateRequest,
    actor: Actor = ACTOR_DEP,
    clock: Clock = CLOCK_DEP,
) -> TaskResponse:
    with db_session() as s:
        task = task_service.update_task(
            s,
            actor,
            task_id,
            req.model_dump(exclude_unset=True),
            clock=clock,
        )
        return task_to_response(s, task)


@router.delete("/tasks/{task_id}", response_model=OkResponse)
def delete_task(
    task_id: str,
    actor: Actor = ACTOR_DEP,
    clock: Clock = CLOCK_DEP,
) -> OkResponse:
    with db_session() as s:
        task_service.delete_task(s, actor, task_id, clock=clock)
    return OkResponse()
