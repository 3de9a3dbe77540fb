"""
HTTP роуты для протоколов встреч и ленты "Notes".

- GET   /v1/minutes?team_id=&latest_only=&limit=
- GET   /v1/minutes/by-team-and-date?team_id=&date=
- PUT   /v1/minutes/details
- PATCH /v1/minutes/{minutes_id}
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from apps.api_gateway.deps import actor_dep, auth_dep, clock_dep
from team_tracker.common.security import Actor
from team_tracker.common.time import Clock
from team_tracker.contracts.http_api import (
    MinutesDetailsRequest,
    MinutesResponse,
    MinutesUpdateRequest,
    MinutesWithSnapshotsResponse,
    NotesResponse,
    SnapshotResponse,
)
from team_tracker.domain.enums import ChangeType
from team_tracker.services import minutes_service
from team_tracker.services.notes_service import list_minutes_for_team
from team_tracker.storage.db import db_session
from team_tracker.storage.models import Minutes, Snapshot

router = APIRouter()
AUTH_DEP = Depends(auth_dep)
ACTOR_DEP = Depends(actor_dep)
CLOCK_DEP = Depends(clock_dep)


def snapshot_to_response(snap: Snapshot) -> SnapshotResponse:
    return SnapshotResponse(
        id=snap.id,
        minutes_id=snap.minutes_id,
        task_id=snap.task_id,
        change_type=ChangeType(snap.change_type).value,
        recorded_at=snap.recorded_at,
        task_updated_at=snap.task_updated_at,
        payload_version=snap.payload_version,
        payload=dict(snap.payload or {}),
        actor_user_id=snap.actor_user_id,
    )


def minutes_to_response(m: Minutes) -> MinutesResponse:
    return MinutesResponse(
        id=m.id,
        team_id=m.team_id,
        date=m.date,
        venue=m.venue,
        attendance=list(m.attendance or []),
        created_at=m.created_at,
        updated_at=m.updated_at,
    )


@router.get("/minutes", response_model=NotesResponse)
def list_minutes(
    team_id: str = Query(...),
    latest_only: bool = Query(default=False),
    limit: int | None = Query(default=None, ge=1),
    _ctx=AUTH_DEP,
) -> NotesResponse:
    with db_session() as s:
        items = list_minutes_for_team(s, team_id, latest_only=latest_only, limit=limit)
        return NotesResponse(
            team_id=team_id,
            minutes=[
                MinutesWithSnapshotsResponse(
                    **minutes_to_response(item.minutes).model_dump(),
                    team_name=item.team.name,
                    snapshots=[snapshot_to_response(snap) for snap in item.snapshots],
                )
                for item in items
            ],
        )


@router.get("/minutes/by-team-and-date", response_model=MinutesResponse)
def get_minutes_by_team_and_date(
    team_id: str = Query(...),
    date: str = Query(...),
    _ctx=AUTH_DEP,
) -> MinutesResponse:
    with db_session() as s:
        m = minutes_service.get_minutes_by_team_and_date(s, team_id=team_id, date=date)
        return minutes_to_response(m)


@router.put("/minutes/details", response_model=MinutesResponse)
def put_meeting_details(
    req: MinutesDetailsRequest,
    actor: Actor = ACTOR_DEP,
    clock: Clock = CLOCK_DEP,
) -> MinutesResponse:
    changes = req.model_dump(exclude_unset=True, exclude={"team_id", "date"})
    with db_session() as s:
        m = minutes_service.update_meeting_details(
            s,
            actor,
            team_id=req.team_id,
            date=req.date,
            changes=changes,
            clock=clock,
        )
        return minutes_to_response(m)


@router.patch("/minutes/{minutes_id}", response_model=MinutesResponse)
def patch_minutes(
    minutes_id: str,
    req: MinutesUpdateRequest,
    actor: Actor = ACTOR_DEP,
    clock: Clock = CLOCK_DEP,
) -> MinutesResponse:
    with db_session() as s:
        m = minutes_service.update_minutes(
            s,
            actor,
            minutes_id,
            req.model_dump(exclude_unset=True),
            clock=clock,
        )
        return minutes_to_response(m)
