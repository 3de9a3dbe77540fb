"""
HTTP роуты для команд и их участников.

- POST   /v1/teams
- GET    /v1/teams
- GET    /v1/teams/{team_id}
- PATCH  /v1/teams/{team_id}
- POST   /v1/team-members
- PATCH  /v1/team-members/{member_id}
- DELETE /v1/team-members/{member_id}

Изменения доступны только Admin/Superadmin.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from apps.api_gateway.deps import actor_dep, auth_dep, clock_dep
from team_tracker.common.security import Actor
from team_tracker.common.time import Clock
from team_tracker.contracts.http_api import (
    OkResponse,
    TeamCreateRequest,
    TeamMemberCreateRequest,
    TeamMemberResponse,
    TeamMemberUpdateRequest,
    TeamResponse,
    TeamUpdateRequest,
    UserResponse,
)
from team_tracker.services import team_service
from team_tracker.storage.db import db_session
from team_tracker.storage.models import Team, TeamMember

router = APIRouter()
AUTH_DEP = Depends(auth_dep)
ACTOR_DEP = Depends(actor_dep)
CLOCK_DEP = Depends(clock_dep)


def member_to_response(member: TeamMember) -> TeamMemberResponse:
    user = member.user
    return TeamMemberResponse(
        id=member.id,
        team_id=member.team_id,
        user_id=member.user_id,
        is_coordinator=member.is_coordinator,
        user=UserResponse.model_validate(user) if user is not None else None,
    )


def team_to_response(team: Team) -> TeamResponse:
    members = [member_to_response(m) for m in team.members]
    return TeamResponse(
        id=team.id,
        name=team.name,
        default_venue=team.default_venue,
        members=members,
        coordinators=[m for m in members if m.is_coordinator],
    )


# =============================================================================
# TEAMS
# =============================================================================
@router.post("/teams", response_model=TeamResponse)
def create_team(
    req: TeamCreateRequest,
    actor: Actor = ACTOR_DEP,
    clock: Clock = CLOCK_DEP,
) -> TeamResponse:
    with db_session() as s:
        team = team_service.create_team(
            s,
            actor,
            name=req.name,
            default_venue=req.default_venue,
            clock=clock,
        )
        return team_to_response(team_service.get_team(s, team.id))


@router.get("/teams", response_model=list[TeamResponse])
def list_teams(_ctx=AUTH_DEP) -> list[TeamResponse]:
    with db_session() as s:
        return [team_to_response(t) for t in team_service.list_teams(s)]


@router.get("/teams/{team_id}", response_model=TeamResponse)
def get_team(team_id: str, _ctx=AUTH_DEP) -> TeamResponse:
    with db_session() as s:
        return team_to_response(team_service.get_team(s, team_id))


@router.patch("/teams/{team_id}", response_model=TeamResponse)
def update_team(
    team_id: str,
    req: TeamUpdateRequest,
    actor: Actor = ACTOR_DEP,
    clock: Clock = CLOCK_DEP,
) -> TeamResponse:
    with db_session() as s:
        team = team_service.update_team(
            s,
            actor,
            team_id,
            req.model_dump(exclude_unset=True),
            clock=clock,
        )
        return team_to_response(team)


# =============================================================================
# TEAM MEMBERS
# =============================================================================
@router.post("/team-members", response_model=TeamMemberResponse)
def add_member(
    req: TeamMemberCreateRequest,
    actor: Actor = ACTOR_DEP,
    clock: Clock = CLOCK_DEP,
) -> TeamMemberResponse:
    with db_session() as s:
        member = team_service.add_member(
            s,
            actor,
            team_id=req.team_id,
            user_id=req.user_id,
            is_coordinator=req.is_coordinator,
            clock=clock,
        )
        return member_to_response(member)


@router.patch("/team-members/{member_id}", response_model=TeamMemberResponse)
def update_member(
    member_id: str,
    req: TeamMemberUpdateRequest,
    actor: Actor = ACTOR_DEP,
) -> TeamMemberResponse:
    with db_session() as s:
        member = team_service.update_member(s, actor, member_id, is_coordinator=req.is_coordinator)
        return member_to_response(member)


@router.delete("/team-members/{member_id}", response_model=OkResponse)
def remove_member(
    member_id: str,
    actor: Actor = ACTOR_DEP,
    clock: Clock = CLOCK_DEP,
) -> OkResponse:
    with db_session() as s:
        team_service.remove_member(s, actor, member_id, clock=clock)
    return OkResponse()
