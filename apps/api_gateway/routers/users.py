"""
HTTP роуты для пользователей.

- POST /v1/users  (вход через провайдера идентичности: создать/обновить по email)
- GET  /v1/users
- PATCH /v1/users/{user_id}/admin  (только Admin/Superadmin)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from apps.api_gateway.deps import actor_dep, auth_dep, clock_dep
from team_tracker.common.security import Actor
from team_tracker.common.time import Clock
from team_tracker.contracts.http_api import UserAdminRequest, UserResponse, UserUpsertRequest
from team_tracker.services import team_service
from team_tracker.services.role_service import resolve_role
from team_tracker.storage.db import db_session
from team_tracker.storage.models import User

router = APIRouter()
AUTH_DEP = Depends(auth_dep)
ACTOR_DEP = Depends(actor_dep)
CLOCK_DEP = Depends(clock_dep)


def user_to_response(session: Session, user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        photo_url=user.photo_url,
        is_admin=user.is_admin,
        role=resolve_role(session, user.id).value,
    )


@router.post("/users", response_model=UserResponse)
def upsert_user(
    req: UserUpsertRequest,
    _ctx=AUTH_DEP,
    clock: Clock = CLOCK_DEP,
) -> UserResponse:
    with db_session() as s:
        user = team_service.upsert_user(
            s,
            email=req.email,
            display_name=req.display_name,
            photo_url=req.photo_url,
            clock=clock,
        )
        return user_to_response(s, user)


@router.get("/users", response_model=list[UserResponse])
def list_users(_ctx=AUTH_DEP) -> list[UserResponse]:
    with db_session() as s:
        return [user_to_response(s, u) for u in team_service.list_users(s)]


@router.patch("/users/{user_id}/admin", response_model=UserResponse)
def set_user_admin(
    user_id: str,
    req: UserAdminRequest,
    actor: Actor = ACTOR_DEP,
    clock: Clock = CLOCK_DEP,
) -> UserResponse:
    with db_session() as s:
        user = team_service.set_admin(s, actor, user_id, is_admin=req.is_admin, clock=clock)
        return user_to_response(s, user)
