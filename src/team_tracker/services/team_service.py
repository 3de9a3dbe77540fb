"""
Сервисный слой: команды, участники, пользователи.

Обычный CRUD вокруг ядра журнала: команда нужна протоколам (место встречи
по умолчанию), участник нужен задачам (ответственный) и протоколам (присутствие).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy.orm import Session

from team_tracker.common.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from team_tracker.common.logging import get_project_logger
from team_tracker.common.security import Actor
from team_tracker.common.time import Clock, get_clock, now_utc
from team_tracker.domain.enums import ChangeType
from team_tracker.storage.models import Team, TeamMember, User
from team_tracker.storage.repositories import (
    TaskRepository,
    TeamMemberRepository,
    TeamRepository,
    UserRepository,
)

from .role_service import is_superadmin_email
from .snapshot_service import record_change

log = get_project_logger()


def _require_admin(actor: Actor) -> None:
    if not actor.is_admin:
        raise ForbiddenError("Операция доступна только администраторам")


# =============================================================================
# USERS
# =============================================================================
def upsert_user(
    session: Session,
    *,
    email: str,
    display_name: str | None = None,
    photo_url: str | None = None,
    clock: Clock | None = None,
) -> User:
    """
    Пользователь по email после входа через провайдера идентичности.
    Адреса из SUPERADMIN_EMAILS получают is_admin автоматически.
    """
    clock = clock or get_clock()
    email = (email or "").strip()
    if not email:
        raise ValidationError("Email обязателен")

    repo = UserRepository(session)
    user = repo.get_by_email(email)
    if user is None:
        now = now_utc(clock)
        user = repo.add(
            User(
                email=email,
                display_name=display_name,
                photo_url=photo_url,
                is_admin=is_superadmin_email(email),
                created_at=now,
                updated_at=now,
            )
        )
        log.info("user_created", extra={"payload": {"user_id": user.id}})
        return user

    changed = False
    if display_name and user.display_name != display_name:
        user.display_name = display_name
        changed = True
    if photo_url and user.photo_url != photo_url:
        user.photo_url = photo_url
        changed = True
    if is_superadmin_email(email) and not user.is_admin:
        user.is_admin = True
        changed = True
    if changed:
        user.updated_at = now_utc(clock)
        session.flush()
    return user


def list_users(session: Session) -> list[User]:
    return UserRepository(session).list_all()


def set_admin(
    session: Session,
    actor: Actor,
    user_id: str,
    *,
    is_admin: bool,
    clock: Clock | None = None,
) -> User:
    """
    Выдать или снять флаг администратора. Адреса из SUPERADMIN_EMAILS
    остаются Superadmin независимо от флага.
    """
    _require_admin(actor)
    user = UserRepository(session).get(user_id)
    if user is None:
        raise NotFoundError("Пользователь не найден", {"user_id": user_id})

    user.is_admin = bool(is_admin)
    user.updated_at = now_utc(clock)
    session.flush()
    log.info(
        "user_admin_changed",
        extra={"payload": {"user_id": user_id, "is_admin": user.is_admin, "by": actor.user_id}},
    )
    return user


# =============================================================================
# TEAMS
# =============================================================================
def get_team(session: Session, team_id: str) -> Team:
    team = TeamRepository(session).get_with_members(team_id)
    if team is None:
        raise NotFoundError("Команда не найдена", {"team_id": team_id})
    return team


def list_teams(session: Session) -> list[Team]:
    return TeamRepository(session).list_all()


def create_team(
    session: Session,
    actor: Actor,
    *,
    name: str,
    default_venue: str | None = None,
    clock: Clock | None = None,
) -> Team:
    _require_admin(actor)
    clock = clock or get_clock()
    name = (name or "").strip()
    if not name:
        raise ValidationError("Название команды обязательно")
    if any(t.name.lower() == name.lower() for t in TeamRepository(session).list_all()):
        raise ConflictError("Команда с таким названием уже есть", {"name": name})

    now = now_utc(clock)
    team = TeamRepository(session).add(
        Team(name=name, default_venue=default_venue, created_at=now, updated_at=now)
    )
    log.info("team_created", extra={"payload": {"team_id": team.id, "user_id": actor.user_id}})
    return team


def update_team(
    session: Session,
    actor: Actor,
    team_id: str,
    changes: Mapping[str, Any],
    *,
    clock: Clock | None = None,
) -> Team:
    _require_admin(actor)
    team = get_team(session, team_id)
    if "name" in changes:
        name = (changes["name"] or "").strip()
        if not name:
            raise ValidationError("Название команды обязательно")
        team.name = name
    if "default_venue" in changes:
        team.default_venue = changes["default_venue"] or None
    team.updated_at = now_utc(clock)
    session.flush()
    return team


# =============================================================================
# TEAM MEMBERS
# =============================================================================
def add_member(
    session: Session,
    actor: Actor,
    *,
    team_id: str,
    user_id: str,
    is_coordinator: bool = False,
    clock: Clock | None = None,
) -> TeamMember:
    _require_admin(actor)
    if TeamRepository(session).get(team_id) is None:
        raise NotFoundError("Команда не найдена", {"team_id": team_id})
    if UserRepository(session).get(user_id) is None:
        raise NotFoundError("Пользователь не найден", {"user_id": user_id})

    repo = TeamMemberRepository(session)
    if repo.get_by_team_and_user(team_id, user_id) is not None:
        raise ConflictError("Пользователь уже состоит в команде", {"team_id": team_id})

    member = repo.add(
        TeamMember(
            team_id=team_id,
            user_id=user_id,
            is_coordinator=is_coordinator,
            created_at=now_utc(clock),
        )
    )
    log.info(
        "team_member_added",
        extra={"payload": {"member_id": member.id, "team_id": team_id, "user_id": user_id}},
    )
    return member


def update_member(
    session: Session,
    actor: Actor,
    member_id: str,
    *,
    is_coordinator: bool,
) -> TeamMember:
    _require_admin(actor)
    member = TeamMemberRepository(session).get(member_id)
    if member is None:
        raise NotFoundError("Участник не найден", {"member_id": member_id})
    member.is_coordinator = is_coordinator
    session.flush()
    return member


def remove_member(
    session: Session,
    actor: Actor,
    member_id: str,
    *,
    clock: Clock | None = None,
) -> None:
    """
    Задачи участника остаются без ответственного. Это изменение задач,
    поэтому каждая из них получает снимок Edited.
    """
    _require_admin(actor)
    clock = clock or get_clock()
    repo = TeamMemberRepository(session)
    member = repo.get(member_id)
    if member is None:
        raise NotFoundError("Участник не найден", {"member_id": member_id})

    tasks = TaskRepository(session)
    for task in tasks.list_by_responsible_member(member_id, include_completed=True):
        tasks.update(task, {"responsible_member_id": None, "updated_at": now_utc(clock)})
        record_change(session, task, ChangeType.edited, actor.user_id, clock=clock)

    repo.delete(member)
    log.info("team_member_removed", extra={"payload": {"member_id": member_id}})
