"""
Сервисный слой: роли пользователей.

Роль обычно приходит от провайдера идентичности вместе с запросом;
здесь — вычисление по данным БД, когда её не передали.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from team_tracker.common.config import get_settings, parse_csv
from team_tracker.common.security import Actor
from team_tracker.domain.enums import UserRole
from team_tracker.storage.repositories import TeamMemberRepository, UserRepository


def _superadmin_emails() -> set[str]:
    return {e.lower() for e in parse_csv(get_settings().superadmin_emails)}


def is_superadmin_email(email: str | None) -> bool:
    return bool(email) and email.strip().lower() in _superadmin_emails()


def resolve_role(session: Session, user_id: str) -> UserRole:
    """
    Superadmin > Admin > Coordinator (хотя бы одной команды) > Member.
    Неизвестный пользователь считается Member.
    """
    user = UserRepository(session).get(user_id)
    if user is None:
        return UserRole.member
    if is_superadmin_email(user.email):
        return UserRole.superadmin
    if user.is_admin:
        return UserRole.admin
    if TeamMemberRepository(session).is_coordinator_anywhere(user_id):
        return UserRole.coordinator
    return UserRole.member


def is_coordinator_of_team(session: Session, user_id: str, team_id: str) -> bool:
    member = TeamMemberRepository(session).get_by_team_and_user(team_id, user_id)
    return bool(member and member.is_coordinator)


def is_member_of_team(session: Session, user_id: str, team_id: str) -> bool:
    return TeamMemberRepository(session).get_by_team_and_user(team_id, user_id) is not None


def can_manage_team(session: Session, actor: Actor, team_id: str) -> bool:
    """
    Admin/Superadmin управляют любой командой, Coordinator только своей.
    """
    if actor.is_admin:
        return True
    if actor.role == UserRole.coordinator:
        return is_coordinator_of_team(session, actor.user_id, team_id)
    return False
