"""
Репозитории (DAO слой).

Правила:
- Никакой бизнес-логики
- Только CRUD и запросы
- Репозитории не коммитят: транзакцией владеет db_session()
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy import desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from team_tracker.domain.enums import COMPLETED_STATUSES

from .models import Minutes, Snapshot, Task, Team, TeamMember, User


# =============================================================================
# USER REPOSITORY
# =============================================================================
class UserRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: str) -> User | None:
        return self.session.get(User, user_id)

    def get_by_email(self, email: str) -> User | None:
        return self.session.scalars(
            select(User).where(func.lower(User.email) == (email or "").strip().lower())
        ).one_or_none()

    def add(self, user: User) -> User:
        self.session.add(user)
        self.session.flush()
        return user

    def list_all(self) -> list[User]:
        return list(self.session.scalars(select(User).order_by(User.email)))


# =============================================================================
# TEAM REPOSITORY
# =============================================================================
class TeamRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, team_id: str) -> Team | None:
        return self.session.get(Team, team_id)

    def get_with_members(self, team_id: str) -> Team | None:
        return self.session.scalars(
            select(Team)
            .where(Team.id == team_id)
            .options(selectinload(Team.members).selectinload(TeamMember.user))
        ).one_or_none()

    def list_all(self) -> list[Team]:
        return list(
            self.session.scalars(
                select(Team)
                .options(selectinload(Team.members).selectinload(TeamMember.user))
                .order_by(Team.name)
            )
        )

    def add(self, team: Team) -> Team:
        self.session.add(team)
        self.session.flush()
        return team


# =============================================================================
# TEAM MEMBER REPOSITORY
# =============================================================================
class TeamMemberRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, member_id: str) -> TeamMember | None:
        return self.session.get(TeamMember, member_id)

    def get_by_team_and_user(self, team_id: str, user_id: str) -> TeamMember | None:
        return self.session.scalars(
            select(TeamMember).where(
                TeamMember.team_id == team_id,
                TeamMember.user_id == user_id,
            )
        ).one_or_none()

    def list_by_team(self, team_id: str) -> list[TeamMember]:
        return list(
            self.session.scalars(
                select(TeamMember)
                .where(TeamMember.team_id == team_id)
                .options(selectinload(TeamMember.user))
                .order_by(TeamMember.created_at, TeamMember.id)
            )
        )

    def is_coordinator_anywhere(self, user_id: str) -> bool:
        return (
            self.session.scalar(
                select(func.count())
                .select_from(TeamMember)
                .where(TeamMember.user_id == user_id, TeamMember.is_coordinator.is_(True))
            )
            or 0
        ) > 0

    def add(self, member: TeamMember) -> TeamMember:
        self.session.add(member)
        self.session.flush()
        return member

    def delete(self, member: TeamMember) -> None:
        self.session.delete(member)
        self.session.flush()


# =============================================================================
# TASK REPOSITORY
# =============================================================================
class TaskRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, task_id: str) -> Task | None:
        return self.session.get(Task, task_id)

    def insert(self, task: Task) -> Task:
        self.session.add(task)
        self.session.flush()
        return task

    def update(self, task: Task, fields: Mapping[str, Any]) -> Task:
        for name, value in fields.items():
            setattr(task, name, value)
        self.session.flush()
        return task

    def delete(self, task: Task) -> None:
        self.session.delete(task)
        self.session.flush()

    def list_by_team(self, team_id: str, *, include_completed: bool = False) -> list[Task]:
        query = select(Task).where(Task.team_id == team_id)
        return self._list(query, include_completed=include_completed)

    def list_by_responsible_member(
        self, member_id: str, *, include_completed: bool = False
    ) -> list[Task]:
        query = select(Task).where(Task.responsible_member_id == member_id)
        return self._list(query, include_completed=include_completed)

    def _list(self, query, *, include_completed: bool) -> list[Task]:
        if not include_completed:
            query = query.where(Task.status.not_in(list(COMPLETED_STATUSES)))
        query = query.options(
            selectinload(Task.team),
            selectinload(Task.responsible_member).selectinload(TeamMember.user),
        ).order_by(desc(Task.updated_at), desc(Task.id))
        return list(self.session.scalars(query))


# =============================================================================
# MINUTES REPOSITORY
# =============================================================================
class MinutesRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, minutes_id: str, *, for_update: bool = False) -> Minutes | None:
        query = select(Minutes).where(Minutes.id == minutes_id)
        if for_update:
            query = query.with_for_update()
        return self.session.scalars(query).one_or_none()

    def get_by_team_and_date(
        self, team_id: str, date: str, *, for_update: bool = False
    ) -> Minutes | None:
        query = select(Minutes).where(Minutes.team_id == team_id, Minutes.date == date)
        if for_update:
            query = query.with_for_update()
        # populate_existing: всегда читаем строку из БД, а не из identity map
        return self.session.scalars(
            query.execution_options(populate_existing=True)
        ).one_or_none()

    def try_insert(self, minutes: Minutes) -> bool:
        """
        Вставка в SAVEPOINT.
        False — строка (team_id, date) уже есть (нарушение уникальности),
        внешняя транзакция при этом остаётся живой.
        """
        try:
            with self.session.begin_nested():
                self.session.add(minutes)
                self.session.flush()
        except IntegrityError:
            if minutes in self.session:
                self.session.expunge(minutes)
            return False
        return True

    def list_by_team(self, team_id: str, *, limit: int | None = None) -> list[Minutes]:
        query = (
            select(Minutes)
            .where(Minutes.team_id == team_id)
            .order_by(desc(Minutes.date))
        )
        if limit:
            query = query.limit(max(1, limit))
        return list(self.session.scalars(query))


# =============================================================================
# SNAPSHOT REPOSITORY
# =============================================================================
class SnapshotRepository:
    """
    Только добавление и чтение. Обновления/удаления нет намеренно.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def append(self, snapshot: Snapshot) -> Snapshot:
        self.session.add(snapshot)
        self.session.flush()
        return snapshot

    def latest_recorded_at(self, minutes_id: str):
        return self.session.scalar(
            select(func.max(Snapshot.recorded_at)).where(Snapshot.minutes_id == minutes_id)
        )

    def list_by_minutes(self, minutes_id: str) -> list[Snapshot]:
        return list(
            self.session.scalars(
                select(Snapshot)
                .where(Snapshot.minutes_id == minutes_id)
                .order_by(desc(Snapshot.recorded_at), desc(Snapshot.id))
            )
        )

    def list_by_minutes_ids(self, minutes_ids: list[str]) -> dict[str, list[Snapshot]]:
        out: dict[str, list[Snapshot]] = {mid: [] for mid in minutes_ids}
        if not minutes_ids:
            return out
        rows = self.session.scalars(
            select(Snapshot)
            .where(Snapshot.minutes_id.in_(minutes_ids))
            .order_by(desc(Snapshot.recorded_at), desc(Snapshot.id))
        )
        for snap in rows:
            out[snap.minutes_id].append(snap)
        return out

    def list_by_task(self, task_id: str) -> list[Snapshot]:
        return list(
            self.session.scalars(
                select(Snapshot)
                .where(Snapshot.task_id == task_id)
                .order_by(Snapshot.recorded_at, Snapshot.id)
            )
        )
