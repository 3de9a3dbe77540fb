"""
ORM-модели базы данных.

Назначение:
- Пользователи, команды, участники команд
- Задачи (текущее состояние)
- Протоколы встреч (minutes) — один на команду в день
- Снимки задач (snapshots) — неизменяемый журнал изменений
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from team_tracker.common.errors import ConflictError
from team_tracker.common.ids import new_uuid
from team_tracker.common.time import utc_now
from team_tracker.domain.enums import (
    ChangeType,
    TaskPriority,
    TaskStatus,
    enum_values,
)


# =============================================================================
# BASE
# =============================================================================
class Base(DeclarativeBase):
    pass


# =============================================================================
# USERS / TEAMS
# =============================================================================
class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_uuid)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)


class Team(Base):
    __tablename__ = "teams"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_uuid)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    default_venue: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)

    members: Mapped[list[TeamMember]] = relationship(
        back_populates="team",
        cascade="all, delete-orphan",
    )


class TeamMember(Base):
    """
    Членство пользователя в команде. Роль координатора задаётся на команду.
    """

    __tablename__ = "team_members"
    __table_args__ = (UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_uuid)
    team_id: Mapped[str] = mapped_column(
        ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    is_coordinator: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)

    team: Mapped[Team] = relationship(back_populates="members")
    user: Mapped[User] = relationship()


# =============================================================================
# TASKS
# =============================================================================
class Task(Base):
    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_uuid)
    team_id: Mapped[str] = mapped_column(
        ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True
    )
    responsible_member_id: Mapped[str | None] = mapped_column(
        ForeignKey("team_members.id", ondelete="SET NULL"), nullable=True, index=True
    )

    title: Mapped[str] = mapped_column(String(120), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[TaskStatus] = mapped_column(
        Enum(TaskStatus, name="task_status", values_callable=enum_values),
        default=TaskStatus.open,
        nullable=False,
    )
    priority: Mapped[TaskPriority] = mapped_column(
        Enum(TaskPriority, name="task_priority", values_callable=enum_values),
        default=TaskPriority.medium,
        nullable=False,
    )
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)

    team: Mapped[Team] = relationship()
    responsible_member: Mapped[TeamMember | None] = relationship()


# =============================================================================
# MINUTES
# =============================================================================
class Minutes(Base):
    """
    Протокол встречи команды за календарный день.
    Пара (team_id, date) уникальна на уровне БД, это источник истины
    для "ровно один протокол в день" при параллельной записи.
    """

    __tablename__ = "minutes"
    __table_args__ = (UniqueConstraint("team_id", "date", name="uq_minutes_team_date"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_uuid)
    team_id: Mapped[str] = mapped_column(
        ForeignKey("teams.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[str] = mapped_column(String(10), nullable=False)  # YYYY-MM-DD
    venue: Mapped[str | None] = mapped_column(Text, nullable=True)
    attendance: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)

    team: Mapped[Team] = relationship()


# =============================================================================
# SNAPSHOTS
# =============================================================================
class Snapshot(Base):
    """
    Неизменяемая запись журнала: состояние задачи в момент изменения.
    id — автоинкремент, он же порядок вставки (разрешает равные recorded_at).
    task_id — мягкая ссылка: задача может быть удалена, снимок остаётся.
    """

    __tablename__ = "snapshots"
    __table_args__ = (
        Index("ix_snapshots_minutes_recorded", "minutes_id", "recorded_at", "id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    minutes_id: Mapped[str] = mapped_column(
        ForeignKey("minutes.id", ondelete="CASCADE"), nullable=False
    )
    task_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    change_type: Mapped[ChangeType] = mapped_column(
        Enum(ChangeType, name="change_type", values_callable=enum_values),
        nullable=False,
    )

    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    task_updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    payload_version: Mapped[int] = mapped_column(Integer, nullable=False)

    actor_user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)


# Журнал только дописывается: ORM не даёт менять или удалять снимки
@event.listens_for(Snapshot, "before_update")
def _forbid_snapshot_update(mapper, connection, target: Snapshot) -> None:
    raise ConflictError("Снимок задачи неизменяем", {"snapshot_id": target.id})


@event.listens_for(Snapshot, "before_delete")
def _forbid_snapshot_delete(mapper, connection, target: Snapshot) -> None:
    raise ConflictError("Снимок задачи нельзя удалить", {"snapshot_id": target.id})
