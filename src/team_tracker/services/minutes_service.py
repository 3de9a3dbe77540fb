"""
Сервисный слой: протоколы встреч (minutes).

Назначение:
- найти или создать протокол команды за дату ("сегодня" по инжектируемым часам)
- явное редактирование деталей встречи (место, присутствующие)

Гарантия "ровно один протокол на (team, date)" держится на уникальном
ограничении в БД: вставляем в SAVEPOINT, при конфликте перечитываем строку,
созданную параллельным обработчиком. Никакого кэша между запросами.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy.orm import Session

from team_tracker.common.errors import (
    ForbiddenError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from team_tracker.common.logging import get_project_logger
from team_tracker.common.metrics import record_minutes_conflict, record_minutes_created
from team_tracker.common.security import Actor
from team_tracker.common.time import Clock, get_clock, now_utc, parse_date_iso, today_iso
from team_tracker.storage.models import Minutes
from team_tracker.storage.repositories import (
    MinutesRepository,
    TeamMemberRepository,
    TeamRepository,
)

from .role_service import can_manage_team

log = get_project_logger()

_MINUTES_EDITABLE = ("venue", "attendance")


def normalize_date(raw: str) -> str:
    try:
        return parse_date_iso(raw)
    except ValueError as e:
        raise ValidationError("Дата должна быть в формате YYYY-MM-DD", {"date": raw}) from e


# =============================================================================
# LOCATE OR CREATE
# =============================================================================
def resolve_minutes(
    session: Session,
    *,
    team_id: str,
    date: str,
    source: str = "implicit",
) -> Minutes:
    """
    Возвращает протокол (team_id, date), создавая его при отсутствии.

    - место по умолчанию берётся из настроек команды, присутствие пустое
    - строка протокола блокируется (FOR UPDATE) до конца транзакции, чтобы
      снимки одного протокола дописывались строго по очереди
    - NotFoundError, если команды нет; прочие ошибки хранилища пробрасываются
    """
    team = TeamRepository(session).get(team_id)
    if team is None:
        raise NotFoundError("Команда не найдена", {"team_id": team_id})

    repo = MinutesRepository(session)
    existing = repo.get_by_team_and_date(team_id, date, for_update=True)
    if existing is not None:
        return existing

    candidate = Minutes(
        team_id=team_id,
        date=date,
        venue=team.default_venue,
        attendance=[],
    )
    if repo.try_insert(candidate):
        record_minutes_created(source=source)
        log.info(
            "minutes_created",
            extra={"payload": {"minutes_id": candidate.id, "team_id": team_id, "date": date}},
        )
        return candidate

    # Кто-то создал протокол между нашим чтением и вставкой, берём его строку
    record_minutes_conflict()
    log.info(
        "minutes_create_conflict",
        extra={"payload": {"team_id": team_id, "date": date}},
    )
    existing = repo.get_by_team_and_date(team_id, date, for_update=True)
    if existing is None:
        raise StorageError(
            "Протокол не найден после конфликта вставки",
            {"team_id": team_id, "date": date},
        )
    return existing


def resolve_today_minutes(
    session: Session,
    team_id: str,
    *,
    clock: Clock | None = None,
) -> Minutes:
    return resolve_minutes(session, team_id=team_id, date=today_iso(clock))


# =============================================================================
# READ
# =============================================================================
def get_minutes_by_team_and_date(session: Session, *, team_id: str, date: str) -> Minutes:
    """
    Только чтение: отсутствующий протокол не создаётся.
    """
    minutes = MinutesRepository(session).get_by_team_and_date(team_id, normalize_date(date))
    if minutes is None:
        raise NotFoundError("Протокол не найден", {"team_id": team_id, "date": date})
    return minutes


# =============================================================================
# EXPLICIT EDIT
# =============================================================================
def _require_team_manager(session: Session, actor: Actor, team_id: str) -> None:
    if can_manage_team(session, actor, team_id):
        return
    log.warning(
        "access_denied",
        extra={"payload": {"user_id": actor.user_id, "role": actor.role.value, "team_id": team_id}},
    )
    raise ForbiddenError("Нет прав на изменение протоколов этой команды", {"team_id": team_id})


def _validate_attendance(session: Session, team_id: str, attendance: Any) -> list[str]:
    if attendance is None:
        return []
    if not isinstance(attendance, list | tuple):
        raise ValidationError("attendance должен быть списком id участников")

    member_ids = {m.id for m in TeamMemberRepository(session).list_by_team(team_id)}
    out: list[str] = []
    for mid in attendance:
        mid = str(mid)
        if mid not in member_ids:
            raise ValidationError(
                "Участник не состоит в команде",
                {"team_id": team_id, "member_id": mid},
            )
        if mid not in out:
            out.append(mid)
    return out


def _apply_details(
    session: Session,
    minutes: Minutes,
    changes: Mapping[str, Any],
    clock: Clock,
) -> Minutes:
    unknown = sorted(set(changes) - set(_MINUTES_EDITABLE))
    if unknown:
        raise ValidationError("Неизвестные поля протокола", {"fields": unknown})

    if "venue" in changes:
        venue = changes["venue"]
        minutes.venue = venue.strip() if isinstance(venue, str) and venue.strip() else None
    if "attendance" in changes:
        minutes.attendance = _validate_attendance(session, minutes.team_id, changes["attendance"])

    minutes.updated_at = now_utc(clock)
    session.flush()
    log.info(
        "minutes_updated",
        extra={"payload": {"minutes_id": minutes.id, "fields": sorted(changes)}},
    )
    return minutes


def update_meeting_details(
    session: Session,
    actor: Actor,
    *,
    team_id: str,
    date: str,
    changes: Mapping[str, Any],
    clock: Clock | None = None,
) -> Minutes:
    """
    Явное создание/редактирование протокола по (team, date).
    Доступно Admin/Superadmin и координатору этой команды.
    """
    clock = clock or get_clock()
    date = normalize_date(date)
    _require_team_manager(session, actor, team_id)
    minutes = resolve_minutes(
        session,
        team_id=team_id,
        date=date,
        source="explicit",
    )
    return _apply_details(session, minutes, changes, clock)


def update_minutes(
    session: Session,
    actor: Actor,
    minutes_id: str,
    changes: Mapping[str, Any],
    *,
    clock: Clock | None = None,
) -> Minutes:
    minutes = MinutesRepository(session).get(minutes_id, for_update=True)
    if minutes is None:
        raise NotFoundError("Протокол не найден", {"minutes_id": minutes_id})
    _require_team_manager(session, actor, minutes.team_id)
    return _apply_details(session, minutes, changes, clock or get_clock())
