"""
Сервисный слой: лента "Notes" (протоколы + снимки).

Только чтение, состояние не меняется.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from team_tracker.common.errors import NotFoundError
from team_tracker.domain.notes import collapse_latest_per_task
from team_tracker.storage.models import Minutes, Snapshot, Team
from team_tracker.storage.repositories import (
    MinutesRepository,
    SnapshotRepository,
    TeamRepository,
)


@dataclass
class MinutesWithSnapshots:
    minutes: Minutes
    team: Team
    snapshots: list[Snapshot]


def list_minutes_for_team(
    session: Session,
    team_id: str,
    *,
    latest_only: bool = False,
    limit: int | None = None,
) -> list[MinutesWithSnapshots]:
    """
    Протоколы команды от новых дат к старым, в каждом снимки от новых к старым.

    latest_only=True схлопывает снимки каждого протокола до последнего на задачу
    (то, что показывает UI); по умолчанию список полный.
    limit ограничивает число самых свежих протоколов; без него возвращаются все.
    """
    team = TeamRepository(session).get(team_id)
    if team is None:
        raise NotFoundError("Команда не найдена", {"team_id": team_id})

    minutes = MinutesRepository(session).list_by_team(team_id, limit=limit)
    by_minutes = SnapshotRepository(session).list_by_minutes_ids([m.id for m in minutes])

    out: list[MinutesWithSnapshots] = []
    for m in minutes:
        snapshots = by_minutes.get(m.id, [])
        if latest_only:
            snapshots = list(collapse_latest_per_task(snapshots).values())
        out.append(MinutesWithSnapshots(minutes=m, team=team, snapshots=snapshots))
    return out
