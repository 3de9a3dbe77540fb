"""
Схлопывание снимков для ленты "Notes".

Чистые функции без доступа к БД.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any, Protocol, TypeVar

from team_tracker.common.time import ensure_aware


class SnapshotLike(Protocol):
    id: Any
    task_id: str
    recorded_at: datetime


S = TypeVar("S", bound=SnapshotLike)


def snapshot_order_key(snapshot: SnapshotLike) -> tuple[datetime, int]:
    """
    Порядок снимков: recorded_at, при равенстве порядок вставки (id).
    """
    return ensure_aware(snapshot.recorded_at), int(snapshot.id)


def collapse_latest_per_task(snapshots: Iterable[S]) -> dict[str, S]:
    """
    Оставляет по одному (самому свежему) снимку на задачу.

    Победитель: максимальный recorded_at; при равенстве позже вставленный.
    Результат упорядочен от новых к старым. Повторное применение ничего не меняет.
    """
    latest: dict[str, S] = {}
    for snap in snapshots:
        current = latest.get(snap.task_id)
        if current is None or snapshot_order_key(snap) > snapshot_order_key(current):
            latest[snap.task_id] = snap

    ordered = sorted(latest.values(), key=snapshot_order_key, reverse=True)
    return {snap.task_id: snap for snap in ordered}
