"""
Утилиты времени.

Назначение:
- единый формат времени (aware datetime, UTC)
- инжектируемые часы, чтобы тесты фиксировали "сегодня"
- раскладка по календарным датам в одной явно заданной таймзоне
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from team_tracker.common.config import get_settings


def utc_now() -> datetime:
    """
    Текущее время в UTC (datetime).
    """
    return datetime.now(UTC)


def ensure_aware(value: datetime) -> datetime:
    """
    SQLite отдаёт naive datetime, считаем такие значения UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        return utc_now()


@dataclass
class FixedClock:
    """
    Часы для тестов: стоят на месте, пока их не сдвинут через advance().
    """

    current: datetime
    step: timedelta = field(default_factory=timedelta)

    def now(self) -> datetime:
        value = ensure_aware(self.current)
        if self.step:
            self.current = value + self.step
        return value

    def advance(self, delta: timedelta) -> None:
        self.current = ensure_aware(self.current) + delta


_SYSTEM_CLOCK = SystemClock()


def get_clock() -> Clock:
    return _SYSTEM_CLOCK


def now_utc(clock: Clock | None = None) -> datetime:
    """
    Текущий момент по часам в UTC. Всё, что пишется в БД, берётся отсюда:
    SQLite не хранит смещение, и прочитанное значение считается UTC.
    """
    return ensure_aware((clock or get_clock()).now()).astimezone(UTC)


def minutes_tz() -> ZoneInfo:
    name = (get_settings().minutes_timezone or "UTC").strip() or "UTC"
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError as e:
        raise RuntimeError(f"Unknown MINUTES_TIMEZONE: {name}") from e


def local_date_iso(moment: datetime, tz: ZoneInfo | None = None) -> str:
    """
    Календарная дата момента в таймзоне протоколов: YYYY-MM-DD.
    """
    return ensure_aware(moment).astimezone(tz or minutes_tz()).date().isoformat()


def today_iso(clock: Clock | None = None) -> str:
    return local_date_iso((clock or get_clock()).now())


def parse_date_iso(raw: str) -> str:
    """
    Нормализует строку даты к YYYY-MM-DD. ValueError на мусор.
    """
    return datetime.strptime((raw or "").strip(), "%Y-%m-%d").date().isoformat()
