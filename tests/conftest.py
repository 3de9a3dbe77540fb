from __future__ import annotations

import os
import tempfile
from datetime import UTC, datetime
from types import SimpleNamespace

import pytest

# Настройки читаются при первом импорте team_tracker: окружение задаём до него
_DB_DIR = tempfile.mkdtemp(prefix="team-tracker-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/tracker.db"
os.environ["APP_ENV"] = "dev"
os.environ["AUTH_MODE"] = "none"
os.environ["DB_AUTO_CREATE"] = "false"
os.environ["MINUTES_TIMEZONE"] = "UTC"
os.environ["LOG_FORMAT"] = "text"

from team_tracker.common.config import get_settings  # noqa: E402
from team_tracker.common.security import Actor  # noqa: E402
from team_tracker.common.time import FixedClock  # noqa: E402
from team_tracker.domain.enums import UserRole  # noqa: E402
from team_tracker.storage.db import db_session, engine  # noqa: E402
from team_tracker.storage.models import Base, Team, TeamMember, User  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture()
def tracker_settings():
    s = get_settings()
    keys = [
        "app_env",
        "auth_mode",
        "api_keys",
        "superadmin_emails",
        "minutes_timezone",
        "member_can_edit_priority",
        "task_title_max_len",
        "cors_allowed_origins",
        "cors_allow_credentials",
    ]
    snapshot = {k: getattr(s, k) for k in keys}
    try:
        yield s
    finally:
        for k, v in snapshot.items():
            setattr(s, k, v)


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(datetime(2026, 3, 2, 9, 0, tzinfo=UTC))


@pytest.fixture()
def seed(clock):
    """
    Команда "Platform": координатор Коля, участники Маша и Петя.
    Отдельно — команда "Data" без участников и администратор.
    """
    now = clock.now()
    with db_session() as s:
        admin = User(email="admin@example.com", display_name="Админ", is_admin=True)
        coord = User(email="kolya@example.com", display_name="Коля")
        masha = User(email="masha@example.com", display_name="Маша")
        petya = User(email="petya@example.com", display_name="Петя")
        outsider = User(email="outsider@example.com", display_name="Чужой")
        s.add_all([admin, coord, masha, petya, outsider])
        s.flush()

        team = Team(name="Platform", default_venue="Переговорка 3", created_at=now, updated_at=now)
        other = Team(name="Data", created_at=now, updated_at=now)
        s.add_all([team, other])
        s.flush()

        coord_m = TeamMember(team_id=team.id, user_id=coord.id, is_coordinator=True)
        masha_m = TeamMember(team_id=team.id, user_id=masha.id)
        petya_m = TeamMember(team_id=team.id, user_id=petya.id)
        s.add_all([coord_m, masha_m, petya_m])
        s.flush()

        return SimpleNamespace(
            team_id=team.id,
            other_team_id=other.id,
            admin_id=admin.id,
            coordinator_id=coord.id,
            masha_id=masha.id,
            petya_id=petya.id,
            outsider_id=outsider.id,
            coordinator_member_id=coord_m.id,
            masha_member_id=masha_m.id,
            petya_member_id=petya_m.id,
        )


@pytest.fixture()
def actors(seed):
    return SimpleNamespace(
        admin=Actor(user_id=seed.admin_id, role=UserRole.admin),
        coordinator=Actor(user_id=seed.coordinator_id, role=UserRole.coordinator),
        masha=Actor(user_id=seed.masha_id, role=UserRole.member),
        petya=Actor(user_id=seed.petya_id, role=UserRole.member),
        outsider=Actor(user_id=seed.outsider_id, role=UserRole.member),
    )
