from __future__ import annotations

from team_tracker.domain.enums import UserRole
from team_tracker.services.role_service import (
    is_coordinator_of_team,
    is_member_of_team,
    is_superadmin_email,
    resolve_role,
)
from team_tracker.storage.db import db_session


def test_resolve_role_order(seed, tracker_settings) -> None:
    tracker_settings.superadmin_emails = "Admin@Example.com"
    with db_session() as s:
        assert resolve_role(s, seed.admin_id) == UserRole.superadmin
        assert resolve_role(s, seed.coordinator_id) == UserRole.coordinator
        assert resolve_role(s, seed.masha_id) == UserRole.member
        assert resolve_role(s, "unknown-user") == UserRole.member

    tracker_settings.superadmin_emails = ""
    with db_session() as s:
        assert resolve_role(s, seed.admin_id) == UserRole.admin


def test_team_scoped_checks(seed) -> None:
    with db_session() as s:
        assert is_coordinator_of_team(s, seed.coordinator_id, seed.team_id)
        assert not is_coordinator_of_team(s, seed.coordinator_id, seed.other_team_id)
        assert is_member_of_team(s, seed.masha_id, seed.team_id)
        assert not is_member_of_team(s, seed.outsider_id, seed.team_id)


def test_superadmin_email_match(tracker_settings) -> None:
    tracker_settings.superadmin_emails = "a@x.io, b@x.io"
    assert is_superadmin_email(" B@x.io ")
    assert not is_superadmin_email("c@x.io")
    assert not is_superadmin_email(None)
