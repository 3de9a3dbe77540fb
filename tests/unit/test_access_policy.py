from __future__ import annotations

from types import SimpleNamespace

import pytest

from team_tracker.common.errors import ForbiddenError, ValidationError
from team_tracker.domain.access_policy import (
    TASK_MUTABLE_FIELDS,
    allowed_fields_for,
    filter_mutable_fields,
)
from team_tracker.domain.enums import TaskPriority, TaskStatus, UserRole

TASK = SimpleNamespace(id="task-1")


def test_member_keeps_only_status_and_drops_title() -> None:
    out = filter_mutable_fields(UserRole.member, TASK, {"title": "X", "status": "Done"})
    assert out.fields == {"status": TaskStatus.done}
    assert out.dropped == ["title"]


def test_member_can_edit_notes() -> None:
    out = filter_mutable_fields(UserRole.member, TASK, {"notes": "обновил"})
    assert out.fields == {"notes": "обновил"}
    assert out.dropped == []


def test_member_only_forbidden_fields_raises() -> None:
    with pytest.raises(ForbiddenError):
        filter_mutable_fields(UserRole.member, TASK, {"title": "X", "due_date": None})


def test_empty_request_raises_forbidden() -> None:
    with pytest.raises(ForbiddenError):
        filter_mutable_fields(UserRole.coordinator, TASK, {})


@pytest.mark.parametrize("role", [UserRole.coordinator, UserRole.admin, UserRole.superadmin])
def test_privileged_roles_get_all_fields(role) -> None:
    assert allowed_fields_for(role) == TASK_MUTABLE_FIELDS

    out = filter_mutable_fields(role, TASK, {"title": "Новое", "priority": "High"})
    assert out.fields == {"title": "Новое", "priority": TaskPriority.high}
    assert out.dropped == []


def test_unknown_fields_are_dropped_silently() -> None:
    out = filter_mutable_fields(UserRole.admin, TASK, {"title": "A", "team_id": "t-2"})
    assert out.fields == {"title": "A"}
    assert out.dropped == ["team_id"]


def test_invalid_status_raises_validation() -> None:
    with pytest.raises(ValidationError):
        filter_mutable_fields(UserRole.member, TASK, {"status": "Finished"})


def test_status_is_case_sensitive() -> None:
    with pytest.raises(ValidationError):
        filter_mutable_fields(UserRole.coordinator, TASK, {"status": "done"})


def test_invalid_priority_raises_validation() -> None:
    with pytest.raises(ValidationError):
        filter_mutable_fields(UserRole.coordinator, TASK, {"priority": "Urgent"})


def test_member_priority_follows_setting(tracker_settings) -> None:
    tracker_settings.member_can_edit_priority = True
    out = filter_mutable_fields(UserRole.member, TASK, {"priority": "Low"})
    assert out.fields == {"priority": TaskPriority.low}

    tracker_settings.member_can_edit_priority = False
    assert "priority" not in allowed_fields_for(UserRole.member)
    with pytest.raises(ForbiddenError):
        filter_mutable_fields(UserRole.member, TASK, {"priority": "Low"})
