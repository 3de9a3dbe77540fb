from __future__ import annotations

from datetime import UTC, datetime

import pytest

from team_tracker.common.errors import ValidationError
from team_tracker.contracts.snapshot_payload import (
    TaskSnapshotPayload,
    TaskSnapshotPayloadV1,
    load_snapshot_payload,
    payload_version,
)
from team_tracker.contracts.versions import SNAPSHOT_PAYLOAD_VERSION
from team_tracker.domain.enums import TaskPriority, TaskStatus


def _payload(**overrides) -> TaskSnapshotPayload:
    data = {
        "task_id": "task-1",
        "team_id": "team-1",
        "team_name": "Platform",
        "title": "Починить CI",
        "status": TaskStatus.in_progress,
        "priority": TaskPriority.high,
        "updated_at": datetime(2026, 3, 2, 9, 0, tzinfo=UTC),
        "responsible_member_id": "m-1",
        "responsible_name": "Маша",
    }
    data.update(overrides)
    return TaskSnapshotPayload(**data)


def test_current_payload_is_v1() -> None:
    assert TaskSnapshotPayload is TaskSnapshotPayloadV1
    assert SNAPSHOT_PAYLOAD_VERSION == 1
    assert _payload().schema_version == 1


def test_json_form_uses_canonical_enum_values() -> None:
    raw = _payload().to_json()

    assert raw["schema_version"] == 1
    assert raw["status"] == "In-Progress"
    assert raw["priority"] == "High"
    assert raw["responsible_name"] == "Маша"
    assert isinstance(raw["updated_at"], str)


def test_load_reads_stored_json_back() -> None:
    raw = _payload(notes="заметка").to_json()
    loaded = load_snapshot_payload(raw)

    assert isinstance(loaded, TaskSnapshotPayloadV1)
    assert loaded.notes == "заметка"
    assert loaded.status == TaskStatus.in_progress


def test_unknown_version_is_rejected() -> None:
    raw = _payload().to_json()
    raw["schema_version"] = 99
    with pytest.raises(ValidationError):
        load_snapshot_payload(raw)


def test_missing_version_is_rejected() -> None:
    raw = _payload().to_json()
    raw.pop("schema_version")
    assert payload_version(raw) is None
    with pytest.raises(ValidationError):
        load_snapshot_payload(raw)


def test_broken_v1_payload_is_rejected() -> None:
    raw = _payload().to_json()
    raw["status"] = "Finished"
    with pytest.raises(ValidationError):
        load_snapshot_payload(raw)


def test_payload_is_frozen() -> None:
    p = _payload()
    with pytest.raises(Exception):
        p.title = "другое"  # type: ignore[misc]
