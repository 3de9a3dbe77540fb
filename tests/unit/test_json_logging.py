from __future__ import annotations

import json
import logging

from team_tracker.common.logging import AUDIT_LOGGER_NAME, JsonFormatter


def _record(name: str, payload: dict) -> logging.LogRecord:
    record = logging.LogRecord(
        name=name,
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="snapshot_recorded",
        args=(),
        exc_info=None,
    )
    record.payload = payload
    return record


def test_audit_record_promotes_minutes_date_and_change_type() -> None:
    line = JsonFormatter().format(
        _record(
            AUDIT_LOGGER_NAME,
            {"minutes_date": "2026-03-02", "change_type": "Edited", "task_id": "t-1"},
        )
    )
    data = json.loads(line)

    assert data["logger"] == AUDIT_LOGGER_NAME
    assert data["minutes_date"] == "2026-03-02"
    assert data["change_type"] == "Edited"
    assert data["payload"]["task_id"] == "t-1"


def test_project_record_keeps_payload_nested_only() -> None:
    line = JsonFormatter().format(_record("team-tracker", {"minutes_date": "2026-03-02"}))
    data = json.loads(line)

    assert "minutes_date" not in data
    assert data["payload"] == {"minutes_date": "2026-03-02"}
