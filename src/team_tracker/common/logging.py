"""
Логирование проекта.

- логирование в stdout (Docker-friendly)
- JSON по умолчанию, текстовый формат через LOG_FORMAT=text
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from team_tracker.common.config import get_settings

AUDIT_LOGGER_NAME = "team-tracker.audit"

# Поля снимка, которые поднимаются на верхний уровень JSON для записей аудита
_AUDIT_TOP_LEVEL_KEYS = ("minutes_date", "change_type")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        extra_payload = getattr(record, "payload", None)
        if isinstance(extra_payload, dict):
            payload["payload"] = extra_payload
            if record.name == AUDIT_LOGGER_NAME:
                for key in _AUDIT_TOP_LEVEL_KEYS:
                    if key in extra_payload:
                        payload[key] = extra_payload[key]
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _build_formatter() -> logging.Formatter:
    s = get_settings()
    if (s.log_format or "").lower() == "text":
        return logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    return JsonFormatter()


def setup_logging() -> None:
    s = get_settings()
    root = logging.getLogger()
    level = getattr(logging, (s.log_level or "INFO").upper(), logging.INFO)
    root.setLevel(level)

    # Не плодим хэндлеры при повторном вызове
    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(_build_formatter())
    root.addHandler(handler)

    logging.getLogger("uvicorn.error").setLevel(level)
    logging.getLogger("uvicorn.access").setLevel(level)


def get_project_logger(name: str = "team-tracker") -> logging.Logger:
    return logging.getLogger(name)


def get_audit_logger() -> logging.Logger:
    """
    Отдельный логгер для журнала изменений задач (удобно фильтровать/маршрутизировать).
    """
    return logging.getLogger(AUDIT_LOGGER_NAME)
