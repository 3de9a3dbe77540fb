"""
Генерация идентификаторов.

Назначение:
- id пользователей, команд, участников, задач и протоколов
"""

from __future__ import annotations

import uuid


def new_uuid() -> str:
    """UUIDv4 строкой."""
    return str(uuid.uuid4())
