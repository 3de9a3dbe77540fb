"""
Версии контрактов (HTTP / снимки задач).

Назначение:
- единая точка истинных версий
- удобная проверка совместимости
"""

from __future__ import annotations

HTTP_API_VERSION = "v1"
SNAPSHOT_PAYLOAD_VERSION = 1
