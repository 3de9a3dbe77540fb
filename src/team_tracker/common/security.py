"""
Утилиты безопасности и авторизации.

Поддерживаемые режимы (AUTH_MODE):
- api_key — проверка X-API-Key
- none    — без авторизации (ТОЛЬКО dev)

Личность действующего пользователя (user_id + роль) приходит от внешнего
провайдера идентичности и здесь не перепроверяется.
"""

from __future__ import annotations

from dataclasses import dataclass

from team_tracker.domain.enums import UserRole

from .config import get_settings, is_prod_env, parse_csv
from .errors import UnauthorizedError, ValidationError


@dataclass(frozen=True)
class AuthContext:
    subject: str
    auth_type: str


@dataclass(frozen=True)
class Actor:
    """
    Кто выполняет изменение: id пользователя и его роль.
    """

    user_id: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role in {UserRole.admin, UserRole.superadmin}


def require_auth(*, x_api_key: str | None) -> AuthContext:
    """
    Проверка авторизации запроса:
    - AUTH_MODE=none: без проверки (dev)
    - AUTH_MODE=api_key: только X-API-Key из API_KEYS
    """
    settings = get_settings()
    mode = (settings.auth_mode or "api_key").lower().strip()

    if mode == "none":
        if is_prod_env(settings.app_env):
            raise UnauthorizedError("AUTH_MODE=none запрещён в APP_ENV=prod")
        return AuthContext(subject="anonymous", auth_type="none")

    if mode != "api_key":
        raise UnauthorizedError("Неизвестный режим авторизации")

    keys = parse_csv(settings.api_keys)
    if not (x_api_key and x_api_key in keys):
        raise UnauthorizedError("Неверный API ключ")
    return AuthContext(subject="user", auth_type="api_key")


def parse_role(raw: str | None) -> UserRole:
    """
    Роль из заголовка. Сравнение без учёта регистра: "member" == "Member".
    """
    value = (raw or "").strip().lower()
    for role in UserRole:
        if role.value.lower() == value:
            return role
    raise ValidationError("Неизвестная роль", {"role": raw})
