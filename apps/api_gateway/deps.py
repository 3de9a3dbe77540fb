"""
FastAPI Depends.

Сюда выносим:
- проверку авторизации (X-API-Key)
- личность действующего пользователя (X-User-Id / X-User-Role)
- часы (переопределяются в тестах через app.dependency_overrides)
"""

from __future__ import annotations

from fastapi import Depends, Header, HTTPException, Request, status

from team_tracker.common.errors import ErrCode, UnauthorizedError
from team_tracker.common.logging import get_project_logger
from team_tracker.common.security import Actor, AuthContext, parse_role, require_auth
from team_tracker.common.time import Clock, get_clock
from team_tracker.services.role_service import resolve_role
from team_tracker.storage.db import db_session

log = get_project_logger()


def _request_meta(request: Request | None) -> tuple[str, str, str | None]:
    if request is None:
        return "unknown", "UNKNOWN", None
    endpoint = request.url.path
    method = request.method
    client_ip = request.client.host if request.client else None
    return endpoint, method, client_ip


def _audit_deny(
    *,
    request: Request | None,
    status_code: int,
    reason: str,
    error_code: str,
) -> None:
    endpoint, method, client_ip = _request_meta(request)
    log.warning(
        "security_audit_deny",
        extra={
            "payload": {
                "endpoint": endpoint,
                "method": method,
                "status_code": status_code,
                "reason": reason,
                "error_code": error_code,
                "client_ip": client_ip,
            }
        },
    )


def auth_dep(
    request: Request,
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> AuthContext:
    """
    Проверка авторизации для HTTP.
    """
    try:
        return require_auth(x_api_key=x_api_key)
    except UnauthorizedError as e:
        _audit_deny(
            request=request,
            status_code=status.HTTP_401_UNAUTHORIZED,
            reason=e.message,
            error_code=e.code,
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": e.code, "message": e.message},
        ) from e


def actor_dep(
    request: Request,
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    x_user_role: str | None = Header(default=None, alias="X-User-Role"),
    ctx: AuthContext = Depends(auth_dep),
) -> Actor:
    """
    Кто выполняет изменение. Роль доверяем заголовку; без заголовка — считаем по БД.
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        _audit_deny(
            request=request,
            status_code=status.HTTP_401_UNAUTHORIZED,
            reason="missing_user_id",
            error_code=ErrCode.UNAUTHORIZED,
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": ErrCode.UNAUTHORIZED, "message": "Требуется X-User-Id"},
        )

    if x_user_role:
        return Actor(user_id=user_id, role=parse_role(x_user_role))

    with db_session() as s:
        role = resolve_role(s, user_id)
    return Actor(user_id=user_id, role=role)


def clock_dep() -> Clock:
    return get_clock()
