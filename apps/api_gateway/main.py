"""
API Gateway (FastAPI).

Функции:
- /health
- /metrics
- HTTP API для пользователей, команд, задач и протоколов встреч

Архитектурно:
- каждая запись задачи -> снимок в сегодняшний протокол команды, в одной транзакции
- ошибки приложения (AppError) -> единый JSON {"detail": {"code", "message", "details"}}
"""

from __future__ import annotations

from typing import Any

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from apps.api_gateway.routers.minutes import router as minutes_router
from apps.api_gateway.routers.tasks import router as tasks_router
from apps.api_gateway.routers.teams import router as teams_router
from apps.api_gateway.routers.users import router as users_router
from team_tracker.common.config import get_settings, is_prod_env, parse_csv
from team_tracker.common.errors import AppError, ErrCode
from team_tracker.common.logging import get_project_logger
from team_tracker.common.metrics import setup_metrics_endpoint
from team_tracker.common.observability import setup_observability
from team_tracker.storage.db import init_db

log = get_project_logger()

_STATUS_BY_CODE: dict[str, int] = {
    ErrCode.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrCode.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrCode.CONFLICT: status.HTTP_409_CONFLICT,
    ErrCode.DB_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrCode.STORAGE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _cors_params() -> tuple[list[str], bool]:
    settings = get_settings()
    allow_origins = sorted(parse_csv(settings.cors_allowed_origins)) or ["*"]
    allow_credentials = bool(settings.cors_allow_credentials)

    if is_prod_env(settings.app_env) and "*" in allow_origins:
        raise RuntimeError("CORS wildcard '*' запрещён в APP_ENV=prod")

    # '*' нельзя использовать вместе с credentials=true
    if "*" in allow_origins:
        allow_credentials = False

    return allow_origins, allow_credentials


def status_for_error(err: AppError) -> int:
    return _STATUS_BY_CODE.get(err.code, status.HTTP_500_INTERNAL_SERVER_ERROR)


def _create_app() -> FastAPI:
    app = FastAPI(title="Team Tracker", version="0.1.0")
    allow_origins, allow_credentials = _cors_params()

    # CORS (настраивается через ENV; в prod wildcard запрещён)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=allow_credentials,
    )

    setup_metrics_endpoint(app, service=get_settings().service_name)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        status_code = status_for_error(exc)
        level = log.error if status_code >= 500 else log.info
        level(
            "request_failed",
            extra={
                "payload": {
                    "endpoint": request.url.path,
                    "method": request.method,
                    "status_code": status_code,
                    "error_code": exc.code,
                }
            },
        )
        return JSONResponse(
            status_code=status_code,
            content={
                "detail": {
                    "code": exc.code,
                    "message": exc.message,
                    "details": exc.details or {},
                }
            },
        )

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {"ok": True}

    app.include_router(users_router, prefix="/v1")
    app.include_router(teams_router, prefix="/v1")
    app.include_router(tasks_router, prefix="/v1")
    app.include_router(minutes_router, prefix="/v1")

    return app


setup_observability()

# Автосоздание таблиц в dev (чтобы проект стартовал без ручных миграций)
if get_settings().db_auto_create:
    init_db()
log.info("db_ready")

app = _create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_config=None)
