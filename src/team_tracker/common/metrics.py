"""
Метрики Prometheus для сервиса.

Назначение:
- Экспорт /metrics
- HTTP счётчики и гистограммы
- Счётчики журнала изменений: снимки, создание протоколов, конфликты вставки
"""

from __future__ import annotations

import time

from fastapi import FastAPI, Request
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# =============================================================================
# СЧЁТЧИКИ И МЕТРИКИ
# =============================================================================

# Общее количество HTTP-запросов
REQUESTS_TOTAL = Counter(
    "tracker_requests_total",
    "Общее количество HTTP запросов",
    ["service", "route", "method", "status"],
)

HTTP_REQUEST_LATENCY_MS = Histogram(
    "tracker_http_request_latency_ms",
    "Задержка HTTP запроса (мс)",
    ["service", "route", "method"],
    buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
)

SNAPSHOTS_RECORDED_TOTAL = Counter(
    "tracker_snapshots_recorded_total",
    "Количество записанных снимков задач",
    ["change_type"],
)

MINUTES_CREATED_TOTAL = Counter(
    "tracker_minutes_created_total",
    "Количество созданных протоколов (team+date)",
    ["source"],
)

# Параллельный обработчик успел создать протокол раньше нас
MINUTES_CREATE_CONFLICTS_TOTAL = Counter(
    "tracker_minutes_create_conflicts_total",
    "Конфликты уникальности при создании протокола (разрешены перечитыванием)",
)


def record_snapshot(change_type: str) -> None:
    SNAPSHOTS_RECORDED_TOTAL.labels(change_type=change_type).inc()


def record_minutes_created(*, source: str) -> None:
    MINUTES_CREATED_TOTAL.labels(source=source).inc()


def record_minutes_conflict() -> None:
    MINUTES_CREATE_CONFLICTS_TOTAL.inc()


# =============================================================================
# ENDPOINT /metrics
# =============================================================================
def setup_metrics_endpoint(app: FastAPI, *, service: str = "api-gateway") -> None:
    """
    Регистрирует endpoint /metrics для Prometheus.
    """

    @app.middleware("http")
    async def http_metrics(request: Request, call_next):
        route = request.url.path
        method = request.method
        started = time.perf_counter()

        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        status_code = str(response.status_code)

        REQUESTS_TOTAL.labels(
            service=service,
            route=route,
            method=method,
            status=status_code,
        ).inc()
        HTTP_REQUEST_LATENCY_MS.labels(
            service=service,
            route=route,
            method=method,
        ).observe(elapsed_ms)
        return response

    @app.get("/metrics")
    def metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
