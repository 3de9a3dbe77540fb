"""
Инициализация базы данных и сессий SQLAlchemy.

Назначение:
- Создание engine
- Контекстный менеджер для сессий (одна сессия = одна транзакция запроса)
- Единая точка доступа к БД для всех сервисов
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from team_tracker.common.config import get_settings
from team_tracker.common.errors import StorageError
from team_tracker.common.logging import get_project_logger

log = get_project_logger()


def _build_engine(url: str, *, echo: bool = False) -> Engine:
    if url.startswith("sqlite"):
        eng = create_engine(url, echo=echo, connect_args={"check_same_thread": False})
        _enable_sqlite_savepoints(eng)
        return eng
    return create_engine(url, echo=echo, pool_pre_ping=True)


def _enable_sqlite_savepoints(eng: Engine) -> None:
    # pysqlite сам управляет BEGIN и ломает SAVEPOINT; берём транзакции на себя
    @event.listens_for(eng, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    @event.listens_for(eng, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


# =============================================================================
# ENGINE / SESSION FACTORY
# =============================================================================
_settings = get_settings()

engine = _build_engine(_settings.database_url, echo=_settings.db_echo)

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)


# =============================================================================
# CONTEXT MANAGER
# =============================================================================
@contextmanager
def db_session() -> Iterator[Session]:
    """
    Контекстный менеджер для работы с БД.

    Использование:
        with db_session() as session:
            session.add(...)

    Всё внутри блока идёт одной транзакцией. Ошибки SQLAlchemy наружу уходят
    как StorageError, остальные исключения пробрасываются как есть (после rollback).
    """
    session: Session = SessionLocal()
    try:
        yield session
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        log.error(
            "db_transaction_failed",
            extra={"payload": {"error": type(e).__name__, "message": str(e)[:300]}},
        )
        raise StorageError("Ошибка при работе с БД", {"error": type(e).__name__}) from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db() -> None:
    """
    Создание таблиц без миграций (dev / тесты). В prod: alembic upgrade head.
    """
    from .models import Base

    Base.metadata.create_all(bind=engine)
    log.info("db_schema_created", extra={"payload": {"dialect": engine.dialect.name}})
