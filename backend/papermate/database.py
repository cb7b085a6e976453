# backend/papermate/database.py
"""
Database wiring for PaperMate.

Key goals:
- No engine at import time. The engine is built explicitly from Settings,
  attached to the app on startup and disposed on shutdown.
- Sensible connection pooling for long-running servers.
- Routers get a Session through `get_db`; scripts open their own.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from papermate.config import Settings

# Declarative base for all models
Base = declarative_base()


# -------------------------------------------------------------------
# ENGINE / SESSION FACTORY
# -------------------------------------------------------------------

def create_db_engine(settings: Settings) -> Engine:
    url = settings.require_database_url()
    kwargs = {
        "pool_pre_ping": True,  # detect dead connections
        "future": True,
    }
    # SQLite uses a single-connection pool; pool sizing only applies to servers.
    if url.startswith("sqlite"):
        engine = create_engine(url, **kwargs)
        _enable_sqlite_savepoints(engine)
        return engine
    kwargs.update(
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_timeout=settings.pool_timeout,
        pool_recycle=settings.pool_recycle,
    )
    return create_engine(url, **kwargs)


def _enable_sqlite_savepoints(engine: Engine) -> None:
    # pysqlite defers BEGIN on its own, which breaks SAVEPOINT; take over
    # transaction control so begin_nested() behaves as on Postgres.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        future=True,
        expire_on_commit=False,
    )


def create_schema(engine: Engine) -> None:
    # Import model modules so every table is registered on Base.metadata.
    import papermate  # noqa: F401

    Base.metadata.create_all(bind=engine)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Iterator[Session]:
    """
    Open a session, commit on success, roll back on any error.
    """
    db = session_factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


# -------------------------------------------------------------------
# DEPENDENCIES (for FastAPI)
# -------------------------------------------------------------------

def get_db(request: Request) -> Iterator[Session]:
    """
    Dependency for endpoints. The session factory is created in the app
    lifespan and lives on `app.state`.
    """
    db = request.app.state.session_factory()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
