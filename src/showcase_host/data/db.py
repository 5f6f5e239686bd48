"""Engine and session handling for the showcase database.

Projects, their owners and the per-visitor view and like rows all live in one
SQLAlchemy database. The engine is built lazily from ``DB_URL`` (falling back to
``showcase.db`` at the repository root) and the schema is created the first time
it is touched, so request handlers and tests only ever call ``get_session``.

SQLite connections enforce foreign keys, which keeps the view and like rows of a
deleted project from outliving it.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import URL, Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker


class Base(DeclarativeBase):
    """Declarative base shared by every showcase table."""


_engine: Engine | None = None
_SessionLocal: sessionmaker[Session] | None = None


def get_database_url() -> str:
    """Return ``DB_URL`` if set, else the SQLite file next to the source tree."""
    env_url = os.getenv("DB_URL")
    if env_url:
        return env_url

    repo_root = Path(__file__).resolve().parents[3]
    return URL.create("sqlite", database=str(repo_root / "showcase.db")).render_as_string(
        hide_password=False
    )


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _get_engine() -> Engine:
    global _engine
    if _engine is None:
        database_url = get_database_url()
        is_sqlite = database_url.startswith("sqlite")
        # Uploads are ingested on worker threads, so connections cross threads.
        connect_args = {"check_same_thread": False} if is_sqlite else {}
        _engine = create_engine(database_url, connect_args=connect_args)
        if is_sqlite:
            event.listen(_engine, "connect", _enable_sqlite_foreign_keys)
        _create_tables(_engine)
    return _engine


def _create_tables(engine: Engine) -> None:
    # The model modules register their tables on Base when imported.
    from showcase_host.data.models import (  # noqa: F401
        project,
        project_like,
        project_view,
        user,
    )

    Base.metadata.create_all(bind=engine)


def _get_session_factory() -> sessionmaker[Session]:
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            bind=_get_engine(),
            autoflush=False,
            expire_on_commit=False,
        )
    return _SessionLocal


def init_db() -> None:
    """Build the engine and create any missing tables (run at app startup)."""
    _get_engine()


@contextmanager
def get_session() -> Iterator[Session]:
    """Yield a session that commits on success and rolls back on any error.

    Objects stay readable after the block exits because sessions are created
    with ``expire_on_commit=False``; repository methods rely on that to hand
    detached Project rows back to the API layer.
    """
    session = _get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
