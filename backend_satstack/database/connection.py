"""
Engine and session management.

Uses SATSTACK_DB_URL / DATABASE_URL when set (PostgreSQL in production);
otherwise SQLite at SATSTACK_DB_PATH (default satstack.db). The engine is
created lazily and cached; tests call reset_engine_for_test() after pointing
the env at a fresh file.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from backend_satstack.config.env import get_database_url
from backend_satstack.database.models import Base
from backend_satstack.satstack_logging import get_logger

logger = get_logger(__name__)

_engine: Engine | None = None
_SessionLocal: sessionmaker | None = None


def _redact(url: str) -> str:
    return url.split("?")[0].split("//")[-1].split("@")[-1]


def _enable_sqlite_foreign_keys(dbapi_conn: Any, connection_record: Any) -> None:
    cur = dbapi_conn.cursor()
    cur.execute("PRAGMA foreign_keys = ON")
    cur.close()


def create_satstack_engine(url: str) -> Engine:
    """Create an engine; SQLite gets cross-thread access and FK enforcement."""
    connect_args: dict[str, Any] = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def get_engine() -> Engine:
    """Create or return the cached engine."""
    global _engine
    if _engine is None:
        url = get_database_url()
        _engine = create_satstack_engine(url)
        logger.info("db_engine_created", url=_redact(url))
    return _engine


def get_session_factory(engine: Engine | None = None) -> sessionmaker:
    """Session factory bound to engine (default: the cached engine)."""
    global _SessionLocal
    if engine is not None:
        return sessionmaker(autocommit=False, autoflush=False, bind=engine)
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _SessionLocal


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    """One session per unit of work. Commits on success, rolls back on error."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Engine | None = None) -> None:
    """Create tables if they do not exist. Safe to call on every startup."""
    engine = engine or get_engine()
    Base.metadata.create_all(bind=engine)
    logger.info("db_init", url=_redact(str(engine.url)))


def reset_engine_for_test() -> None:
    """Dispose and clear the cached engine and session factory. For tests only."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None
