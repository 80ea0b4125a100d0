import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from .config import get_settings
from .models.base import Base
from .models.health_event import HealthEvent

logger = logging.getLogger(__name__)

_engine = None
_SessionLocal = None


def _enable_sqlite_savepoints(engine) -> None:
    # pysqlite defers BEGIN on its own; take over so SAVEPOINT nests correctly.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def get_engine():
    global _engine
    if _engine is not None:
        return _engine
    settings = get_settings()
    connect_args = {}
    if settings.DATABASE_URL.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    kwargs = {
        "pool_pre_ping": True,
        "future": True,
        "connect_args": connect_args,
    }
    if not settings.DATABASE_URL.startswith("sqlite"):
        kwargs["pool_size"] = settings.DB_POOL_SIZE
    _engine = create_engine(settings.DATABASE_URL, **kwargs)
    if settings.DATABASE_URL.startswith("sqlite"):
        _enable_sqlite_savepoints(_engine)
    return _engine


def get_sessionmaker():
    global _SessionLocal
    if _SessionLocal is not None:
        return _SessionLocal
    _SessionLocal = sessionmaker(bind=get_engine(), autocommit=False, autoflush=False)
    return _SessionLocal


def reset_engine() -> None:
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


def init_db() -> None:
    Base.metadata.create_all(bind=get_engine())


def get_db():
    SessionLocal = get_sessionmaker()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Open a fresh session for one unit of work.

    Callers commit explicitly; anything left uncommitted when the block raises
    is rolled back, and the session is always closed.
    """
    SessionLocal = get_sessionmaker()
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def is_database_available() -> bool:
    try:
        with session_scope() as db:
            db.execute(select(HealthEvent.id).limit(1)).first()
        return True
    except SQLAlchemyError as exc:
        logger.debug("Database connectivity check failed: %s", exc)
        return False
