"""
Process-wide database engine and transaction scope.

The engine is created lazily on first use and reused by every request. Cold
start is single-flight: concurrent first callers block on a lock instead of
each opening their own engine.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from gembreak.database.config.config import settings
from gembreak.database.entities import Base

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None
_lock = threading.Lock()


def _build_engine(url: str) -> Engine:
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)
    if url.startswith("sqlite"):
        # Writers take the lock up front so concurrent appends wait instead of
        # failing on a SHARED -> RESERVED upgrade.
        @event.listens_for(engine, "connect")
        def _sqlite_connect(dbapi_connection, _record):
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA busy_timeout=10000")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _sqlite_begin(connection):
            connection.exec_driver_sql("BEGIN IMMEDIATE")
    return engine


def get_engine() -> Engine:
    """Return the shared engine, creating it and the schema on first call."""
    global _engine, _session_factory
    if _engine is not None:
        return _engine
    with _lock:
        if _engine is None:
            engine = _build_engine(settings.DATABASE_URL)
            Base.metadata.create_all(engine)
            _session_factory = sessionmaker(bind=engine, expire_on_commit=False)
            _engine = engine
            logger.info("Connected to database: %s", engine.url.render_as_string(hide_password=True))
    return _engine


def reset_engine() -> None:
    """Dispose the shared engine; the next call to `get_engine` reconnects."""
    global _engine, _session_factory
    with _lock:
        if _engine is not None:
            _engine.dispose()
        _engine = None
        _session_factory = None


@contextmanager
def session_scope() -> Iterator[Session]:
    """One transaction: commit on success, roll back on any exception."""
    get_engine()
    session = _session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
