"""
Engine and session management for the HR database.

One engine per process, created by ``init_engine_from_url``.  Services get
sessions from ``get_session()`` or ``session_scope()`` and commit at their
own boundary; workers that run in threads take ``get_session_factory()``
and open one session each.

PostgreSQL is the production target: pooled connections, READ COMMITTED,
and ``SELECT ... FOR UPDATE`` on approval rows.  SQLite is accepted for
tests and local runs.  It has no row locks, so concurrent approvals fall
back to the ``approval_version`` check on every entity.
"""

import atexit
import os
from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from hr_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_NOT_INITIALIZED = "Engine not initialized. Call init_engine_from_url() first."

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def database_url_from_env(default: str = "sqlite:///hr_kernel.db") -> str:
    return os.environ.get("DATABASE_URL") or default


def _engine_options(url: URL, pool_size: int, max_overflow: int, pool_timeout: int, pool_recycle: int) -> dict[str, Any]:
    if url.get_backend_name() == "sqlite":
        # Writers wait on the database lock instead of failing at once.
        return {"connect_args": {"check_same_thread": False, "timeout": 30}}
    return {
        "poolclass": QueuePool,
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_pre_ping": True,
        "pool_timeout": pool_timeout,
        "pool_recycle": pool_recycle,
        "isolation_level": "READ COMMITTED",
    }


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create the process-wide engine and session factory.

    A second call replaces the first.  Pool settings apply to PostgreSQL
    only.  Sessions keep their attribute values after commit
    (``expire_on_commit=False``) so DTOs can be built from committed rows.
    """
    global _engine, _SessionFactory

    url = make_url(database_url)
    _engine = create_engine(
        url,
        echo=echo,
        **_engine_options(url, pool_size, max_overflow, pool_timeout, pool_recycle),
    )
    if _engine.dialect.name == "sqlite":
        _enable_sqlite_savepoints(_engine)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info("engine_initialized", extra={"dialect": _engine.dialect.name, "echo": echo})
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    if _SessionFactory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _SessionFactory


def get_session() -> Session:
    return get_session_factory()()


def is_postgres() -> bool:
    return _engine is not None and _engine.dialect.name == "postgresql"


@contextmanager
def session_scope() -> Iterator[Session]:
    """Commit on success, roll back and re-raise on error, always close."""
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("session_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """
    Create the kernel tables (organization, approval chains, outbox).

    Module tables need their ORM modules imported first; see
    ``hr_modules._orm_registry.create_all_tables``.
    """
    import hr_kernel.models  # noqa: F401
    from hr_kernel.db.base import Base

    Base.metadata.create_all(get_engine())
    logger.info("tables_created", extra={"table_count": len(Base.metadata.tables)})


def drop_tables() -> None:
    from hr_kernel.db.base import Base

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


atexit.register(reset_engine)


def _enable_sqlite_savepoints(engine: Engine) -> None:
    # pysqlite defers BEGIN until the first DML statement, which breaks
    # SAVEPOINT; emit BEGIN ourselves.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")
