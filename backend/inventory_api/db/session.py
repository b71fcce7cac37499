"""Engine and session factory configuration."""

from __future__ import annotations

import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from inventory_api.db.base import Base

logger = logging.getLogger(__name__)


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


def create_db_engine(database_url: str, *, echo: bool = False) -> Engine:
    """Build an engine tuned for the backing database.

    Server databases get a pre-pinged QueuePool; SQLite gets thread sharing,
    a single shared connection for in-memory URLs, and enforced foreign keys.

    SQLite ignores ``SELECT ... FOR UPDATE`` and pysqlite delays BEGIN until
    the first write, so every SQLite transaction starts with
    ``BEGIN IMMEDIATE`` instead: the write lock is held from the first read.
    """
    if _is_sqlite(database_url):
        options = {"connect_args": {"check_same_thread": False}}
        if _is_memory_sqlite(database_url):
            options["poolclass"] = StaticPool
        engine = create_engine(database_url, echo=echo, **options)

        @event.listens_for(engine, "connect")
        def _configure_connection(dbapi_connection, connection_record):
            # Hand transaction control to SQLAlchemy's "begin" event below
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _begin_immediate(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    # pool_pre_ping: Test connections before using (handles stale connections)
    # pool_recycle: Recycle connections after 30 minutes (prevents timeout)
    return create_engine(
        database_url,
        echo=echo,
        poolclass=QueuePool,
        pool_pre_ping=True,
        pool_recycle=1800,
        pool_size=5,
        max_overflow=10,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Sessions are opened per unit of work; objects stay readable after commit."""
    return sessionmaker(
        bind=engine, autoflush=False, autocommit=False, expire_on_commit=False
    )


def pool_size(engine: Engine) -> int:
    """Configured size of the connection pool (1 for single-connection pools)."""
    size = getattr(engine.pool, "size", None)
    if callable(size):
        return size()
    return 1


def init_db(engine: Engine) -> None:
    """Create missing tables for every registered model."""
    # Importing the package registers the models on Base.metadata
    import inventory_api.db.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database schema ensured")
