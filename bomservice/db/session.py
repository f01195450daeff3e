# bomservice/db/session.py

from __future__ import annotations

import logging
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .base import Base

logger = logging.getLogger(__name__)


def _build_engine(database_url: str, echo: bool = False) -> Engine:
    url = make_url(database_url)

    if url.get_backend_name() != "sqlite":
        return create_engine(
            url,
            future=True,
            echo=echo,
            pool_pre_ping=True,
        )

    kwargs = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        # One shared connection, otherwise every checkout sees an empty database
        kwargs["poolclass"] = StaticPool

    engine = create_engine(url, future=True, echo=echo, **kwargs)

    # pysqlite defers BEGIN until the first DML statement, which breaks
    # SAVEPOINT handling. Take over transaction control from the driver.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    # IMMEDIATE takes the write lock up front, so concurrent writers wait on
    # the busy timeout instead of failing with "database is locked".
    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


class Database:
    """
    Store client shared by the API and the CLI.

    Owns the engine (and its connection pool) plus the session factory.
    Created once at startup, checked with `check_connection()`, and released
    with `dispose()` at shutdown.
    """

    def __init__(self, database_url: str, *, echo: bool = False) -> None:
        self.engine = _build_engine(database_url, echo=echo)
        self.session_factory = sessionmaker(
            bind=self.engine,
            autoflush=False,
            autocommit=False,
            future=True,
        )

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def session(self) -> Session:
        return self.session_factory()

    def check_connection(self) -> None:
        """Run a trivial query; raises if the store cannot be reached."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection successful (dialect=%s)", self.dialect_name)

    def create_schema(self) -> None:
        Base.metadata.create_all(self.engine)
        logger.info("Item tables ensured: %s", ", ".join(sorted(Base.metadata.tables)))

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("Database engine disposed")


# Dependency helper for FastAPI
def get_db(request: Request) -> Iterator[Session]:
    database: Database = request.app.state.database
    db = database.session()
    try:
        yield db
    finally:
        db.close()
