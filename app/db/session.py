# app/db/session.py
"""
Storage handle.

A ``Database`` is built once per application by ``create_app`` and kept in
``app.extensions['database']``. Nothing in this module caches an engine at
import time; scripts and tests construct their own handle.
"""
from flask import current_app
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.logger import get_logger

logger = get_logger(__name__)


class Database:
    def __init__(self, db_url: str, *, echo: bool = False):
        if not db_url:
            raise RuntimeError("DATABASE_URL not set")

        connect_args = {}
        if db_url.startswith("sqlite"):
            connect_args = {"check_same_thread": False, "timeout": 30}

        self.url = db_url
        self._disposed = False
        self.engine: Engine = create_engine(
            db_url,
            echo=echo,
            connect_args=connect_args,
        )
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _configure_sqlite_connection)
            event.listen(self.engine, "begin", _begin_sqlite_transaction)

        self._session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine,
        )
        logger.info("Database handle opened: %s", self.engine.url.render_as_string(hide_password=True))

    def session(self) -> Session:
        return self._session_factory()

    def dispose(self) -> None:
        # idempotent; the atexit hook may run after an explicit dispose
        if self._disposed:
            return
        self._disposed = True
        self.engine.dispose()
        logger.info("Database handle closed")


def _configure_sqlite_connection(dbapi_connection, connection_record):
    # pysqlite defers BEGIN on its own, which breaks SAVEPOINT; SQLAlchemy emits it instead
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_sqlite_transaction(conn):
    # take the write lock up front; a deferred upgrade fails with "database is locked" under contention
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def get_database() -> Database:
    return current_app.extensions["database"]


def get_session() -> Session:
    """Open a new ORM session bound to the current app's database."""
    return get_database().session()
