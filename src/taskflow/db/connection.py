"""Engine construction for the task store.

Transactions are serializable: SQLite opens every transaction with
``BEGIN IMMEDIATE`` (taking the write lock up front), other backends run at
``SERIALIZABLE`` isolation. Dependency inserts rely on this to keep their
cycle check and write atomic.
"""

from typing import Any

import structlog
from sqlalchemy import Engine, create_engine, event
from sqlmodel import SQLModel

from taskflow.db import models  # noqa: F401 - registers tables on SQLModel.metadata

log = structlog.get_logger()


def _configure_sqlite(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, _record: Any) -> None:
        # Let SQLAlchemy, not pysqlite, decide when transactions begin
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_db_engine(url: str, *, echo: bool = False) -> Engine:
    """Create an engine with serializable write semantics."""
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": 5.0},
        )
        _configure_sqlite(engine)
    else:
        engine = create_engine(url, echo=echo, isolation_level="SERIALIZABLE")

    log.debug("db_engine_created", dialect=engine.dialect.name)
    return engine


def init_db(engine: Engine) -> None:
    """Create tables if they do not exist."""
    SQLModel.metadata.create_all(engine)
    log.info("db_initialized", dialect=engine.dialect.name)
