"""SQLAlchemy engine for the SQLite metadata store.

pysqlite's own transaction handling defers ``BEGIN`` until the first DML
statement, which breaks transactional DDL and lets two writers interleave a
read and a write.  The engine therefore takes over transaction control:
every transaction opens with ``BEGIN IMMEDIATE`` (the write lock is taken up
front and concurrent writers queue on the busy timeout), except connections
marked ``readonly`` which use a deferred ``BEGIN`` so listing never blocks
writers under WAL.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine as sa_create_engine
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

READONLY = "workspaces_readonly"


def create_engine(database_path: str | Path, *, busy_timeout: float = 30.0, **kwargs: Any) -> Engine:
    """Create a SQLite engine for *database_path* with WAL journaling.

    ``":memory:"`` is accepted for throwaway stores.  The parent directory of
    a file database is created if missing.
    """
    if str(database_path) == ":memory:":
        url = "sqlite://"
    else:
        path = Path(database_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        url = f"sqlite:///{path}"

    engine = sa_create_engine(url, connect_args={"timeout": busy_timeout}, **kwargs)

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, _record: Any) -> None:
        # Disable pysqlite's implicit BEGIN; _on_begin emits it instead.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Any) -> None:
        mode = "DEFERRED" if conn.get_execution_options().get(READONLY) else "IMMEDIATE"
        conn.exec_driver_sql(f"BEGIN {mode}")

    return engine


def create_session_factory(engine: Engine, *, readonly: bool = False) -> sessionmaker[Session]:
    """Create a session factory bound to *engine*.

    ``expire_on_commit=False`` so that ORM instances remain usable after
    commit when converted to records.
    """
    bind = engine.execution_options(**{READONLY: True}) if readonly else engine
    return sessionmaker(bind, expire_on_commit=False)
