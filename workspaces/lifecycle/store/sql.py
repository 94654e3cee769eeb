"""SQLite implementation of the Store protocol.

Layout: a single ``workspaces`` table keyed by ``(pool, owner, name)`` plus
Alembic's ``alembic_version`` table carrying the schema version.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from loguru import logger
from sqlalchemy import and_, delete, func, insert, literal, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from workspaces.lifecycle.db import migrate
from workspaces.lifecycle.db.engine import create_engine, create_session_factory
from workspaces.lifecycle.db.tables import TimestampUTC, Workspace
from workspaces.lifecycle.errors import ConflictError, NotFoundError
from workspaces.lifecycle.models.workspace import WorkspaceRecord


def _key(pool: str, owner: str, name: str):
    return and_(Workspace.pool == pool, Workspace.owner == owner, Workspace.name == name)


class SqlStoreTransaction:
    """Record operations bound to one open session."""

    def __init__(self, session: Session) -> None:
        self._session = session

    # -- Mutation --------------------------------------------------------------

    def create_record(self, pool: str, owner: str, name: str, expiration_time: datetime) -> None:
        stmt = insert(Workspace).values(pool=pool, owner=owner, name=name, expiration_time=expiration_time)
        try:
            # Savepoint so a collision leaves the enclosing transaction usable
            with self._session.begin_nested():
                self._session.execute(stmt)
        except IntegrityError:
            raise ConflictError(f"{pool}/{owner}/{name} already exists") from None

    def rename_record(self, pool: str, owner: str, src: str, dest: str) -> None:
        stmt = update(Workspace).where(_key(pool, owner, src)).values(name=dest)
        try:
            with self._session.begin_nested():
                rows = self._execute_update(stmt)
        except IntegrityError:
            raise ConflictError(f"{pool}/{owner}/{dest} already exists") from None
        if rows == 0:
            raise NotFoundError(f"{pool}/{owner}/{src}")

    def extend_record(self, pool: str, owner: str, name: str, target: datetime) -> None:
        bound = func.max(Workspace.expiration_time, literal(target, TimestampUTC))
        self._update_expiration(pool, owner, name, bound)

    def expire_record(self, pool: str, owner: str, name: str, target: datetime) -> None:
        bound = func.min(Workspace.expiration_time, literal(target, TimestampUTC))
        self._update_expiration(pool, owner, name, bound)

    def delete_record(self, pool: str, owner: str, name: str) -> None:
        stmt = delete(Workspace).where(_key(pool, owner, name))
        if self._execute_update(stmt) == 0:
            logger.debug("delete_record: {}/{}/{} already gone", pool, owner, name)

    # -- Query -----------------------------------------------------------------

    def list_records(
        self,
        owners: Iterable[str] | None = None,
        pools: Iterable[str] | None = None,
    ) -> Iterator[WorkspaceRecord]:
        stmt = select(Workspace)
        if owners is not None:
            stmt = stmt.where(Workspace.owner.in_(list(owners)))
        if pools is not None:
            stmt = stmt.where(Workspace.pool.in_(list(pools)))
        for row in self._session.scalars(stmt):
            yield WorkspaceRecord.model_validate(row)

    def sweep_candidates(self, now: datetime) -> Iterator[WorkspaceRecord]:
        stmt = select(Workspace).where(Workspace.expiration_time < now)
        for row in self._session.scalars(stmt):
            yield WorkspaceRecord.model_validate(row)

    # -- Helpers ---------------------------------------------------------------

    def _update_expiration(self, pool: str, owner: str, name: str, value) -> None:
        stmt = update(Workspace).where(_key(pool, owner, name)).values(expiration_time=value)
        if self._execute_update(stmt) == 0:
            raise NotFoundError(f"{pool}/{owner}/{name}")

    def _execute_update(self, stmt) -> int:
        result = self._session.execute(stmt.execution_options(synchronize_session=False))
        return result.rowcount


class SqlStore:
    """SQLite-backed metadata store.

    Use ``SqlStore.open`` to obtain a store with an up-to-date schema.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._writer = create_session_factory(engine)
        self._reader = create_session_factory(engine, readonly=True)

    @classmethod
    def open(cls, database_path: str | Path) -> SqlStore:
        """Open (creating if needed) and migrate the store at *database_path*.

        Raises ``SchemaError`` if the store is newer than this release.
        """
        engine = create_engine(database_path)
        try:
            version = migrate.upgrade(engine)
        except BaseException:
            engine.dispose()
            raise
        logger.debug("Opened store {} (schema version {})", database_path, version)
        return cls(engine)

    @property
    def engine(self) -> Engine:
        return self._engine

    def close(self) -> None:
        self._engine.dispose()

    @contextmanager
    def transaction(self) -> Iterator[SqlStoreTransaction]:
        with self._writer.begin() as session:
            yield SqlStoreTransaction(session)

    @contextmanager
    def _read(self) -> Iterator[SqlStoreTransaction]:
        with self._reader.begin() as session:
            yield SqlStoreTransaction(session)

    # -- Single-statement transactions -----------------------------------------

    def create_record(self, pool: str, owner: str, name: str, expiration_time: datetime) -> None:
        with self.transaction() as tx:
            tx.create_record(pool, owner, name, expiration_time)

    def rename_record(self, pool: str, owner: str, src: str, dest: str) -> None:
        with self.transaction() as tx:
            tx.rename_record(pool, owner, src, dest)

    def extend_record(self, pool: str, owner: str, name: str, target: datetime) -> None:
        with self.transaction() as tx:
            tx.extend_record(pool, owner, name, target)

    def expire_record(self, pool: str, owner: str, name: str, target: datetime) -> None:
        with self.transaction() as tx:
            tx.expire_record(pool, owner, name, target)

    def delete_record(self, pool: str, owner: str, name: str) -> None:
        with self.transaction() as tx:
            tx.delete_record(pool, owner, name)

    def list_records(
        self,
        owners: Iterable[str] | None = None,
        pools: Iterable[str] | None = None,
    ) -> Iterator[WorkspaceRecord]:
        with self._read() as tx:
            yield from tx.list_records(owners, pools)

    def sweep_candidates(self, now: datetime) -> Iterator[WorkspaceRecord]:
        with self._read() as tx:
            yield from tx.sweep_candidates(now)
