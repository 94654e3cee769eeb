"""Metadata store interface.

The store owns the durable workspace table.  Every mutation is a single
parameterized statement; ``extend_record`` / ``expire_record`` compute the
new expiry with ``MAX`` / ``MIN`` against the stored value inside the same
``UPDATE``, so concurrent callers converge instead of losing updates.

Each method on ``Store`` runs in its own transaction.  ``Store.transaction``
groups several operations into one, which is how the clean sweep keeps all
of its metadata mutations atomic.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Protocol, runtime_checkable

from workspaces.lifecycle.models.workspace import WorkspaceRecord


@runtime_checkable
class StoreOperations(Protocol):
    """Record operations shared by the store and its transactions."""

    def create_record(self, pool: str, owner: str, name: str, expiration_time: datetime) -> None:
        """Insert a record.  Raises ``ConflictError`` if the key exists."""
        ...

    def rename_record(self, pool: str, owner: str, src: str, dest: str) -> None:
        """Rename a record.

        Raises ``ConflictError`` if *dest* exists and ``NotFoundError`` if
        *src* does not.
        """
        ...

    def extend_record(self, pool: str, owner: str, name: str, target: datetime) -> None:
        """Set ``expiration_time = max(current, target)``.  Raises ``NotFoundError``."""
        ...

    def expire_record(self, pool: str, owner: str, name: str, target: datetime) -> None:
        """Set ``expiration_time = min(current, target)``.  Raises ``NotFoundError``."""
        ...

    def delete_record(self, pool: str, owner: str, name: str) -> None:
        """Remove a record.  No-op if it does not exist."""
        ...

    def list_records(
        self,
        owners: Iterable[str] | None = None,
        pools: Iterable[str] | None = None,
    ) -> Iterator[WorkspaceRecord]:
        """Lazily yield records, unordered, optionally filtered."""
        ...

    def sweep_candidates(self, now: datetime) -> Iterator[WorkspaceRecord]:
        """Lazily yield records with ``expiration_time < now``."""
        ...


@runtime_checkable
class Store(StoreOperations, Protocol):
    def transaction(self) -> AbstractContextManager[StoreOperations]:
        """Group operations into one transaction, committed on clean exit."""
        ...
