"""Metadata store implementations."""

from workspaces.lifecycle.store.base import Store, StoreOperations
from workspaces.lifecycle.store.sql import SqlStore, SqlStoreTransaction

__all__ = ["SqlStore", "SqlStoreTransaction", "Store", "StoreOperations"]
