"""Shared enumerations used across the lifecycle package."""

from __future__ import annotations

from enum import StrEnum

# -- Workspace -----------------------------------------------------------------


class WorkspaceState(StrEnum):
    """Lifecycle state derived from a record's expiry relative to *now*."""

    ACTIVE = "active"
    GRACE = "grace"
    DELETABLE = "deletable"


# -- Report columns ------------------------------------------------------------


class WorkspaceColumn(StrEnum):
    NAME = "name"
    USER = "user"
    FS = "fs"
    SIZE = "size"
    EXPIRY = "expiry"
    MOUNTPOINT = "mountpoint"


class PoolColumn(StrEnum):
    NAME = "name"
    USED = "used"
    FREE = "free"
    TOTAL = "total"
    DURATION = "duration"
    RETENTION = "retention"


DEFAULT_WORKSPACE_COLUMNS: tuple[WorkspaceColumn, ...] = (
    WorkspaceColumn.NAME,
    WorkspaceColumn.USER,
    WorkspaceColumn.FS,
    WorkspaceColumn.SIZE,
    WorkspaceColumn.EXPIRY,
    WorkspaceColumn.MOUNTPOINT,
)

DEFAULT_POOL_COLUMNS: tuple[PoolColumn, ...] = tuple(PoolColumn)
