"""Data models for the workspace lifecycle."""

from workspaces.lifecycle.models.enums import (
    DEFAULT_POOL_COLUMNS,
    DEFAULT_WORKSPACE_COLUMNS,
    PoolColumn,
    WorkspaceColumn,
    WorkspaceState,
)
from workspaces.lifecycle.models.report import PoolReport, SweepReport, WorkspaceReport
from workspaces.lifecycle.models.workspace import Actor, Pool, WorkspaceRecord

__all__ = [
    "DEFAULT_POOL_COLUMNS",
    "DEFAULT_WORKSPACE_COLUMNS",
    "Actor",
    "Pool",
    "PoolColumn",
    "PoolReport",
    "SweepReport",
    "WorkspaceColumn",
    "WorkspaceRecord",
    "WorkspaceReport",
    "WorkspaceState",
]
