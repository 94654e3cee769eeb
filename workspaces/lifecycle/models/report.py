"""Read-only report rows handed to presentation.

These are plain structured values; formatting happens in the CLI.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from pydantic import BaseModel, Field

from workspaces.lifecycle.models.enums import WorkspaceState


class WorkspaceReport(BaseModel):
    """One row of ``workspaces list``."""

    name: str
    owner: str
    pool: str
    referenced: int = Field(description="Bytes referenced by the dataset")
    mountpoint: str
    expiration_time: datetime
    deletion_time: datetime
    state: WorkspaceState
    remaining: timedelta = Field(description="Time until expiry (active) or deletion (grace)")


class PoolReport(BaseModel):
    """One row of ``workspaces filesystems``."""

    name: str
    used: int
    available: int
    max_duration: timedelta
    expired_retention: timedelta
    disabled: bool = False

    @property
    def total(self) -> int:
        return self.used + self.available

    @property
    def fill_ratio(self) -> float:
        return self.used / self.total if self.total else 0.0


class SweepReport(BaseModel):
    """Outcome of one ``clean`` pass, as volume paths."""

    destroyed: list[str] = Field(default_factory=list)
    readonly: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
