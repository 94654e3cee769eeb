"""Workspace and pool data models.

A workspace is a named, owned, time-bounded ZFS dataset living at
``{pool.root}/{owner}/{name}``.  Its metadata row only carries the expiry
schedule; the lifecycle state is derived from it relative to *now*.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field, field_validator

from workspaces.lifecycle.models.enums import WorkspaceState


class Pool(BaseModel):
    """A filesystem workspaces can be created in.

    Durations are configured in whole days.
    """

    model_config = ConfigDict(frozen=True)

    name: str = ""
    root: str = Field(description="ZFS dataset acting as the root for workspace datasets")
    max_duration: timedelta = Field(description="Maximum number of days a workspace may exist")
    expired_retention: timedelta = Field(description="Days after which an expired dataset is removed")
    disabled: bool = Field(default=False, description="Whether datasets can be created / extended")

    @field_validator("max_duration", "expired_retention", mode="before")
    @classmethod
    def _from_days(cls, value: object) -> object:
        if isinstance(value, int) and not isinstance(value, bool):
            return timedelta(days=value)
        return value

    def volume_path(self, owner: str, name: str) -> str:
        return f"{self.root}/{owner}/{name}"


class WorkspaceRecord(BaseModel):
    """Workspace row as stored in the metadata table."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    pool: str
    owner: str
    name: str
    expiration_time: datetime

    def deletion_time(self, pool: Pool) -> datetime:
        return self.expiration_time + pool.expired_retention

    def state(self, pool: Pool, now: datetime) -> WorkspaceState:
        if now < self.expiration_time:
            return WorkspaceState.ACTIVE
        if now < self.deletion_time(pool):
            return WorkspaceState.GRACE
        return WorkspaceState.DELETABLE


class Actor(BaseModel):
    """The identity invoking an operation."""

    model_config = ConfigDict(frozen=True)

    name: str
    privileged: bool = False
