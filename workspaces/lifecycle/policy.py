"""Ownership and pool policy checks.

Pure functions over the acting identity, the pool and the request.  A
privileged actor bypasses every check.
"""

from __future__ import annotations

from datetime import timedelta

from workspaces.lifecycle.errors import AuthorizationError, DurationTooHighError, PoolDisabledError
from workspaces.lifecycle.models.workspace import Actor, Pool


def authorize(actor: Actor, owner: str) -> None:
    """Raise ``AuthorizationError`` unless *actor* owns the workspace."""
    if actor.privileged or actor.name == owner:
        return
    raise AuthorizationError


def check_enabled(actor: Actor, pool: Pool) -> None:
    if pool.disabled and not actor.privileged:
        raise PoolDisabledError(pool.name)


def check_duration(actor: Actor, pool: Pool, duration: timedelta) -> None:
    if duration > pool.max_duration and not actor.privileged:
        raise DurationTooHighError(pool.max_duration.days)
