"""Lifecycle engine -- keeps the metadata store and the volume manager in step.

The store and the volume manager cannot share a transaction, so every
operation follows a fixed order:

- **create**: authorize, apply policy, commit the record (reserving the
  name), then provision the dataset.  A backend failure after the commit
  leaves the record ahead of the dataset; it is logged and left for an
  operator, never rolled back automatically.
- **rename / extend / expire**: authorize, apply policy, update the record,
  then touch the dataset.  Expected failures (authorization, policy, missing
  or duplicate workspace) abort before any dataset is touched.
- **clean**: within one store transaction, destroy the dataset first and
  delete the record only if the destroy succeeded, so the table never
  forgets a dataset that still exists.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from loguru import logger

from workspaces.lifecycle import policy
from workspaces.lifecycle.errors import (
    BackendError,
    ConflictError,
    NotFoundError,
    WorkspaceExistsError,
    WorkspaceNotFoundError,
)
from workspaces.lifecycle.models.enums import WorkspaceState
from workspaces.lifecycle.models.report import PoolReport, SweepReport, WorkspaceReport

if TYPE_CHECKING:
    from workspaces.lifecycle.models.workspace import Actor, Pool
    from workspaces.lifecycle.store.base import Store
    from workspaces.lifecycle.volumes.base import VolumeBackend


def utcnow() -> datetime:
    return datetime.now(UTC)


class LifecycleEngine:
    """Create, rename, extend, expire and clean workspaces.

    Stateless beyond its references to the store, the volume backend, the
    configured pools and a clock.
    """

    def __init__(
        self,
        store: Store,
        backend: VolumeBackend,
        pools: Mapping[str, Pool],
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._backend = backend
        self._pools = dict(pools)
        self._clock = clock

    # -- Create ----------------------------------------------------------------

    def create(self, pool: Pool, owner: str, name: str, duration: timedelta, actor: Actor) -> str:
        """Create a workspace and return its mountpoint."""
        policy.authorize(actor, owner)
        policy.check_enabled(actor, pool)
        policy.check_duration(actor, pool, duration)

        expiration_time = self._clock() + duration
        try:
            self._store.create_record(pool.name, owner, name, expiration_time)
        except ConflictError:
            raise WorkspaceExistsError(pool.name, owner, name) from None

        path = pool.volume_path(owner, name)
        try:
            self._backend.create_volume(path)
            mountpoint = str(self._backend.get_property(path, "mountpoint"))
            self._backend.restrict_mountpoint(mountpoint, owner)
        except BackendError:
            logger.error("Workspace {} recorded but provisioning failed; metadata is ahead of the volume", path)
            raise

        logger.info("Workspace created: {} (expires {}, mountpoint={})", path, expiration_time, mountpoint)
        return mountpoint

    # -- Rename ----------------------------------------------------------------

    def rename(self, pool: Pool, owner: str, src: str, dest: str, actor: Actor) -> None:
        policy.authorize(actor, owner)
        policy.check_enabled(actor, pool)
        if src == dest:
            if not self._exists(pool, owner, src):
                raise WorkspaceNotFoundError(pool.name, owner, src)
            raise WorkspaceExistsError(pool.name, owner, dest)

        try:
            self._store.rename_record(pool.name, owner, src, dest)
        except ConflictError:
            raise WorkspaceExistsError(pool.name, owner, dest) from None
        except NotFoundError:
            raise WorkspaceNotFoundError(pool.name, owner, src) from None

        src_path, dest_path = pool.volume_path(owner, src), pool.volume_path(owner, dest)
        self._backend.rename_volume(src_path, dest_path)
        logger.info("Workspace renamed: {} -> {}", src_path, dest_path)

    def _exists(self, pool: Pool, owner: str, name: str) -> bool:
        records = list(self._store.list_records(owners=[owner], pools=[pool.name]))
        return any(record.name == name for record in records)

    # -- Extend / expire -------------------------------------------------------

    def extend(self, pool: Pool, owner: str, name: str, duration: timedelta, actor: Actor) -> None:
        """Postpone expiry to at least ``now + duration`` and make the workspace writable.

        Never moves the expiry backwards; a shorter duration only restores
        writability.
        """
        policy.authorize(actor, owner)
        policy.check_enabled(actor, pool)
        policy.check_duration(actor, pool, duration)

        target = self._clock() + duration
        try:
            self._store.extend_record(pool.name, owner, name, target)
        except NotFoundError:
            raise WorkspaceNotFoundError(pool.name, owner, name) from None

        path = pool.volume_path(owner, name)
        self._backend.set_property(path, "readonly", "off")
        logger.info("Workspace extended: {} (until at least {})", path, target)

    def expire(self, pool: Pool, owner: str, name: str, actor: Actor, delete_on_next_clean: bool = False) -> None:
        """Expire a workspace now and make it read-only.

        With *delete_on_next_clean* the expiry is backdated by the pool's
        retention, so the next ``clean`` destroys it outright.  Pool policy
        does not apply to expiry.
        """
        policy.authorize(actor, owner)

        target = self._clock()
        if delete_on_next_clean:
            target -= pool.expired_retention
        try:
            self._store.expire_record(pool.name, owner, name, target)
        except NotFoundError:
            raise WorkspaceNotFoundError(pool.name, owner, name) from None

        path = pool.volume_path(owner, name)
        self._backend.set_property(path, "readonly", "on")
        logger.info("Workspace expired: {} (terminally={})", path, delete_on_next_clean)

    # -- Clean -----------------------------------------------------------------

    def clean(self) -> SweepReport:
        """Sweep expired workspaces across all pools.

        Workspaces past their retention are destroyed, then forgotten; those
        still in their grace window are made read-only.  Backend failures are
        logged and left for the next sweep.
        """
        now = self._clock()
        report = SweepReport()

        with self._store.transaction() as tx:
            # Snapshot before deleting rows from the same table
            candidates = list(tx.sweep_candidates(now))
            for record in candidates:
                pool = self._pools.get(record.pool)
                if pool is None:
                    logger.warning(
                        "Skipping {}/{}: filesystem {} is not configured", record.owner, record.name, record.pool
                    )
                    report.skipped.append(f"{record.pool}:{record.owner}/{record.name}")
                    continue

                path = pool.volume_path(record.owner, record.name)
                if record.state(pool, now) is WorkspaceState.DELETABLE:
                    try:
                        self._backend.destroy_volume(path)
                    except BackendError as exc:
                        logger.warning("Failed to destroy {}: {}", path, exc)
                        report.failed.append(path)
                        continue
                    tx.delete_record(record.pool, record.owner, record.name)
                    logger.info("Workspace deleted: {}", path)
                    report.destroyed.append(path)
                else:
                    try:
                        self._backend.set_property(path, "readonly", "on")
                    except BackendError as exc:
                        logger.warning("Failed to make {} read-only: {}", path, exc)
                        report.failed.append(path)
                        continue
                    report.readonly.append(path)

        logger.info(
            "Clean finished: {} destroyed, {} read-only, {} failed, {} skipped",
            len(report.destroyed),
            len(report.readonly),
            len(report.failed),
            len(report.skipped),
        )
        return report

    # -- Reports ---------------------------------------------------------------

    def list_workspaces(
        self,
        owners: Iterable[str] | None = None,
        pools: Iterable[str] | None = None,
    ) -> Iterator[WorkspaceReport]:
        """Yield one report row per workspace, reading dataset properties live.

        Workspaces whose pool is unconfigured or whose properties cannot be
        read are logged and left out.
        """
        now = self._clock()
        for record in self._store.list_records(owners=owners, pools=pools):
            pool = self._pools.get(record.pool)
            if pool is None:
                logger.warning(
                    "Workspace {}/{} is on unconfigured filesystem {}", record.owner, record.name, record.pool
                )
                continue

            path = pool.volume_path(record.owner, record.name)
            try:
                referenced = self._backend.get_property(path, "referenced")
                mountpoint = self._backend.get_property(path, "mountpoint")
            except BackendError as exc:
                logger.warning("Failed to get info for {}: {}", path, exc)
                continue

            state = record.state(pool, now)
            deletion_time = record.deletion_time(pool)
            remaining = (record.expiration_time if state is WorkspaceState.ACTIVE else deletion_time) - now
            yield WorkspaceReport(
                name=record.name,
                owner=record.owner,
                pool=record.pool,
                referenced=int(referenced),
                mountpoint=str(mountpoint),
                expiration_time=record.expiration_time,
                deletion_time=deletion_time,
                state=state,
                remaining=max(remaining, timedelta(0)),
            )

    def pool_usage(self) -> Iterator[PoolReport]:
        """Yield space usage and policy for every configured pool."""
        for pool in self._pools.values():
            yield PoolReport(
                name=pool.name,
                used=int(self._backend.get_property(pool.root, "used")),
                available=int(self._backend.get_property(pool.root, "available")),
                max_duration=pool.max_duration,
                expired_retention=pool.expired_retention,
                disabled=pool.disabled,
            )
