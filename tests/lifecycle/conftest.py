"""Fixtures for lifecycle tests: in-memory volume backend, frozen clock, engine."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from workspaces.lifecycle.engine import LifecycleEngine
from workspaces.lifecycle.errors import BackendError, BackendStatusError, PropertyParseError
from workspaces.lifecycle.models.workspace import Actor, Pool
from workspaces.lifecycle.store.sql import SqlStore
from workspaces.lifecycle.volumes.base import PropertyValue

EPOCH = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = EPOCH) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class InMemoryVolumeBackend:
    """VolumeBackend fake keeping datasets and their properties in a dict.

    ``fail(op, path)`` makes the next calls of *op* on *path* raise a
    ``BackendStatusError`` until ``heal`` is called.
    """

    def __init__(self) -> None:
        self.volumes: dict[str, dict[str, PropertyValue]] = {}
        self.restricted: dict[str, str] = {}
        self.calls: list[tuple[str, ...]] = []
        self._failures: set[tuple[str, str]] = set()

    # -- Failure injection -----------------------------------------------------

    def fail(self, op: str, path: str) -> None:
        self._failures.add((op, path))

    def heal(self) -> None:
        self._failures.clear()

    def _check(self, op: str, path: str) -> None:
        self.calls.append((op, path))
        if (op, path) in self._failures:
            raise BackendStatusError(["zfs", op, path], 1, "injected failure")

    def _require(self, op: str, path: str) -> dict[str, PropertyValue]:
        if path not in self.volumes:
            raise BackendStatusError(["zfs", op, path], 1, f"cannot open '{path}': dataset does not exist")
        return self.volumes[path]

    # -- VolumeBackend ---------------------------------------------------------

    def add_volume(self, path: str, **props: PropertyValue) -> None:
        self.volumes[path] = {"mountpoint": f"/{path}", "readonly": "off", "referenced": 0, "used": 0, **props}

    def create_volume(self, path: str) -> None:
        self._check("create_volume", path)
        if path in self.volumes:
            raise BackendStatusError(["zfs", "create", path], 1, f"cannot create '{path}': dataset already exists")
        self.add_volume(path)

    def destroy_volume(self, path: str) -> None:
        self._check("destroy_volume", path)
        self._require("destroy", path)
        del self.volumes[path]

    def rename_volume(self, src: str, dest: str) -> None:
        self._check("rename_volume", src)
        props = self._require("rename", src)
        if dest in self.volumes:
            raise BackendStatusError(["zfs", "rename", src, dest], 1, f"cannot rename to '{dest}': dataset exists")
        del self.volumes[src]
        self.volumes[dest] = {**props, "mountpoint": f"/{dest}"}

    def get_property(self, path: str, key: str) -> PropertyValue:
        self._check("get_property", path)
        props = self._require("get", path)
        if key not in props:
            raise PropertyParseError(f"no property {key}")
        return props[key]

    def set_property(self, path: str, key: str, value: str) -> None:
        self._check("set_property", path)
        self._require("set", path)[key] = value

    def restrict_mountpoint(self, mountpoint: str, owner: str) -> None:
        self._check("restrict_mountpoint", mountpoint)
        if not mountpoint.startswith("/"):
            raise BackendError(f"{mountpoint} is not a path")
        self.restricted[mountpoint] = owner


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def backend() -> InMemoryVolumeBackend:
    return InMemoryVolumeBackend()


@pytest.fixture
def pool() -> Pool:
    return Pool(name="P", root="tank/P", max_duration=90, expired_retention=7)


@pytest.fixture
def disabled_pool() -> Pool:
    return Pool(name="old", root="tank/old", max_duration=30, expired_retention=7, disabled=True)


@pytest.fixture
def engine(
    store: SqlStore,
    backend: InMemoryVolumeBackend,
    clock: FrozenClock,
    pool: Pool,
    disabled_pool: Pool,
) -> LifecycleEngine:
    return LifecycleEngine(store, backend, {pool.name: pool, disabled_pool.name: disabled_pool}, clock=clock)


@pytest.fixture
def alice() -> Actor:
    return Actor(name="alice")


@pytest.fixture
def bob() -> Actor:
    return Actor(name="bob")


@pytest.fixture
def root() -> Actor:
    return Actor(name="root", privileged=True)
