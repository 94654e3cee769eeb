"""Volume backend interface.

The backend wraps the external volume manager.  Calls are synchronous and
blocking and are never retried here; every failure surfaces as a
``BackendError`` subclass (transport, status or parse).  No state is cached
between calls.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

PropertyValue = int | str


@runtime_checkable
class VolumeBackend(Protocol):
    """Operations on datasets addressed as ``{root}/{owner}/{name}``."""

    def create_volume(self, path: str) -> None:
        """Provision a dataset, creating missing parents.  Fails if it exists."""
        ...

    def destroy_volume(self, path: str) -> None:
        """Remove a dataset and its data.  Fails if absent or busy."""
        ...

    def rename_volume(self, src: str, dest: str) -> None:
        """Atomically rename a dataset.  Fails if *dest* exists or *src* is absent."""
        ...

    def get_property(self, path: str, key: str) -> PropertyValue:
        """Read a property; byte counters come back as ``int``."""
        ...

    def set_property(self, path: str, key: str, value: str) -> None:
        ...

    def restrict_mountpoint(self, mountpoint: str, owner: str) -> None:
        """Make *mountpoint* accessible to *owner* (and their group) only."""
        ...
