"""Volume backend implementations."""

from workspaces.lifecycle.volumes.base import PropertyValue, VolumeBackend
from workspaces.lifecycle.volumes.zfs import ZfsBackend

__all__ = ["PropertyValue", "VolumeBackend", "ZfsBackend"]
