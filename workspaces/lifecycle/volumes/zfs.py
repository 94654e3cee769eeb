"""ZFS volume backend.

Drives the ``zfs`` command line tool.  Properties are read with
``zfs get -H -p -o value`` so that byte counters are exact integers and the
output is a single scriptable line.
"""

from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass

from loguru import logger

from workspaces.lifecycle.errors import (
    BackendError,
    BackendStatusError,
    BackendTransportError,
    PropertyParseError,
)
from workspaces.lifecycle.volumes.base import PropertyValue

NUMERIC_PROPERTIES = frozenset(
    {
        "available",
        "logicalreferenced",
        "logicalused",
        "quota",
        "referenced",
        "refquota",
        "used",
        "usedbychildren",
        "usedbydataset",
        "usedbysnapshots",
        "written",
    }
)

MOUNTPOINT_MODE = 0o750


@dataclass(frozen=True, slots=True)
class ZfsResult:
    stdout: str
    stderr: str
    exit_code: int


class ZfsBackend:
    """VolumeBackend implementation on top of the ``zfs`` CLI."""

    def __init__(self, binary: str = "zfs") -> None:
        self.binary = binary

    def _run(self, *args: str) -> ZfsResult:
        """Run ``zfs`` with *args*.  Raises on transport or status failure."""
        cmd = [self.binary, *args]
        logger.debug("zfs_exec cmd={}", cmd)
        try:
            completed = subprocess.run(cmd, capture_output=True, text=True, check=False)  # noqa: S603
        except OSError as exc:
            raise BackendTransportError(f"Could not run {self.binary}: {exc}") from exc

        result = ZfsResult(stdout=completed.stdout, stderr=completed.stderr, exit_code=completed.returncode)
        logger.debug("zfs_exit code={}", result.exit_code)
        if result.exit_code != 0:
            raise BackendStatusError(cmd, result.exit_code, result.stderr)
        return result

    # -- Datasets --------------------------------------------------------------

    def create_volume(self, path: str) -> None:
        parent, _, _ = path.rpartition("/")
        if parent:
            # -p is a no-op for existing parents; the final create must still fail on a clash
            self._run("create", "-p", parent)
        self._run("create", path)

    def destroy_volume(self, path: str) -> None:
        self._run("destroy", "-r", path)

    def rename_volume(self, src: str, dest: str) -> None:
        self._run("rename", src, dest)

    # -- Properties ------------------------------------------------------------

    def get_property(self, path: str, key: str) -> PropertyValue:
        result = self._run("get", "-H", "-p", "-o", "value", key, path)
        lines = result.stdout.splitlines()
        if len(lines) != 1 or not lines[0].strip():
            raise PropertyParseError(f"Unexpected output for {key} of {path}: {result.stdout!r}")
        value = lines[0].strip()
        if key not in NUMERIC_PROPERTIES:
            return value
        try:
            return int(value)
        except ValueError:
            raise PropertyParseError(f"Property {key} of {path} is not numeric: {value!r}") from None

    def set_property(self, path: str, key: str, value: str) -> None:
        self._run("set", f"{key}={value}", path)

    # -- Mountpoint ------------------------------------------------------------

    def restrict_mountpoint(self, mountpoint: str, owner: str) -> None:
        try:
            os.chmod(mountpoint, MOUNTPOINT_MODE)
            shutil.chown(mountpoint, user=owner, group=owner)
        except (OSError, LookupError) as exc:
            raise BackendError(f"Failed to restrict {mountpoint} to {owner}: {exc}") from exc
