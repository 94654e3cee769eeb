"""ZfsBackend tests with ``subprocess.run`` replaced by a recorder."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from workspaces.lifecycle.errors import (
    BackendError,
    BackendStatusError,
    BackendTransportError,
    PropertyParseError,
)
from workspaces.lifecycle.volumes import zfs
from workspaces.lifecycle.volumes.base import VolumeBackend
from workspaces.lifecycle.volumes.zfs import ZfsBackend


class FakeRun:
    """Records commands; answers with queued (stdout, stderr, returncode) tuples."""

    def __init__(self) -> None:
        self.commands: list[list[str]] = []
        self.responses: list[tuple[str, str, int]] = []

    def __call__(self, cmd: list[str], **kwargs) -> subprocess.CompletedProcess[str]:
        self.commands.append(cmd)
        stdout, stderr, code = self.responses.pop(0) if self.responses else ("", "", 0)
        return subprocess.CompletedProcess(cmd, code, stdout=stdout, stderr=stderr)


@pytest.fixture
def run(monkeypatch: pytest.MonkeyPatch) -> FakeRun:
    fake = FakeRun()
    monkeypatch.setattr(zfs.subprocess, "run", fake)
    return fake


@pytest.fixture
def zfs_backend() -> ZfsBackend:
    return ZfsBackend("/sbin/zfs")


def test_satisfies_protocol(zfs_backend: ZfsBackend) -> None:
    assert isinstance(zfs_backend, VolumeBackend)


def test_create_volume_creates_parents_first(zfs_backend: ZfsBackend, run: FakeRun) -> None:
    zfs_backend.create_volume("tank/P/alice/ws1")
    assert run.commands == [
        ["/sbin/zfs", "create", "-p", "tank/P/alice"],
        ["/sbin/zfs", "create", "tank/P/alice/ws1"],
    ]


def test_create_existing_volume_fails(zfs_backend: ZfsBackend, run: FakeRun) -> None:
    run.responses = [("", "", 0), ("", "cannot create 'tank/P/alice/ws1': dataset already exists\n", 1)]
    with pytest.raises(BackendStatusError, match="dataset already exists") as exc_info:
        zfs_backend.create_volume("tank/P/alice/ws1")
    assert exc_info.value.returncode == 1
    assert exc_info.value.command == ["/sbin/zfs", "create", "tank/P/alice/ws1"]


def test_destroy_and_rename(zfs_backend: ZfsBackend, run: FakeRun) -> None:
    zfs_backend.destroy_volume("tank/P/alice/ws1")
    zfs_backend.rename_volume("tank/P/alice/ws1", "tank/P/alice/ws2")
    assert run.commands == [
        ["/sbin/zfs", "destroy", "-r", "tank/P/alice/ws1"],
        ["/sbin/zfs", "rename", "tank/P/alice/ws1", "tank/P/alice/ws2"],
    ]


def test_set_property(zfs_backend: ZfsBackend, run: FakeRun) -> None:
    zfs_backend.set_property("tank/P/alice/ws1", "readonly", "on")
    assert run.commands == [["/sbin/zfs", "set", "readonly=on", "tank/P/alice/ws1"]]


def test_get_numeric_property(zfs_backend: ZfsBackend, run: FakeRun) -> None:
    run.responses = [("5368709120\n", "", 0)]
    assert zfs_backend.get_property("tank/P", "used") == 5368709120
    assert run.commands == [["/sbin/zfs", "get", "-H", "-p", "-o", "value", "used", "tank/P"]]


def test_get_string_property(zfs_backend: ZfsBackend, run: FakeRun) -> None:
    run.responses = [("/tank/P/alice/ws1\n", "", 0)]
    assert zfs_backend.get_property("tank/P/alice/ws1", "mountpoint") == "/tank/P/alice/ws1"


def test_get_numeric_property_not_a_number(zfs_backend: ZfsBackend, run: FakeRun) -> None:
    run.responses = [("-\n", "", 0)]
    with pytest.raises(PropertyParseError, match="not numeric"):
        zfs_backend.get_property("tank/P", "referenced")


@pytest.mark.parametrize("stdout", ["", "\n", "a\nb\n"])
def test_get_property_unexpected_output(zfs_backend: ZfsBackend, run: FakeRun, stdout: str) -> None:
    run.responses = [(stdout, "", 0)]
    with pytest.raises(PropertyParseError):
        zfs_backend.get_property("tank/P", "mountpoint")


def test_status_error_without_stderr(zfs_backend: ZfsBackend, run: FakeRun) -> None:
    run.responses = [("", "", 2)]
    with pytest.raises(BackendStatusError, match="exit status 2"):
        zfs_backend.destroy_volume("tank/P/alice/ws1")


def test_missing_binary_is_transport_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def boom(cmd, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", cmd[0])

    monkeypatch.setattr(zfs.subprocess, "run", boom)
    with pytest.raises(BackendTransportError, match="Could not run"):
        ZfsBackend("/nonexistent/zfs").destroy_volume("tank/x")


def test_restrict_mountpoint(zfs_backend: ZfsBackend, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    chowned: list[tuple[str, str, str]] = []
    monkeypatch.setattr(zfs.shutil, "chown", lambda path, user, group: chowned.append((str(path), user, group)))

    zfs_backend.restrict_mountpoint(str(tmp_path), "alice")

    assert tmp_path.stat().st_mode & 0o777 == 0o750
    assert chowned == [(str(tmp_path), "alice", "alice")]


def test_restrict_missing_mountpoint(zfs_backend: ZfsBackend, tmp_path: Path) -> None:
    with pytest.raises(BackendError, match="Failed to restrict"):
        zfs_backend.restrict_mountpoint(str(tmp_path / "missing"), "alice")
