from __future__ import annotations

from datetime import UTC, datetime, timedelta

import click

from workspaces.lifecycle.models.enums import DEFAULT_POOL_COLUMNS, PoolColumn, WorkspaceColumn, WorkspaceState
from workspaces.lifecycle.models.report import PoolReport, WorkspaceReport
from workspaces.lifecycle.render import Cell, render_pools, render_table, render_workspaces

T0 = datetime(2026, 1, 1, tzinfo=UTC)
GIB = 1 << 30


def _workspace(name: str, state: WorkspaceState, remaining_days: int) -> WorkspaceReport:
    return WorkspaceReport(
        name=name,
        owner="alice",
        pool="P",
        referenced=3 * GIB + 5,
        mountpoint=f"/tank/P/alice/{name}",
        expiration_time=T0,
        deletion_time=T0 + timedelta(days=7),
        state=state,
        remaining=timedelta(days=remaining_days, hours=3),
    )


def test_render_table_aligns_on_plain_text() -> None:
    rows = [
        [Cell("a"), Cell("1", align="right")],
        [Cell("longer", style={"fg": "red"}), Cell("100", align="right")],
    ]

    out = click.unstyle(render_table(["name", "n"], rows))

    assert out.splitlines() == [
        "NAME    N",
        "a         1",
        "longer  100",
    ]


def test_render_workspaces_expiry_texts() -> None:
    rows = [
        _workspace("long", WorkspaceState.ACTIVE, 45),
        _workspace("short", WorkspaceState.ACTIVE, 3),
        _workspace("grace", WorkspaceState.GRACE, 2),
        _workspace("gone", WorkspaceState.DELETABLE, 0),
    ]

    out = click.unstyle(render_workspaces(rows, [WorkspaceColumn.NAME, WorkspaceColumn.EXPIRY]))
    lines = out.splitlines()

    assert lines[0].split() == ["NAME", "EXPIRY"]
    assert lines[1].startswith("long") and lines[1].endswith("expires in 45d")
    assert lines[2].endswith("expires in  3d")
    assert lines[3].endswith("deleted in  2d")
    assert "deleted soon" in lines[4]


def test_render_workspaces_styles_by_urgency() -> None:
    short = render_workspaces([_workspace("short", WorkspaceState.ACTIVE, 3)], [WorkspaceColumn.EXPIRY])
    long = render_workspaces([_workspace("long", WorkspaceState.ACTIVE, 45)], [WorkspaceColumn.EXPIRY])

    assert click.style("expires in  3d", fg="yellow") in short
    assert "expires in 45d" in long.splitlines()[1]
    assert "\x1b[" not in long.splitlines()[1]


def test_render_workspaces_size_and_mountpoint() -> None:
    out = render_workspaces(
        [_workspace("ws1", WorkspaceState.ACTIVE, 10)],
        [WorkspaceColumn.USER, WorkspaceColumn.FS, WorkspaceColumn.SIZE, WorkspaceColumn.MOUNTPOINT],
    )
    assert click.unstyle(out).splitlines()[1].split() == ["alice", "P", "3G", "/tank/P/alice/ws1"]


def test_render_pools() -> None:
    rows = [
        PoolReport(
            name="ssd",
            used=10 * GIB,
            available=90 * GIB,
            max_duration=timedelta(days=30),
            expired_retention=timedelta(days=7),
        ),
        PoolReport(
            name="hdd",
            used=95 * GIB,
            available=5 * GIB,
            max_duration=timedelta(days=90),
            expired_retention=timedelta(days=14),
            disabled=True,
        ),
    ]

    out = render_pools(rows, list(DEFAULT_POOL_COLUMNS))
    lines = click.unstyle(out).splitlines()

    assert lines[0].split() == ["NAME", "USED", "FREE", "TOTAL", "DURATION", "RETENTION"]
    assert lines[1].split() == ["ssd", "10G", "90G", "100G", "30d", "7d"]
    assert lines[2].split() == ["hdd", "95G", "5G", "100G", "disabled", "14d"]
    assert click.style("hdd ", fg="red", dim=True) in out


def test_render_pools_single_column() -> None:
    row = PoolReport(
        name="ssd",
        used=80 * GIB,
        available=20 * GIB,
        max_duration=timedelta(days=30),
        expired_retention=timedelta(days=7),
    )
    out = render_pools([row], [PoolColumn.NAME])
    assert click.style("ssd", fg="yellow") in out
