"""Plain-text tables for the CLI.

Column widths are computed on the unstyled text so that ANSI styling from
``click.style`` never skews alignment.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

import click

from workspaces.lifecycle.models.enums import PoolColumn, WorkspaceColumn, WorkspaceState
from workspaces.lifecycle.models.report import PoolReport, WorkspaceReport

GIB = 1 << 30
PADDING = 2
SOON = timedelta(days=30)


@dataclass
class Cell:
    text: str
    align: str = "left"
    style: dict[str, Any] = field(default_factory=dict)

    def render(self, width: int) -> str:
        padded = self.text.rjust(width) if self.align == "right" else self.text.ljust(width)
        return click.style(padded, **self.style) if self.style else padded


def render_table(headers: Sequence[str], rows: Iterable[Sequence[Cell]]) -> str:
    rows = list(rows)
    header_cells = [Cell(h.upper(), style={"bold": True}) for h in headers]
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell.text))

    return "\n".join(_line(cells, widths) for cells in [header_cells, *rows])


def _line(cells: Sequence[Cell], widths: Sequence[int]) -> str:
    *head, (last, width) = zip(cells, widths, strict=True)
    # no trailing padding after a left-aligned last column
    parts = [c.render(w) for c, w in head]
    parts.append(last.render(width if last.align == "right" else 0))
    return (" " * PADDING).join(parts)


def _gib(n: int) -> str:
    return f"{n // GIB}G"


def _days(delta: timedelta) -> str:
    return f"{delta.days}d"


# -- Workspaces ----------------------------------------------------------------


def _expiry_cell(row: WorkspaceReport) -> Cell:
    if row.state is WorkspaceState.DELETABLE:
        return Cell("deleted soon", style={"fg": "red", "bold": True})
    if row.state is WorkspaceState.GRACE:
        return Cell(f"deleted in {row.remaining.days:>2}d", align="right", style={"fg": "red", "bold": True})
    text = f"expires in {row.remaining.days:>2}d"
    if row.remaining < SOON:
        return Cell(text, align="right", style={"fg": "yellow"})
    return Cell(text, align="right")


def _workspace_cell(row: WorkspaceReport, column: WorkspaceColumn) -> Cell:
    match column:
        case WorkspaceColumn.NAME:
            return Cell(row.name)
        case WorkspaceColumn.USER:
            return Cell(row.owner)
        case WorkspaceColumn.FS:
            return Cell(row.pool)
        case WorkspaceColumn.SIZE:
            return Cell(_gib(row.referenced), align="right")
        case WorkspaceColumn.EXPIRY:
            return _expiry_cell(row)
        case WorkspaceColumn.MOUNTPOINT:
            return Cell(row.mountpoint)


def render_workspaces(rows: Iterable[WorkspaceReport], columns: Sequence[WorkspaceColumn]) -> str:
    return render_table(
        [str(c) for c in columns],
        ([_workspace_cell(row, c) for c in columns] for row in rows),
    )


# -- Pools ---------------------------------------------------------------------


def _pool_cell(row: PoolReport, column: PoolColumn) -> Cell:
    match column:
        case PoolColumn.NAME:
            cell = Cell(row.name)
        case PoolColumn.USED:
            cell = Cell(_gib(row.used), align="right")
        case PoolColumn.FREE:
            cell = Cell(_gib(row.available), align="right")
        case PoolColumn.TOTAL:
            cell = Cell(_gib(row.total), align="right")
        case PoolColumn.DURATION:
            cell = Cell("disabled") if row.disabled else Cell(_days(row.max_duration), align="right")
        case PoolColumn.RETENTION:
            cell = Cell(_days(row.expired_retention), align="right")

    # colour by fill level, dim when disabled
    if row.fill_ratio > 0.9:
        cell.style["fg"] = "red"
    elif row.fill_ratio > 0.75:
        cell.style["fg"] = "yellow"
    if row.disabled:
        cell.style["dim"] = True
    return cell


def render_pools(rows: Iterable[PoolReport], columns: Sequence[PoolColumn]) -> str:
    return render_table(
        [str(c) for c in columns],
        ([_pool_cell(row, c) for c in columns] for row in rows),
    )
