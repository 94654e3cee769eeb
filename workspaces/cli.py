import re
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import timedelta
from typing import TYPE_CHECKING

import click

from workspaces.lifecycle.errors import WorkspacesError
from workspaces.lifecycle.identity import resolve_actor
from workspaces.lifecycle.models.enums import (
    DEFAULT_POOL_COLUMNS,
    DEFAULT_WORKSPACE_COLUMNS,
    PoolColumn,
    WorkspaceColumn,
)
from workspaces.lifecycle.settings import WorkspacesSettings, get_settings
from workspaces.lifecycle.volumes.base import VolumeBackend

if TYPE_CHECKING:
    from workspaces.lifecycle.engine import LifecycleEngine
    from workspaces.lifecycle.store.sql import SqlStore

PATHSAFE = re.compile(r"^[A-Za-z0-9_-]+$")


class AliasedGroup(click.Group):
    """Group that also resolves the short command aliases."""

    aliases = {"c": "create", "mv": "rename", "ls": "list", "ex": "extend", "fi": "filesystems"}

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        return super().get_command(ctx, self.aliases.get(cmd_name, cmd_name))

    def resolve_command(
        self, ctx: click.Context, args: list[str]
    ) -> tuple[str | None, click.Command | None, list[str]]:
        _, cmd, args = super().resolve_command(ctx, args)
        return (cmd.name if cmd else None), cmd, args


def _pathsafe(_ctx: click.Context, _param: click.Parameter, value):
    """Ensure identifiers only contain the characters [A-Za-z0-9_-]."""
    if value is None:
        return value
    values = value if isinstance(value, tuple) else (value,)
    for v in values:
        if not PATHSAFE.match(v):
            msg = f"`{v}` must contain only the characters [A-Za-z0-9_-]"
            raise click.BadParameter(msg)
    return value


def _current_user() -> str:
    return resolve_actor().name


def _create_backend(settings: WorkspacesSettings) -> VolumeBackend:
    from workspaces.lifecycle.volumes.zfs import ZfsBackend

    return ZfsBackend(settings.zfs_binary)


@contextmanager
def _domain_errors() -> Iterator[None]:
    """Report domain errors on stderr and exit with their code."""
    try:
        yield
    except WorkspacesError as exc:
        click.echo(str(exc), err=True)
        sys.exit(exc.exit_code)


@contextmanager
def _store() -> Iterator["SqlStore"]:
    from workspaces.lifecycle.store.sql import SqlStore

    store = SqlStore.open(get_settings().database_path)
    try:
        yield store
    finally:
        store.close()


@contextmanager
def _engine() -> Iterator[tuple["LifecycleEngine", WorkspacesSettings]]:
    """Open the store and yield a ready engine with the settings it was built from."""
    from workspaces.lifecycle.engine import LifecycleEngine

    settings = get_settings()
    with _domain_errors(), _store() as store:
        yield LifecycleEngine(store, _create_backend(settings), settings.pools), settings


user_option = click.option(
    "-u",
    "--user",
    default=_current_user,
    callback=_pathsafe,
    show_default="current user",
    help="User the workspace belongs to.",
)
pool_option = click.option(
    "-f",
    "--filesystem",
    "pool_name",
    metavar="FILESYSTEM",
    default=None,
    help="Filesystem of the workspace.",
)
duration_option = click.option(
    "-d",
    "--duration",
    required=True,
    type=click.IntRange(min=0),
    help="Duration in days; at most the DURATION shown by `workspaces filesystems`.",
)


@click.group(cls=AliasedGroup)
@click.version_option(package_name="workspaces")
def main() -> None:
    """Workspaces - ephemeral, owner-scoped ZFS datasets with an expiry date."""
    from workspaces.lifecycle.log import setup_logging

    settings = get_settings()
    setup_logging(settings.log_level, settings.quiet_loggers)


@main.command()
@click.argument("name", callback=_pathsafe)
@duration_option
@user_option
@pool_option
def create(name: str, duration: int, user: str, pool_name: str | None) -> None:
    """Create a new workspace."""
    with _engine() as (engine, settings):
        pool = settings.resolve_pool(pool_name)
        mountpoint = engine.create(pool, user, name, timedelta(days=duration), resolve_actor())
    click.echo(f"Created workspace at {mountpoint}")


@main.command()
@click.argument("src", callback=_pathsafe)
@click.argument("dest", callback=_pathsafe)
@user_option
@pool_option
def rename(src: str, dest: str, user: str, pool_name: str | None) -> None:
    """Rename an already existing workspace."""
    with _engine() as (engine, settings):
        pool = settings.resolve_pool(pool_name)
        engine.rename(pool, user, src, dest, resolve_actor())


@main.command(name="list")
@click.option("-u", "--user", "users", multiple=True, callback=_pathsafe, help="Only show workspaces of USER.")
@click.option("-f", "--filesystem", "pools", multiple=True, metavar="FILESYSTEM", help="Only show FILESYSTEM.")
@click.option(
    "-o",
    "--output",
    "columns",
    multiple=True,
    type=click.Choice([str(c) for c in WorkspaceColumn], case_sensitive=False),
    help="Columns to display.",
)
def list_(users: tuple[str, ...], pools: tuple[str, ...], columns: tuple[str, ...]) -> None:
    """List workspaces."""
    from workspaces.lifecycle.render import render_workspaces

    selected = [WorkspaceColumn(c.lower()) for c in columns] or list(DEFAULT_WORKSPACE_COLUMNS)
    with _engine() as (engine, _):
        rows = engine.list_workspaces(owners=users or None, pools=pools or None)
        click.echo(render_workspaces(rows, selected))


@main.command()
@click.argument("name", callback=_pathsafe)
@duration_option
@user_option
@pool_option
def extend(name: str, duration: int, user: str, pool_name: str | None) -> None:
    """Postpone the expiry date of an already existing workspace.

    If DURATION is fewer than the current days until expiry, only write
    access is restored.
    """
    with _engine() as (engine, settings):
        pool = settings.resolve_pool(pool_name)
        engine.extend(pool, user, name, timedelta(days=duration), resolve_actor())


@main.command()
@click.argument("name", callback=_pathsafe)
@user_option
@pool_option
@click.option(
    "--terminally",
    "delete_on_next_clean",
    is_flag=True,
    help="Delete this workspace on the next `clean`, which may run at any time.",
)
def expire(name: str, user: str, pool_name: str | None, delete_on_next_clean: bool) -> None:
    """Expire a workspace, making it read-only."""
    with _engine() as (engine, settings):
        pool = settings.resolve_pool(pool_name)
        engine.expire(pool, user, name, resolve_actor(), delete_on_next_clean=delete_on_next_clean)


@main.command()
@click.option(
    "-o",
    "--output",
    "columns",
    multiple=True,
    type=click.Choice([str(c) for c in PoolColumn], case_sensitive=False),
    help="Columns to display.",
)
def filesystems(columns: tuple[str, ...]) -> None:
    """List all configured filesystems."""
    from workspaces.lifecycle.render import render_pools

    selected = [PoolColumn(c.lower()) for c in columns] or list(DEFAULT_POOL_COLUMNS)
    with _engine() as (engine, _):
        click.echo(render_pools(engine.pool_usage(), selected))


@main.command()
def clean() -> None:
    """Clean up workspaces which have not been extended in a while.

    Deletes every workspace shown as `deleted soon` by `workspaces list`,
    including other users' workspaces.
    """
    with _engine() as (engine, _):
        report = engine.clean()
    if report.failed:
        sys.exit(1)


# ---------------------------------------------------------------------------
# Database management
# ---------------------------------------------------------------------------


@main.group()
def db() -> None:
    """Database schema management commands."""


@db.command()
def upgrade() -> None:
    """Apply pending schema migrations."""
    with _domain_errors(), _store():
        pass
    click.echo("Database is up to date.")


@db.command()
def current() -> None:
    """Show the schema version without migrating."""
    from workspaces.lifecycle.db import migrate
    from workspaces.lifecycle.db.engine import READONLY, create_engine

    engine = create_engine(get_settings().database_path)
    try:
        with _domain_errors(), engine.connect() as conn:
            conn = conn.execution_options(**{READONLY: True})
            version = migrate.current_version(conn)
    finally:
        engine.dispose()
    click.echo(f"Schema version {version} (newest known: {migrate.head_version()})")


if __name__ == "__main__":
    main()
