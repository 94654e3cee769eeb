"""Alembic migration environment.

The store hands over an open connection through ``config.attributes`` so
that the version check and every pending upgrade run inside its single
transaction.  Without one, the database path comes from WorkspacesSettings.
"""

from __future__ import annotations

from alembic import context

from workspaces.lifecycle.db.engine import create_engine
from workspaces.lifecycle.db.tables import Base
from workspaces.lifecycle.settings import get_settings

config = context.config

# -- Target metadata for autogenerate ----------------------------------------
target_metadata = Base.metadata


def _configure_and_run(connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=True,
        transactional_ddl=True,
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations on the shared connection, or on a fresh engine."""
    connection = config.attributes.get("connection")
    if connection is not None:
        _configure_and_run(connection)
        return

    engine = create_engine(get_settings().database_path)
    try:
        with engine.connect() as connection:
            _configure_and_run(connection)
            connection.commit()
    finally:
        engine.dispose()


if context.is_offline_mode():
    msg = "Offline migrations are not supported for the SQLite store."
    raise RuntimeError(msg)

run_migrations_online()
