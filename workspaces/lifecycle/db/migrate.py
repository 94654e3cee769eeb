"""Schema versioning for the metadata store.

Alembic revisions are numbered ``0001``, ``0002``, ... so the revision stored
in ``alembic_version`` doubles as a monotonic schema version.  Opening a
store applies every pending revision in order inside one transaction, and
refuses a store whose version is newer than the newest packaged revision.
"""

from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from loguru import logger
from sqlalchemy.engine import Connection, Engine

from workspaces.lifecycle.errors import SchemaError

SCRIPT_LOCATION = Path(__file__).resolve().parent.parent / "alembic"


def alembic_config(connection: Connection | None = None) -> Config:
    """Build an Alembic Config pointing at the packaged migration scripts.

    No ini file is involved, so Alembic never reconfigures logging.
    """
    cfg = Config()
    cfg.set_main_option("script_location", str(SCRIPT_LOCATION))
    if connection is not None:
        cfg.attributes["connection"] = connection
    return cfg


def head_version() -> int:
    head = ScriptDirectory.from_config(alembic_config()).get_current_head()
    return int(head) if head is not None else 0


def current_version(connection: Connection) -> int:
    """Schema version recorded in the database, 0 for an empty database."""
    revision = MigrationContext.configure(connection).get_current_revision()
    if revision is None:
        return 0
    try:
        return int(revision)
    except ValueError:
        msg = f"Unrecognised schema revision {revision!r}; the store was not written by workspaces"
        raise SchemaError(msg) from None


def upgrade(engine: Engine) -> int:
    """Bring the schema up to date.  Returns the resulting version.

    Raises ``SchemaError`` if the store is newer than this release.
    """
    head = head_version()
    with engine.begin() as connection:
        version = current_version(connection)
        if version > head:
            msg = f"Store schema version {version} is newer than the supported version {head}"
            raise SchemaError(msg)
        if version < head:
            logger.info("Upgrading store schema from version {} to {}", version, head)
            command.upgrade(alembic_config(connection), "head")
    return head
