"""Create the workspaces table.

Revision ID: 0001
Revises:
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "workspaces",
        sa.Column("pool", sa.String(), nullable=False),
        sa.Column("owner", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("expiration_time", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("pool", "owner", "name", name="pk_workspaces"),
    )


def downgrade() -> None:
    op.drop_table("workspaces")
