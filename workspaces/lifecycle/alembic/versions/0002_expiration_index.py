"""Index expiration_time for the clean sweep.

Revision ID: 0002
Revises: 0001
"""

from __future__ import annotations

from alembic import op

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_index("ix_workspaces_expiration_time", "workspaces", ["expiration_time"])


def downgrade() -> None:
    op.drop_index("ix_workspaces_expiration_time", table_name="workspaces")
