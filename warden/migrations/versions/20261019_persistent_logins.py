"""Add persistent_logins table for remember-me token series.

Revision ID: 20261019_persistent_logins
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_persistent_logins"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "persistent_logins",
        sa.Column("series", sa.String(length=64), primary_key=True),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("token", sa.String(length=64), nullable=False),
        sa.Column("last_used", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_persistent_logins_username", "persistent_logins", ["username"])


def downgrade():
    op.drop_index("ix_persistent_logins_username", table_name="persistent_logins")
    op.drop_table("persistent_logins")
