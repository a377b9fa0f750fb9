"""Create the template_record table.

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

from teleporter.adapters.sqlalchemy.mappings import UTCDateTime

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "template_record",
        sa.Column("repository", sa.String(), nullable=False),
        sa.Column("template_path", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("master_checksum", sa.String(length=64), nullable=True),
        sa.Column("deployed_checksum", sa.String(length=64), nullable=True),
        sa.Column("target_checksum", sa.String(length=64), nullable=True),
        sa.Column("last_updated", UTCDateTime(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("repository", "template_path", name=op.f("pk_template_record")),
    )
    op.create_index(
        "ix_template_record_category",
        "template_record",
        ["category", "repository", "template_path"],
    )


def downgrade() -> None:
    op.drop_index("ix_template_record_category", table_name="template_record")
    op.drop_table("template_record")
