"""Create cached price series table.

Revision ID: 0001_create_cached_price_series
Revises:
Create Date: 2026-10-17 09:00:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op


revision = "0001_create_cached_price_series"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "cached_price_series",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("metal", sa.String(length=16), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("points", sa.JSON(), nullable=False),
        sa.Column("data_start_date", sa.Date(), nullable=True),
        sa.Column("data_end_date", sa.Date(), nullable=True),
        sa.Column("last_seeded_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("metal", "currency", name="uq_cached_price_series_key"),
    )
    op.create_index(
        "ix_cached_price_series_key",
        "cached_price_series",
        ["metal", "currency"],
    )


def downgrade() -> None:
    op.drop_index("ix_cached_price_series_key", table_name="cached_price_series")
    op.drop_table("cached_price_series")
