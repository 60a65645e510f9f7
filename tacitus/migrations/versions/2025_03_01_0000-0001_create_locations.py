"""create locations table

Revision ID: 0001
Revises:
Create Date: 2025-03-01 00:00:00.000000

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "locations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("location_name", sa.Text(), nullable=False,
                  comment="Place name as supplied by the caller"),
        sa.Column("articles", sa.Text(), nullable=False,
                  comment="JSON array of Wikipedia article URLs"),
        sa.Column("created_at", sa.DateTime(),
                  server_default=sa.func.current_timestamp()),
        sqlite_autoincrement=True,
    )


def downgrade() -> None:
    op.drop_table("locations")
