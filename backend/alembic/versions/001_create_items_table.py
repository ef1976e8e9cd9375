"""Create items table

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates the ledger table, one row per tracked item.
How:   Table name follows COLLECTION_NAME (default "Waifus") so the
       migration and the ORM model always agree.

Rollback: downgrade() drops the table (destructive — all counters lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

from waifupicks.config import settings

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        settings.collection_name,
        sa.Column(
            "id",
            sa.String(255),
            nullable=False,
            comment="Client-supplied stable identifier",
        ),
        sa.Column(
            "image_url",
            sa.Text(),
            nullable=False,
            comment="Display reference, opaque to the backend",
        ),
        sa.Column(
            "source",
            sa.String(255),
            nullable=True,
            comment="Provenance tag, opaque to the backend",
        ),
        sa.Column("wins", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("losses", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("wins >= 0", name="ck_items_wins_non_negative"),
        sa.CheckConstraint("losses >= 0", name="ck_items_losses_non_negative"),
    )


def downgrade() -> None:
    op.drop_table(settings.collection_name)
