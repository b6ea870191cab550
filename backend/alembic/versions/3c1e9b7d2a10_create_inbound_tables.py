"""create arrivals / transactions / vas tables

Revision ID: 3c1e9b7d2a10
Revises:
Create Date: 2026-02-13 08:01:49.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1e9b7d2a10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    """Upgrade schema: the three inbound logs."""
    op.create_table(
        "arrivals",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("date", sa.String(), nullable=True),
        sa.Column("arrival_time", sa.String(), nullable=True),
        sa.Column("brand", sa.String(), nullable=False, server_default=""),
        sa.Column("receipt_no", sa.String(), nullable=False),
        sa.Column("po_no", sa.String(), nullable=False),
        sa.Column("po_qty", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("operator", sa.String(), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_arrivals_receipt_no", "arrivals", ["receipt_no"])
    op.create_index("ix_arrivals_po_no", "arrivals", ["po_no"])
    op.create_index("ix_arrivals_created_at", "arrivals", ["created_at"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("date", sa.String(), nullable=True),
        sa.Column("time_transaction", sa.String(), nullable=True),
        sa.Column("receipt_no", sa.String(), nullable=False),
        sa.Column("sku", sa.String(), nullable=False),
        sa.Column("operate_type", sa.String(), nullable=False, server_default="receive"),
        sa.Column("qty", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("operator", sa.String(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_transactions_receipt_no", "transactions", ["receipt_no"])
    op.create_index("ix_transactions_created_at", "transactions", ["created_at"])

    op.create_table(
        "vas",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("date", sa.String(), nullable=True),
        sa.Column("start_time", sa.String(), nullable=True),
        sa.Column("end_time", sa.String(), nullable=True),
        sa.Column("duration", sa.String(), nullable=True),
        sa.Column("brand", sa.String(), nullable=True),
        sa.Column("sku", sa.String(), nullable=True),
        sa.Column("vas_type", sa.String(), nullable=True),
        sa.Column("qty", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("operator", sa.String(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_vas_created_at", "vas", ["created_at"])


def downgrade() -> None:
    """Downgrade schema: drop the three tables."""
    op.drop_index("ix_vas_created_at", table_name="vas")
    op.drop_table("vas")
    op.drop_index("ix_transactions_created_at", table_name="transactions")
    op.drop_index("ix_transactions_receipt_no", table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("ix_arrivals_created_at", table_name="arrivals")
    op.drop_index("ix_arrivals_po_no", table_name="arrivals")
    op.drop_index("ix_arrivals_receipt_no", table_name="arrivals")
    op.drop_table("arrivals")
