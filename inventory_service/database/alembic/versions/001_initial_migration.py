"""Initial migration

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create inventory table
    op.create_table(
        "inventory",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.Column("product_id", sa.String(length=64), nullable=False),
        sa.Column("quantity", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("created_by", sa.String(length=255), nullable=False),
        sa.Column("updated_by", sa.String(length=255), nullable=True),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("deleted_by", sa.String(length=255), nullable=True),
        sa.CheckConstraint("quantity >= 0", name="inventory_quantity_non_negative"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id"),
    )

    # Create inventory_movements table
    op.create_table(
        "inventory_movements",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("inventory_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("quantity", sa.BigInteger(), nullable=False),
        sa.Column("quantity_before", sa.BigInteger(), nullable=False),
        sa.Column("quantity_after", sa.BigInteger(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("reference", sa.String(length=255), nullable=True),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.Column("created_by", sa.String(length=255), nullable=False),
        sa.CheckConstraint(
            "quantity_after = quantity_before + quantity",
            name="inventory_movement_balanced",
        ),
        sa.CheckConstraint("quantity_after >= 0", name="inventory_movement_non_negative"),
        sa.ForeignKeyConstraint(["inventory_id"], ["inventory.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_inventory_movements_inventory_id", "inventory_movements", ["inventory_id"])
    op.create_index("idx_inventory_movements_type", "inventory_movements", ["type"])
    op.create_index("idx_inventory_movements_created_at", "inventory_movements", ["created_at"])
    op.create_index("idx_inventory_movements_reference", "inventory_movements", ["reference"])

    # Create processed_events table
    op.create_table(
        "processed_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.String(length=255), nullable=False),
        sa.Column("event_type", sa.String(length=100), nullable=False),
        sa.Column("event_data", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.Column(
            "processing_result",
            sa.String(length=50),
            nullable=False,
            server_default="success",
        ),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("event_id"),
    )
    op.create_index("idx_processed_events_event_id", "processed_events", ["event_id"])
    op.create_index("idx_processed_events_event_type", "processed_events", ["event_type"])
    op.create_index(
        "idx_processed_events_type_created",
        "processed_events",
        ["event_type", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("idx_processed_events_type_created", table_name="processed_events")
    op.drop_index("idx_processed_events_event_type", table_name="processed_events")
    op.drop_index("idx_processed_events_event_id", table_name="processed_events")
    op.drop_table("processed_events")

    op.drop_index("idx_inventory_movements_reference", table_name="inventory_movements")
    op.drop_index("idx_inventory_movements_created_at", table_name="inventory_movements")
    op.drop_index("idx_inventory_movements_type", table_name="inventory_movements")
    op.drop_index("idx_inventory_movements_inventory_id", table_name="inventory_movements")
    op.drop_table("inventory_movements")

    op.drop_table("inventory")
