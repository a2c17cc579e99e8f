"""Create appointments table

Revision ID: 002
Revises: 001
Create Date: 2026-09-28 10:30:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the appointments table with soft delete."""
    op.create_table(
        "appointments",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("user_profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time", sa.String(5), nullable=False),
        sa.Column("type", sa.String(20), nullable=False, server_default="consultation"),
        sa.Column("provider", sa.Text(), nullable=False, server_default="Healthcare Provider"),
        sa.Column("location", sa.Text(), nullable=False, server_default="Medical Center"),
        sa.Column("is_virtual", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column("deleted_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.CheckConstraint(
            "type IN ('surgery', 'consultation', 'follow-up', 'test')",
            name="appointments_type_check",
        ),
        sa.CheckConstraint("time ~ '^[0-2][0-9]:[0-5][0-9]$'", name="appointments_time_check"),
    )

    op.create_index("idx_appointments_user_id", "appointments", ["user_id"])
    op.create_index("idx_appointments_date_time", "appointments", ["date", "time"])
    op.create_index(
        "idx_appointments_provider_slot",
        "appointments",
        ["provider", "date", "time"],
        postgresql_where=sa.text("deleted_at IS NULL"),
    )


def downgrade() -> None:
    """Drop the appointments table."""
    op.drop_index("idx_appointments_provider_slot", table_name="appointments")
    op.drop_index("idx_appointments_date_time", table_name="appointments")
    op.drop_index("idx_appointments_user_id", table_name="appointments")
    op.drop_table("appointments")
