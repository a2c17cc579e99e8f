"""Create checklist, medication and messaging tables

Revision ID: 003
Revises: 002
Create Date: 2026-10-19 09:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op
from surgery_support.core.roles import RoleName, role_permissions

# revision identifiers, used by Alembic.
revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
    )


def _profile_fk(name: str) -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False,
    )


def _audit_columns() -> list[sa.Column]:
    return [
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
    ]


def upgrade() -> None:
    """Create the patient care record tables and refresh role permissions."""
    op.create_table(
        "checklist_items",
        _uuid_pk(),
        _profile_fk("user_id"),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("priority", sa.String(10), nullable=True),
        sa.Column("category", sa.Text(), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        *_audit_columns(),
        sa.CheckConstraint(
            "priority IS NULL OR priority IN ('low', 'medium', 'high')",
            name="checklist_items_priority_check",
        ),
    )
    op.create_index("idx_checklist_items_user_id", "checklist_items", ["user_id"])

    op.create_table(
        "medications",
        _uuid_pk(),
        _profile_fk("user_id"),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("dosage", sa.Text(), nullable=True),
        sa.Column("frequency", sa.Text(), nullable=True),
        sa.Column("times", postgresql.JSON(), nullable=True),
        sa.Column("instructions", sa.Text(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("category", sa.Text(), nullable=True),
        sa.Column("side_effects", postgresql.JSON(), nullable=True),
        *_audit_columns(),
    )
    op.create_index("idx_medications_user_id", "medications", ["user_id"])

    op.create_table(
        "conversations",
        _uuid_pk(),
        _profile_fk("patient_id"),
        sa.Column("subject", sa.Text(), nullable=True),
        sa.Column(
            "last_message_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        *_audit_columns(),
    )
    op.create_index("idx_conversations_patient_id", "conversations", ["patient_id"])
    op.create_index("idx_conversations_last_message_at", "conversations", ["last_message_at"])

    op.create_table(
        "messages",
        _uuid_pk(),
        sa.Column(
            "conversation_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("conversations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _profile_fk("sender_id"),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "sent_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column("read_by", postgresql.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("urgent", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("attachments", postgresql.JSON(), nullable=True),
        *_audit_columns(),
    )
    op.create_index(
        "idx_messages_conversation_sent_at", "messages", ["conversation_id", "sent_at"]
    )

    # Roles seeded by 001 predate the care record capabilities
    roles = sa.table("roles", sa.column("name", sa.Text), sa.column("permissions", sa.JSON))
    for role in RoleName:
        op.execute(
            roles.update()
            .where(roles.c.name == role.value)
            .values(permissions=role_permissions(role))
        )


def downgrade() -> None:
    """Drop the patient care record tables.

    Role permission lists are informational and keep their upgraded values.
    """
    op.drop_index("idx_messages_conversation_sent_at", table_name="messages")
    op.drop_table("messages")
    op.drop_index("idx_conversations_last_message_at", table_name="conversations")
    op.drop_index("idx_conversations_patient_id", table_name="conversations")
    op.drop_table("conversations")
    op.drop_index("idx_medications_user_id", table_name="medications")
    op.drop_table("medications")
    op.drop_index("idx_checklist_items_user_id", table_name="checklist_items")
    op.drop_table("checklist_items")
