"""Checklist items table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
    Uuid,
    func,
    text,
)

from surgery_support.models.base import metadata

checklist_items = Table(
    "checklist_items",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Patient the task is assigned to
    Column(
        "user_id",
        Uuid,
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False,
    ),
    # Task details
    Column("title", Text, nullable=False),
    Column("description", Text, nullable=True),
    Column("completed", Boolean, nullable=False, server_default=text("false")),
    Column("priority", String(10), nullable=True),
    Column("category", Text, nullable=True),
    Column("due_date", Date, nullable=True),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    # Soft delete
    Column("deleted_at", DateTime(timezone=True), nullable=True),
    CheckConstraint(
        "priority IS NULL OR priority IN ('low', 'medium', 'high')",
        name="checklist_items_priority_check",
    ),
    Index("idx_checklist_items_user_id", "user_id"),
)
