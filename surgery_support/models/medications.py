"""Medications table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Table,
    Text,
    Uuid,
    func,
)

from surgery_support.models.base import metadata

medications = Table(
    "medications",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "user_id",
        Uuid,
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False,
    ),
    # Prescription
    Column("name", Text, nullable=False),
    Column("dosage", Text, nullable=True),
    Column("frequency", Text, nullable=True),
    # Clock times ("HH:MM") the dose is taken at
    Column("times", JSON, nullable=True),
    Column("instructions", Text, nullable=True),
    Column("start_date", Date, nullable=False),
    Column("end_date", Date, nullable=True),
    Column("category", Text, nullable=True),
    Column("side_effects", JSON, nullable=True),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    # Soft delete
    Column("deleted_at", DateTime(timezone=True), nullable=True),
    Index("idx_medications_user_id", "user_id"),
)
