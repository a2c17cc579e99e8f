"""Appointments table model using SQLAlchemy Core."""

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

appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Owning patient
    Column(
        "user_id",
        Uuid,
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False,
    ),
    # Appointment details
    Column("title", Text, nullable=False),
    Column("date", Date, nullable=False),
    # Local clock time, "HH:MM"
    Column("time", String(5), nullable=False),
    Column("type", String(20), nullable=False, server_default="consultation"),
    Column("provider", Text, nullable=False, server_default="Healthcare Provider"),
    Column("location", Text, nullable=False, server_default="Medical Center"),
    Column("is_virtual", Boolean, nullable=False, server_default=text("false")),
    Column("notes", Text, nullable=True),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    # Soft delete (healthcare compliance)
    Column("deleted_at", DateTime(timezone=True), nullable=True),
    # Constraints
    CheckConstraint(
        "type IN ('surgery', 'consultation', 'follow-up', 'test')",
        name="appointments_type_check",
    ),
    Index("idx_appointments_user_id", "user_id"),
    Index("idx_appointments_date_time", "date", "time"),
    Index("idx_appointments_provider_slot", "provider", "date", "time"),
)
