"""Role and user profile tables using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
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

roles = Table(
    "roles",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("name", Text, nullable=False, unique=True),
    # Informational copy of the static capability table
    Column("permissions", JSON, nullable=False, default=list),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

user_profiles = Table(
    "user_profiles",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("email", Text, nullable=False, unique=True),
    Column("full_name", Text, nullable=True),
    Column("phone", String(20), nullable=True),
    Column("role_id", Uuid, ForeignKey("roles.id", ondelete="SET NULL"), nullable=True),
    # Account state
    Column("is_active", Boolean, nullable=False, server_default=text("true")),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("last_activity_at", DateTime(timezone=True), nullable=True),
    Column("deleted_at", DateTime(timezone=True), nullable=True),
    Index("idx_user_profiles_role_id", "role_id"),
    Index("idx_user_profiles_full_name", "full_name"),
)
