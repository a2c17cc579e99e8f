"""Conversation and message tables using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Table,
    Text,
    Uuid,
    func,
    text,
)

from surgery_support.models.base import metadata

conversations = Table(
    "conversations",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Every conversation is between one patient and the care team
    Column(
        "patient_id",
        Uuid,
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("subject", Text, nullable=True),
    Column("last_message_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("deleted_at", DateTime(timezone=True), nullable=True),
    Index("idx_conversations_patient_id", "patient_id"),
    Index("idx_conversations_last_message_at", "last_message_at"),
)

messages = Table(
    "messages",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "conversation_id",
        Uuid,
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "sender_id",
        Uuid,
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("content", Text, nullable=False),
    Column("sent_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    # Profile IDs (as strings) that have read the message
    Column("read_by", JSON, nullable=False, default=list),
    Column("urgent", Boolean, nullable=False, server_default=text("false")),
    Column("attachments", JSON, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("deleted_at", DateTime(timezone=True), nullable=True),
    Index("idx_messages_conversation_sent_at", "conversation_id", "sent_at"),
)
