"""Conversation and message schemas."""

import datetime as dt
from uuid import UUID

from pydantic import BaseModel, Field

NO_MESSAGES_PREVIEW = "No messages yet"


class ConversationCreate(BaseModel):
    """Open a conversation; patients may only open their own."""

    patient_id: UUID | None = None
    subject: str | None = Field(None, max_length=200)


class ConversationResponse(BaseModel):
    """Schema for conversation response."""

    id: UUID
    patient_id: UUID
    subject: str | None = None
    last_message_at: dt.datetime
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = {"from_attributes": True}


class ConversationSummary(ConversationResponse):
    """Conversation list entry with its latest activity."""

    message_count: int
    latest_message: str
    latest_message_time: dt.datetime
    has_unread: bool


class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)
    urgent: bool = False
    attachments: list[str] | None = None


class MessageUpdate(BaseModel):
    content: str | None = Field(None, min_length=1, max_length=5000)
    urgent: bool | None = None


class MessageSender(BaseModel):
    """Who wrote a message."""

    id: UUID
    full_name: str | None = None
    role: str | None = None


class MessageResponse(BaseModel):
    """Schema for message response."""

    id: UUID
    conversation_id: UUID
    sender_id: UUID
    content: str
    sent_at: dt.datetime
    read_by: list[str] = []
    urgent: bool
    attachments: list[str] | None = None
    created_at: dt.datetime
    updated_at: dt.datetime
    sender: MessageSender | None = None

    model_config = {"from_attributes": True}


class MarkReadResponse(BaseModel):
    """How many messages a read receipt touched."""

    marked: int
