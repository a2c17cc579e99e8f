"""Notification schemas."""

from datetime import date
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class NotificationType(str, Enum):
    """Appointment events that produce a notification."""

    RESCHEDULE = "reschedule"
    CANCEL = "cancel"
    REMINDER = "reminder"
    NEW = "new"


class NotificationRecipient(BaseModel):
    """Someone to notify about an appointment change."""

    id: str
    name: str
    email: str | None = None
    phone: str | None = None
    role: str


class AppointmentNotification(BaseModel):
    """Ephemeral description of an appointment event."""

    type: NotificationType
    appointment_id: UUID
    appointment_title: str
    old_date: date | None = None
    old_time: str | None = None
    new_date: date | None = None
    new_time: str | None = None
    patient_name: str
    provider_name: str
    location: str
    notes: str | None = None


class NotificationResult(BaseModel):
    """Outcome of a fan-out."""

    success: bool
    sent_to: int


class NotificationPreferences(BaseModel):
    """Per-user delivery preferences."""

    email: bool = True
    sms: bool = True
    push: bool = False
    reschedule_notifications: bool = True
    reminder_notifications: bool = True
    cancel_notifications: bool = True


class NotificationPreferencesUpdate(BaseModel):
    """Partial update of delivery preferences."""

    email: bool | None = None
    sms: bool | None = None
    push: bool | None = None
    reschedule_notifications: bool | None = None
    reminder_notifications: bool | None = None
    cancel_notifications: bool | None = None

    model_config = {"extra": "forbid"}


class NotificationPreferencesResponse(NotificationPreferences):
    """Preferences with their owner."""

    user_id: UUID = Field(..., description="Profile the preferences belong to")
