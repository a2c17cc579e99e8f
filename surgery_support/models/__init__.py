"""Database models."""

from surgery_support.models.appointments import appointments
from surgery_support.models.base import metadata
from surgery_support.models.checklist import checklist_items
from surgery_support.models.medications import medications
from surgery_support.models.messages import conversations, messages
from surgery_support.models.users import roles, user_profiles

__all__ = [
    "appointments",
    "checklist_items",
    "conversations",
    "medications",
    "messages",
    "metadata",
    "roles",
    "user_profiles",
]
