"""Checklist item schemas."""

import datetime as dt
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class ChecklistPriority(str, Enum):
    """How urgent a preparation or recovery task is."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ChecklistItemBase(BaseModel):
    """Fields shared by checklist item requests and responses."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    priority: ChecklistPriority | None = None
    category: str | None = Field(None, max_length=100)
    due_date: dt.date | None = None


class ChecklistItemCreate(ChecklistItemBase):
    """New task for a patient; ``user_id`` defaults to the creator."""

    user_id: UUID | None = None
    completed: bool = False


class ChecklistItemUpdate(BaseModel):
    """Partial edit of a checklist item."""

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    priority: ChecklistPriority | None = None
    category: str | None = Field(None, max_length=100)
    due_date: dt.date | None = None
    completed: bool | None = None


class ChecklistCompletion(BaseModel):
    completed: bool


class ChecklistItemResponse(ChecklistItemBase):
    """Schema for checklist item response."""

    id: UUID
    user_id: UUID
    completed: bool
    created_at: dt.datetime
    updated_at: dt.datetime
    deleted_at: dt.datetime | None = None

    model_config = {"from_attributes": True}


class ChecklistProgress(BaseModel):
    """Task completion figures for one patient."""

    total_tasks: int
    completed_tasks: int
    completion_percentage: int
