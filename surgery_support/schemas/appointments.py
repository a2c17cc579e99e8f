"""Appointment schemas for request/response validation."""

import datetime as dt
import re
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class AppointmentType(str, Enum):
    """Appointment category enumeration."""

    SURGERY = "surgery"
    CONSULTATION = "consultation"
    FOLLOW_UP = "follow-up"
    TEST = "test"


def check_clock_time(v: str) -> str:
    if not TIME_PATTERN.match(v):
        raise ValueError("Time must use the 24-hour HH:MM format")
    return v


class AppointmentBase(BaseModel):
    """Base appointment schema with common fields."""

    title: str = Field(..., min_length=1, max_length=200)
    date: dt.date
    time: str
    type: AppointmentType = AppointmentType.CONSULTATION
    provider: str = Field(default="Healthcare Provider", min_length=1, max_length=200)
    location: str = Field(default="Medical Center", min_length=1, max_length=200)
    is_virtual: bool = False
    notes: str | None = Field(None, max_length=1000)

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        """Validate clock time format."""
        return check_clock_time(v)


class AppointmentCreate(AppointmentBase):
    """Schema for creating a new appointment.

    ``user_id`` is the patient the appointment belongs to; staff creating
    their own calendar entries may leave it empty.
    """

    user_id: UUID | None = None


class AppointmentUpdate(BaseModel):
    """Schema for editing any field of an existing appointment."""

    title: str | None = Field(None, min_length=1, max_length=200)
    date: dt.date | None = None
    time: str | None = None
    type: AppointmentType | None = None
    provider: str | None = Field(None, min_length=1, max_length=200)
    location: str | None = Field(None, min_length=1, max_length=200)
    is_virtual: bool | None = None
    notes: str | None = Field(None, max_length=1000)

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: str | None) -> str | None:
        """Validate clock time format."""
        return check_clock_time(v) if v is not None else v


class RescheduleRequest(BaseModel):
    """New slot for an existing appointment."""

    date: dt.date | None = None
    time: str | None = None


class AppointmentResponse(AppointmentBase):
    """Schema for appointment response."""

    id: UUID
    user_id: UUID
    created_at: dt.datetime
    updated_at: dt.datetime
    deleted_at: dt.datetime | None = None

    model_config = {"from_attributes": True}


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    total: int
    page: int
    page_size: int
    items: list[AppointmentResponse]


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    patient_id: UUID | None = None
    type: AppointmentType | None = None
    from_date: dt.date | None = None
    to_date: dt.date | None = None
    search: str | None = Field(None, max_length=100)
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)


class AppointmentStats(BaseModel):
    """Appointment counts for a patient or the whole schedule."""

    total: int
    upcoming: int
    past: int
    by_type: dict[str, int]


class AvailableTimesResponse(BaseModel):
    """Bookable times for one date."""

    date: dt.date
    times: list[str]
