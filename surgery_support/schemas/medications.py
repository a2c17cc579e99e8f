"""Medication schemas."""

import datetime as dt
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from surgery_support.schemas.appointments import check_clock_time


def _check_times(v: list[str] | None) -> list[str] | None:
    if v is None:
        return v
    return [check_clock_time(value) for value in v]


class MedicationBase(BaseModel):
    """Fields shared by medication requests and responses."""

    name: str = Field(..., min_length=1, max_length=200)
    dosage: str | None = Field(None, max_length=100)
    frequency: str | None = Field(None, max_length=100)
    times: list[str] | None = None
    instructions: str | None = Field(None, max_length=2000)
    start_date: dt.date
    end_date: dt.date | None = None
    category: str | None = Field(None, max_length=100)
    side_effects: list[str] | None = None

    @field_validator("times")
    @classmethod
    def validate_times(cls, v: list[str] | None) -> list[str] | None:
        """Validate each dose time."""
        return _check_times(v)


class MedicationCreate(MedicationBase):
    """New medication for a patient; ``user_id`` defaults to the creator."""

    user_id: UUID | None = None

    @model_validator(mode="after")
    def validate_period(self) -> "MedicationCreate":
        """A course cannot end before it starts."""
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class MedicationUpdate(BaseModel):
    """Partial edit of a medication."""

    name: str | None = Field(None, min_length=1, max_length=200)
    dosage: str | None = Field(None, max_length=100)
    frequency: str | None = Field(None, max_length=100)
    times: list[str] | None = None
    instructions: str | None = Field(None, max_length=2000)
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    category: str | None = Field(None, max_length=100)
    side_effects: list[str] | None = None

    @field_validator("times")
    @classmethod
    def validate_times(cls, v: list[str] | None) -> list[str] | None:
        """Validate each dose time."""
        return _check_times(v)


class MedicationResponse(MedicationBase):
    """Schema for medication response."""

    id: UUID
    user_id: UUID
    created_at: dt.datetime
    updated_at: dt.datetime
    deleted_at: dt.datetime | None = None

    model_config = {"from_attributes": True}

    def is_active(self, day: dt.date) -> bool:
        """True while the course covers ``day``."""
        return self.start_date <= day and (self.end_date is None or self.end_date >= day)
