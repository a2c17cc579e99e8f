"""Availability schemas."""

import datetime as dt

from pydantic import BaseModel


class AvailabilitySlot(BaseModel):
    """Open times on one calendar day."""

    date: dt.date
    times: list[str]


class AvailabilityResponse(BaseModel):
    """Bookable slots over a horizon."""

    horizon_days: int
    slots: list[AvailabilitySlot]
